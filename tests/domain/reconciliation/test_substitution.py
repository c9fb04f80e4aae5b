from __future__ import annotations

import pytest

from stackwire.domain.errors import UnresolvedDependencyError
from stackwire.domain.model import (
    ResolvedResource,
    ResourceKind,
    ResourceSpec,
    ResourceStatus,
    interpolate,
    ref,
)
from stackwire.domain.reconciliation import substitute, substitute_inputs


def _resolved(
    name: str,
    outputs: dict[str, object],
    status: ResourceStatus = ResourceStatus.VALIDATED,
) -> ResolvedResource:
    return ResolvedResource(
        spec=ResourceSpec(ResourceKind.CERTIFICATE, name),
        status=status,
        outputs=outputs,
    )


def test_nested_tokens_are_replaced() -> None:
    resolved = {
        "table": _resolved("table", {"arn": "arn:table", "name": "jobs"}),
        "cert": _resolved(
            "cert",
            {"validation_challenges": [{"record_name": "_a.example.", "record_value": "_b"}]},
        ),
    }

    inputs = substitute_inputs(
        "policy",
        {
            "resources": [
                ref("table", "arn"),
                interpolate("{arn}/index/Email", arn=ref("table", "arn")),
            ],
            "env": {"TABLE": ref("table", "name"), "REGION": "us-east-1"},
            "challenge": ref("cert", "validation_challenges")[0]["record_name"],
            "pair": (ref("table", "name"), 1),
        },
        resolved,
    )

    assert inputs == {
        "resources": ["arn:table", "arn:table/index/Email"],
        "env": {"TABLE": "jobs", "REGION": "us-east-1"},
        "challenge": "_a.example.",
        "pair": ("jobs", 1),
    }


def test_literals_pass_through_unchanged() -> None:
    assert substitute("x", {"port": 443, "tags": ["a"]}, {}) == {"port": 443, "tags": ["a"]}


@pytest.mark.parametrize(
    ("resolved", "token", "reason"),
    [
        ({}, ref("table", "arn"), "not processed"),
        (
            {"table": _resolved("table", {"arn": "x"}, ResourceStatus.FAILED)},
            ref("table", "arn"),
            "failed",
        ),
        ({"table": _resolved("table", {})}, ref("table", "arn"), "not recorded"),
        ({"table": _resolved("table", {"arns": []})}, ref("table", "arns")[0], "path element"),
    ],
)
def test_unresolvable_tokens_raise(
    resolved: dict[str, ResolvedResource],
    token: object,
    reason: str,
) -> None:
    with pytest.raises(UnresolvedDependencyError, match=reason) as excinfo:
        substitute("consumer", {"value": token}, resolved)

    assert excinfo.value.resource == "consumer"
