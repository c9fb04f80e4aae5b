from __future__ import annotations

import asyncio
from collections.abc import Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING

import pytest

from stackwire.domain.errors import OperationCancelledError, UnresolvedDependencyError
from stackwire.domain.graph import build
from stackwire.domain.model import ResourceKind, ResourceSpec, ResourceStatus, ref
from stackwire.domain.reconciliation import CancellationToken, Reconciler

if TYPE_CHECKING:
    from stackwire.domain.ports import CloudServices
    from stackwire.domain.reconciliation import HandlerContext, ReconciliationReport
    from stackwire.domain.reconciliation.contracts import Outputs


class RecordingHandler:
    """Fake handler echoing substituted inputs and logging start/end events."""

    def __init__(self) -> None:
        self.events: list[str] = []
        self.inputs: dict[str, Mapping[str, object]] = {}
        self.fail: set[str] = set()
        self.cancel_on: set[str] = set()
        self.omit_outputs: set[str] = set()

    async def __call__(
        self,
        spec: ResourceSpec,
        inputs: Mapping[str, object],
        context: HandlerContext,
    ) -> Outputs:
        self.events.append(f"start:{spec.name}")
        self.inputs[spec.name] = inputs
        if spec.name in self.cancel_on:
            context.cancellation.cancel()
            await asyncio.sleep(10)
        await asyncio.sleep(0)
        if spec.name in self.fail:
            self.events.append(f"fail:{spec.name}")
            raise RuntimeError(f"{spec.name} exploded")
        self.events.append(f"end:{spec.name}")
        if spec.name in self.omit_outputs:
            return {}
        return {"arn": f"arn:{spec.name}", **inputs}


def _spec(name: str, **inputs: object) -> ResourceSpec:
    return ResourceSpec(ResourceKind.TABLE, name, inputs)


def _apply(
    services: CloudServices,
    handler: RecordingHandler,
    specs: list[ResourceSpec],
    *,
    max_concurrency: int | None = None,
    cancellation: CancellationToken | None = None,
) -> ReconciliationReport:
    reconciler = Reconciler(
        services,
        handlers=MappingProxyType({ResourceKind.TABLE: handler}),
        max_concurrency=max_concurrency,
    )
    return asyncio.run(reconciler.apply(build(specs), cancellation=cancellation))


def test_chain_is_reconciled_in_dependency_order(services: CloudServices) -> None:
    handler = RecordingHandler()

    report = _apply(
        services,
        handler,
        [
            _spec("a"),
            _spec("b", upstream=ref("a", "arn")),
            _spec("c", upstream=ref("b", "arn")),
        ],
    )

    assert report.ok
    assert report.invocation_order == ["a", "b", "c"]
    assert handler.inputs["b"] == {"upstream": "arn:a"}
    assert handler.inputs["c"] == {"upstream": "arn:b"}
    assert report.outputs("c")["arn"] == "arn:c"


def test_independent_nodes_run_concurrently(services: CloudServices) -> None:
    handler = RecordingHandler()

    report = _apply(services, handler, [_spec("a"), _spec("b")])

    assert report.ok
    assert handler.events[:2] == ["start:a", "start:b"]


def test_max_concurrency_serialises_siblings(services: CloudServices) -> None:
    handler = RecordingHandler()

    report = _apply(services, handler, [_spec("a"), _spec("b")], max_concurrency=1)

    assert report.ok
    assert handler.events == ["start:a", "end:a", "start:b", "end:b"]


def test_failure_skips_only_the_failed_subtree(services: CloudServices) -> None:
    handler = RecordingHandler()
    handler.fail.add("a")

    report = _apply(
        services,
        handler,
        [
            _spec("a"),
            _spec("b", upstream=ref("a", "arn")),
            _spec("c", upstream=ref("b", "arn")),
            _spec("d"),
        ],
    )

    assert not report.ok
    assert report["a"].status is ResourceStatus.FAILED
    assert report["b"].status is ResourceStatus.PENDING
    assert report["c"].status is ResourceStatus.PENDING
    assert report["d"].status is ResourceStatus.VALIDATED
    assert report.skipped == {"b": "a", "c": "a"}
    assert report.succeeded == ("d",)
    failure = report.first_failure
    assert failure is not None
    assert failure.node == "a"
    assert isinstance(failure.cause, RuntimeError)
    assert "start:b" not in handler.events


def test_every_failure_is_reported(services: CloudServices) -> None:
    handler = RecordingHandler()
    handler.fail.update({"a", "b"})

    report = _apply(services, handler, [_spec("a"), _spec("b"), _spec("c")])

    assert set(report.failures) == {"a", "b"}
    assert report["c"].validated


def test_missing_upstream_output_fails_the_dependent(services: CloudServices) -> None:
    handler = RecordingHandler()
    handler.omit_outputs.add("a")

    report = _apply(services, handler, [_spec("a"), _spec("b", upstream=ref("a", "arn"))])

    assert report["a"].validated
    assert report["b"].status is ResourceStatus.FAILED
    assert isinstance(report.failures["b"].cause, UnresolvedDependencyError)


def test_cancellation_interrupts_in_flight_nodes(services: CloudServices) -> None:
    handler = RecordingHandler()
    handler.cancel_on.add("slow")

    with pytest.raises(OperationCancelledError) as excinfo:
        _apply(
            services,
            handler,
            [
                _spec("fast"),
                _spec("slow"),
                _spec("after", upstream=ref("slow", "arn")),
            ],
        )

    report = excinfo.value.report
    assert report is not None
    assert report.cancelled
    assert report["fast"].validated
    assert report["slow"].status is ResourceStatus.IN_PROGRESS
    assert report["slow"].outputs == {}
    assert report.interrupted == ("slow",)
    assert report["after"].status is ResourceStatus.PENDING


def test_cancelled_token_stops_before_any_call(services: CloudServices) -> None:
    handler = RecordingHandler()
    token = CancellationToken()
    token.cancel()

    with pytest.raises(OperationCancelledError) as excinfo:
        _apply(services, handler, [_spec("a")], cancellation=token)

    assert handler.events == []
    assert excinfo.value.report is not None
    assert excinfo.value.report.cancelled


def test_ready_siblings_start_in_declaration_order(services: CloudServices) -> None:
    handler = RecordingHandler()

    report = _apply(
        services,
        handler,
        [
            _spec("zone"),
            _spec("alpha"),
            _spec("zone-record", upstream=ref("zone", "arn")),
            _spec("alpha-record", upstream=ref("alpha", "arn")),
        ],
    )

    assert report.ok
    assert report.invocation_order == ["zone", "alpha", "zone-record", "alpha-record"]


def test_token_can_be_reused_across_runs(services: CloudServices) -> None:
    token = CancellationToken()

    first = _apply(services, RecordingHandler(), [_spec("a")], cancellation=token)
    second = _apply(services, RecordingHandler(), [_spec("a")], cancellation=token)

    assert first.ok
    assert second.ok
