from __future__ import annotations

import pytest

import stackwire.app
from stackwire.adapters.memory import InMemoryCloud
from stackwire.adapters.sqlalchemy import shutdown
from stackwire.app import deploy_stack, plan_stack, seed_stack
from stackwire.config import DeploymentConfig
from stackwire.domain.errors import (
    CycleError,
    DeploymentError,
    GraphError,
    ServiceError,
    UnknownReferenceError,
)
from stackwire.domain.model import ResourceKind, ResourceSpec, ResourceStatus, ref
from stackwire.domain.ports import CertificateRequest
from stackwire.domain.reconciliation import PollingPolicy
from stackwire.stack import StackDefinition

VALIDATION = "app.diversitus.example-validation"


def test_plan_orders_certificate_validation_before_listener(
    deployment_config: DeploymentConfig,
) -> None:
    graph = plan_stack(deployment_config)
    order = graph.topological_order()

    assert len(graph) == 12
    assert order.index("cert") < order.index(VALIDATION) < order.index("diversitus-lb")
    assert order.index("diversitus-lb") < order.index("diversitus-fargate-service")
    assert order.index("diversitus-repo") < order.index("diversitus-image")
    assert graph.spec(VALIDATION).kind is ResourceKind.VALIDATION_RECORD
    assert set(graph.dependencies("diversitus-db-access-policy")) == {
        "diversitus-jobs-table",
        "diversitus-companies-table",
        "diversitus-users-table",
    }


def test_full_stack_deploys_and_exports(
    deployment_config: DeploymentConfig,
    cloud: InMemoryCloud,
    fast_policy: PollingPolicy,
) -> None:
    result = deploy_stack(deployment_config, services=cloud.as_services(), policy=fast_policy)

    assert result.ok
    assert result.exports["url"] == "https://app.diversitus.example"
    zone = cloud.zones["diversitus.example"].zone
    assert result.exports["nameServers"] == list(zone.name_servers)

    listener = cloud.load_balancers["diversitus-lb"][1]["listener"]
    assert listener["certificate_arn"] == result.report.outputs("cert")["arn"]
    alias = cloud.find_record("app.diversitus.example", "A")
    assert alias is not None
    assert alias.alias is not None
    assert alias.alias.name == result.report.outputs("diversitus-lb")["dns_name"]

    assert result.seed is not None
    assert len(cloud.tables["diversitus-companies-table"].items) == 3
    assert len(cloud.tables["diversitus-jobs-table"].items) == 5


def test_second_deploy_creates_nothing_new(
    deployment_config: DeploymentConfig,
    cloud: InMemoryCloud,
    fast_policy: PollingPolicy,
) -> None:
    first = deploy_stack(deployment_config, services=cloud.as_services(), policy=fast_policy)
    created = dict(cloud.creations)

    second = deploy_stack(deployment_config, services=cloud.as_services(), policy=fast_policy)

    assert second.ok
    assert dict(cloud.creations) == created
    assert second.exports == first.exports
    for name in first.report.resources:
        assert second.report.outputs(name) == first.report.outputs(name)
    assert len(cloud.tables["diversitus-jobs-table"].items) == 5


def test_certificate_failure_skips_only_its_subtree(
    deployment_config: DeploymentConfig,
    cloud: InMemoryCloud,
    fast_policy: PollingPolicy,
) -> None:
    async def failing_request(domain: str, *, method: str = "DNS") -> CertificateRequest:
        raise ServiceError("request_certificate", f"limit exceeded for {domain} ({method})")

    cloud.request_certificate = failing_request  # type: ignore[method-assign]

    result = deploy_stack(deployment_config, services=cloud.as_services(), policy=fast_policy)

    report = result.report
    assert not result.ok
    assert report["cert"].status is ResourceStatus.FAILED
    assert set(report.skipped) == {
        VALIDATION,
        "diversitus-lb",
        "diversitus-fargate-service",
        "app.diversitus.example",
    }
    assert report["diversitus-users-table"].validated
    assert report["diversitus-image"].validated
    assert result.seed is not None
    assert "nameServers" in result.exports
    with pytest.raises(DeploymentError, match="cert"):
        result.raise_for_status()


@pytest.mark.integration
def test_local_provider_persists_seed_between_runs(
    deployment_config: DeploymentConfig,
    fast_policy: PollingPolicy,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("STACKWIRE_DATABASE_URI", "sqlite+pysqlite:///:memory:")
    shutdown()
    try:
        first = deploy_stack(deployment_config, provider="local", policy=fast_policy)
        reseeded = seed_stack(deployment_config, provider="local")
    finally:
        shutdown()

    assert first.ok
    assert first.seed is not None
    assert reseeded.generated == 0
    assert reseeded.identifiers == first.seed.identifiers


def test_seed_failure_keeps_reconciliation_report(
    deployment_config: DeploymentConfig,
    cloud: InMemoryCloud,
    fast_policy: PollingPolicy,
) -> None:
    async def throttled_put_item(table_name: str, item: object) -> None:
        raise ServiceError("put_item", f"throttled writing to {table_name}")

    cloud.put_item = throttled_put_item  # type: ignore[method-assign]

    result = deploy_stack(deployment_config, services=cloud.as_services(), policy=fast_policy)

    assert result.report.ok
    assert not result.ok
    assert result.seed is None
    assert isinstance(result.seed_error, ServiceError)
    assert result.exports["url"] == "https://app.diversitus.example"
    with pytest.raises(DeploymentError, match="seeding failed") as excinfo:
        result.raise_for_status()
    assert excinfo.value.report is result.report
    assert excinfo.value.seed_error is result.seed_error


@pytest.mark.parametrize(
    ("specs", "error"),
    [
        (
            (
                ResourceSpec(ResourceKind.TABLE, "a", {"upstream": ref("b", "arn")}),
                ResourceSpec(ResourceKind.TABLE, "b", {"upstream": ref("a", "arn")}),
            ),
            CycleError,
        ),
        (
            (ResourceSpec(ResourceKind.TABLE, "a", {"upstream": ref("missing", "arn")}),),
            UnknownReferenceError,
        ),
    ],
)
def test_invalid_graph_makes_no_service_calls(
    deployment_config: DeploymentConfig,
    cloud: InMemoryCloud,
    fast_policy: PollingPolicy,
    monkeypatch: pytest.MonkeyPatch,
    specs: tuple[ResourceSpec, ...],
    error: type[GraphError],
) -> None:
    def broken_stack(_config: DeploymentConfig) -> StackDefinition:
        return StackDefinition(
            specs=specs,
            exports={},
            companies_table="a",
            jobs_table="a",
            users_table="a",
        )

    monkeypatch.setattr(stackwire.app, "declare_stack", broken_stack)

    with pytest.raises(error):
        deploy_stack(deployment_config, services=cloud.as_services(), policy=fast_policy)

    assert cloud.operations == []
    assert not cloud.creations
