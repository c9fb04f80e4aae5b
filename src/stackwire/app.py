"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, replace
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from stackwire.adapters.control_plane import ControlPlaneClient
from stackwire.adapters.memory import InMemoryCloud
from stackwire.adapters.sqlalchemy import SqlAlchemyTableService, is_started, startup
from stackwire.config import get_deployment_config, get_polling_policy
from stackwire.domain.errors import DeploymentError, SeedIntegrityError, ServiceError
from stackwire.domain.graph import build
from stackwire.domain.reconciliation import Reconciler
from stackwire.domain.seeding import SeedResult, seed
from stackwire.seed_data import COMPANIES, JOBS
from stackwire.stack import declare_stack, resolve_exports

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from stackwire.config import DeploymentConfig
    from stackwire.domain.errors import StackwireError
    from stackwire.domain.graph import ResourceGraph
    from stackwire.domain.ports import CloudServices
    from stackwire.domain.reconciliation import (
        CancellationToken,
        PollingPolicy,
        ReconciliationReport,
    )
    from stackwire.domain.seeding import SeedIdentifiers

type Provider = Literal["local", "control-plane"]

PROVIDERS: tuple[Provider, ...] = ("local", "control-plane")

log = getLogger(__name__)


@dataclass(slots=True)
class DeploymentResult:
    report: ReconciliationReport
    exports: dict[str, object]
    seed: SeedResult | None = None
    seed_error: StackwireError | None = None

    @property
    def ok(self) -> bool:
        return self.report.ok and self.seed_error is None

    def raise_for_status(self) -> None:
        if not self.ok:
            raise DeploymentError(self.report, seed_error=self.seed_error) from self.seed_error


def plan_stack(config: DeploymentConfig | None = None) -> ResourceGraph:
    """Build the dependency graph for the stack without calling any service."""

    definition = declare_stack(config or get_deployment_config())
    return build(definition.specs)


@asynccontextmanager
async def open_services(
    provider: Provider,
    *,
    config: DeploymentConfig,
    database_uri: str | None = None,
) -> AsyncIterator[CloudServices]:
    """Yield the service bundle for ``provider``.

    ``local`` emulates the cloud in memory and keeps table items in the SQLite
    emulator, so seeded records survive between runs.
    """

    if provider == "local":
        if not is_started():
            startup(database_uri=database_uri)
        cloud = InMemoryCloud(region=config.region)
        yield replace(cloud.as_services(), tables=SqlAlchemyTableService(region=config.region))
    elif provider == "control-plane":
        async with ControlPlaneClient() as client:
            yield client.as_services()
    else:
        raise ValueError(f"Unknown provider: {provider}")


async def deploy_stack_async(
    config: DeploymentConfig | None = None,
    *,
    services: CloudServices | None = None,
    provider: Provider = "local",
    policy: PollingPolicy | None = None,
    max_concurrency: int | None = None,
    cancellation: CancellationToken | None = None,
    seed_tables: bool = True,
) -> DeploymentResult:
    """Reconcile the stack, seed the data tables and resolve the exports."""

    effective_config = config or get_deployment_config()
    definition = declare_stack(effective_config)
    graph = build(definition.specs)

    if services is None:
        async with open_services(provider, config=effective_config) as opened:
            return await deploy_stack_async(
                effective_config,
                services=opened,
                policy=policy,
                max_concurrency=max_concurrency,
                cancellation=cancellation,
                seed_tables=seed_tables,
            )

    log.info(
        "Deploying %s (%s resources) to %s",
        effective_config.domain_name,
        len(graph),
        effective_config.region,
    )
    reconciler = Reconciler(
        services,
        policy=policy or get_polling_policy(),
        max_concurrency=max_concurrency,
    )
    report = await reconciler.apply(graph, cancellation=cancellation)

    seed_result: SeedResult | None = None
    seed_error: StackwireError | None = None
    tables_ready = all(
        report[name].validated for name in (definition.companies_table, definition.jobs_table)
    )
    if seed_tables and tables_ready:
        try:
            seed_result = await seed(
                COMPANIES,
                JOBS,
                company_table=str(report.outputs(definition.companies_table)["name"]),
                job_table=str(report.outputs(definition.jobs_table)["name"]),
                tables=services.tables,
            )
        except (ServiceError, SeedIntegrityError) as exc:
            log.error("Seeding failed after reconciliation: %s", exc)
            seed_error = exc
    elif seed_tables:
        log.warning("Skipping seed: data tables were not reconciled")

    result = DeploymentResult(
        report=report,
        exports=resolve_exports(definition, report),
        seed=seed_result,
        seed_error=seed_error,
    )
    log.info(
        f"Finished deployment: ok={result.ok}, validated={len(report.succeeded)}, "
        f"failed={len(report.failures)}, skipped={len(report.skipped)}"
    )
    return result


def deploy_stack(
    config: DeploymentConfig | None = None,
    *,
    services: CloudServices | None = None,
    provider: Provider = "local",
    policy: PollingPolicy | None = None,
    max_concurrency: int | None = None,
    cancellation: CancellationToken | None = None,
    seed_tables: bool = True,
) -> DeploymentResult:
    return asyncio.run(
        deploy_stack_async(
            config,
            services=services,
            provider=provider,
            policy=policy,
            max_concurrency=max_concurrency,
            cancellation=cancellation,
            seed_tables=seed_tables,
        )
    )


async def seed_stack_async(
    config: DeploymentConfig | None = None,
    *,
    services: CloudServices | None = None,
    provider: Provider = "local",
    companies_table: str | None = None,
    jobs_table: str | None = None,
    identifiers: SeedIdentifiers | None = None,
) -> SeedResult:
    """Seed the companies and jobs tables of an already deployed stack."""

    effective_config = config or get_deployment_config()
    if services is None:
        async with open_services(provider, config=effective_config) as opened:
            return await seed_stack_async(
                effective_config,
                services=opened,
                companies_table=companies_table,
                jobs_table=jobs_table,
                identifiers=identifiers,
            )

    definition = declare_stack(effective_config)
    return await seed(
        COMPANIES,
        JOBS,
        company_table=companies_table or definition.companies_table,
        job_table=jobs_table or definition.jobs_table,
        tables=services.tables,
        identifiers=identifiers,
    )


def seed_stack(
    config: DeploymentConfig | None = None,
    *,
    services: CloudServices | None = None,
    provider: Provider = "local",
    companies_table: str | None = None,
    jobs_table: str | None = None,
    identifiers: SeedIdentifiers | None = None,
) -> SeedResult:
    return asyncio.run(
        seed_stack_async(
            config,
            services=services,
            provider=provider,
            companies_table=companies_table,
            jobs_table=jobs_table,
            identifiers=identifiers,
        )
    )
