from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002

from stackwire.adapters.memory import InMemoryCloud
from stackwire.adapters.sqlalchemy import SqlAlchemyTableService, create_all_tables
from stackwire.adapters.sqlalchemy.unit_of_work import shutdown, startup
from stackwire.config import DeploymentConfig
from stackwire.domain.reconciliation import PollingPolicy

os.environ.setdefault("STACKWIRE_DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator

    from stackwire.domain.ports import CloudServices


@pytest.fixture
def deployment_config() -> DeploymentConfig:
    return DeploymentConfig(domain_name="app.diversitus.example", root_domain="diversitus.example")


@pytest.fixture
def fast_policy() -> PollingPolicy:
    """Polls without sleeping and gives up after five attempts."""

    return PollingPolicy(
        initial_interval=0.0,
        multiplier=1.0,
        max_interval=0.0,
        max_total_wait=30.0,
        max_attempts=5,
    )


@pytest.fixture
def cloud() -> InMemoryCloud:
    return InMemoryCloud()


@pytest.fixture
def services(cloud: InMemoryCloud) -> CloudServices:
    return cloud.as_services()


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    create_all_tables(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_table_service(sqlite_engine: Engine) -> Iterator[SqlAlchemyTableService]:
    startup(engine=sqlite_engine, force=True)
    try:
        yield SqlAlchemyTableService()
    finally:
        shutdown()
