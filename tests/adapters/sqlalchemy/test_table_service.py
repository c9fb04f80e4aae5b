from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import func, select

from stackwire.adapters.sqlalchemy import SqlAlchemyTableUnitOfWork, StartupError, shutdown
from stackwire.adapters.sqlalchemy.mappings import table_item_table
from stackwire.domain.errors import ServiceError
from stackwire.domain.seeding import seed
from stackwire.seed_data import COMPANIES, JOBS

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from stackwire.adapters.sqlalchemy import SqlAlchemyTableService
    from stackwire.domain.ports import Table


def _ensure_tables(service: SqlAlchemyTableService, *names: str) -> None:
    async def create() -> None:
        for name in names:
            await service.ensure_table(name, key_schema={"id": "S"}, tags={"Project": "Test"})

    asyncio.run(create())


def test_ensure_table_is_idempotent(sqlite_table_service: SqlAlchemyTableService) -> None:
    async def scenario() -> tuple[Table, Table]:
        first = await sqlite_table_service.ensure_table("jobs", key_schema={"id": "S"})
        second = await sqlite_table_service.ensure_table(
            "jobs", key_schema={"id": "S"}, billing_mode="PROVISIONED"
        )
        return first, second

    first, second = asyncio.run(scenario())

    assert first == second
    assert first.hash_key == "id"


def test_put_item_replaces_by_id(
    sqlite_table_service: SqlAlchemyTableService,
    sqlite_engine: Engine,
) -> None:
    _ensure_tables(sqlite_table_service, "jobs")

    async def scenario() -> list[dict[str, object]]:
        await sqlite_table_service.put_item("jobs", {"id": "1", "title": "Old", "extra": 1})
        await sqlite_table_service.put_item("jobs", {"id": "1", "title": "New"})
        await sqlite_table_service.put_item("jobs", {"id": "2", "title": "Other"})
        return await sqlite_table_service.scan_items("jobs")

    items = asyncio.run(scenario())

    assert items == [{"id": "1", "title": "New"}, {"id": "2", "title": "Other"}]
    with sqlite_engine.connect() as connection:
        stored = connection.execute(select(func.count()).select_from(table_item_table)).scalar()
    assert stored == 2


def test_items_without_key_are_rejected(sqlite_table_service: SqlAlchemyTableService) -> None:
    _ensure_tables(sqlite_table_service, "jobs")

    with pytest.raises(ServiceError, match="lacks id"):
        asyncio.run(sqlite_table_service.put_item("jobs", {"title": "No id"}))


def test_missing_table_is_reported(sqlite_table_service: SqlAlchemyTableService) -> None:
    with pytest.raises(ServiceError, match="does not exist"):
        asyncio.run(sqlite_table_service.scan_items("ghost"))


def test_seeding_is_idempotent(sqlite_table_service: SqlAlchemyTableService) -> None:
    _ensure_tables(sqlite_table_service, "companies", "jobs")

    async def run_seed() -> None:
        await seed(
            COMPANIES,
            JOBS,
            company_table="companies",
            job_table="jobs",
            tables=sqlite_table_service,
        )

    asyncio.run(run_seed())
    asyncio.run(run_seed())

    companies = asyncio.run(sqlite_table_service.scan_items("companies"))
    jobs = asyncio.run(sqlite_table_service.scan_items("jobs"))
    assert len(companies) == 3
    assert len(jobs) == 5
    assert {job["companyId"] for job in jobs} <= {company["id"] for company in companies}


def test_unit_of_work_requires_startup() -> None:
    shutdown()

    with pytest.raises(StartupError):
        SqlAlchemyTableUnitOfWork()
