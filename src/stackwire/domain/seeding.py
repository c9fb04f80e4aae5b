"""Idempotent seeding of the companies and jobs tables.

Identifiers are stable across runs: an explicit id on the input wins, then an
injected identifier map, then the id already stored under the same natural key
(company ``name``; job ``(companyId, title)``). Only records never seen before
get a fresh ``uuid4``.

Every record is written with a full put-by-primary-key, so reruns replace
stale attributes instead of merging them. All companies are written and
confirmed before the first job write so the job table never exposes a dangling
``companyId``.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING
from uuid import uuid4

from stackwire.domain.errors import SeedIntegrityError
from stackwire.domain.model import LogicalRecord

if TYPE_CHECKING:
    from collections.abc import Sequence

    from stackwire.domain.model import CompanyInput, JobInput
    from stackwire.domain.ports import TableService

type JobKey = tuple[str, str]
type IdentifierFactory = Callable[[], str]

log = getLogger(__name__)


def _new_identifier() -> str:
    return str(uuid4())


@dataclass(slots=True)
class SeedIdentifiers:
    """Natural key to stable id, for companies (by name) and jobs (by company id, title)."""

    companies: dict[str, str] = field(default_factory=dict["str", "str"])
    jobs: dict[JobKey, str] = field(default_factory=dict["JobKey", "str"])


@dataclass(slots=True)
class SeedResult:
    """Outcome of one seed run."""

    companies: tuple[LogicalRecord, ...]
    jobs: tuple[LogicalRecord, ...]
    identifiers: SeedIdentifiers
    generated: int = 0
    reused: int = 0


@dataclass(slots=True)
class _SeedPlan:
    companies: list[LogicalRecord] = field(default_factory=list["LogicalRecord"])
    jobs: list[LogicalRecord] = field(default_factory=list["LogicalRecord"])
    identifiers: SeedIdentifiers = field(default_factory=SeedIdentifiers)
    generated: int = 0
    reused: int = 0


async def seed(
    companies: Sequence[CompanyInput],
    jobs: Sequence[JobInput],
    *,
    company_table: str,
    job_table: str,
    tables: TableService,
    identifiers: SeedIdentifiers | None = None,
    new_identifier: IdentifierFactory = _new_identifier,
) -> SeedResult:
    """Upsert ``companies`` then ``jobs``; raise ``SeedIntegrityError`` before any write."""

    known = identifiers or SeedIdentifiers()
    existing_companies = _index_existing(
        await tables.scan_items(company_table),
        key=lambda item: _text(item.get("name")),
        table=company_table,
    )
    existing_jobs = _index_existing(
        await tables.scan_items(job_table),
        key=lambda item: (_text(item.get("companyId")), _text(item.get("title"))),
        table=job_table,
    )

    plan = _SeedPlan()
    _plan_companies(plan, companies, known, existing_companies, new_identifier)
    _plan_jobs(plan, jobs, known, existing_jobs, new_identifier)

    for record in plan.companies:
        await tables.put_item(company_table, record.to_item())
    log.info("Seeded %s companies into %s", len(plan.companies), company_table)

    for record in plan.jobs:
        await tables.put_item(job_table, record.to_item())
    log.info("Seeded %s jobs into %s", len(plan.jobs), job_table)

    return SeedResult(
        companies=tuple(plan.companies),
        jobs=tuple(plan.jobs),
        identifiers=plan.identifiers,
        generated=plan.generated,
        reused=plan.reused,
    )


def _plan_companies(
    plan: _SeedPlan,
    companies: Sequence[CompanyInput],
    known: SeedIdentifiers,
    existing: Mapping[object, str],
    new_identifier: IdentifierFactory,
) -> None:
    seen: set[str] = set()
    for company in companies:
        if company.name in seen:
            raise SeedIntegrityError(f"Company {company.name!r} appears more than once")
        seen.add(company.name)

        company_id = company.id or known.companies.get(company.name) or existing.get(company.name)
        if company_id is None:
            company_id = new_identifier()
            plan.generated += 1
        else:
            plan.reused += 1
        plan.identifiers.companies[company.name] = company_id
        plan.companies.append(
            LogicalRecord(
                id=company_id,
                fields={"name": company.name, "traits": dict(company.traits)},
            )
        )

    ids = [record.id for record in plan.companies]
    if len(set(ids)) != len(ids):
        raise SeedIntegrityError("Two companies resolved to the same identifier")


def _plan_jobs(
    plan: _SeedPlan,
    jobs: Sequence[JobInput],
    known: SeedIdentifiers,
    existing: Mapping[object, str],
    new_identifier: IdentifierFactory,
) -> None:
    company_ids = {record.id for record in plan.companies}
    problems: list[str] = []
    seen: set[JobKey] = set()

    for job in jobs:
        company_id = job.company_id
        if company_id is None and job.company is not None:
            company_id = plan.identifiers.companies.get(job.company)
        if company_id is None or company_id not in company_ids:
            problems.append(
                f"job {job.title!r} references company "
                f"{job.company_id or job.company!r} outside this batch"
            )
            continue

        key: JobKey = (company_id, job.title)
        if key in seen:
            problems.append(f"job {job.title!r} appears more than once for company {company_id}")
            continue
        seen.add(key)

        job_id = job.id or known.jobs.get(key) or existing.get(key)
        if job_id is None:
            job_id = new_identifier()
            plan.generated += 1
        else:
            plan.reused += 1
        plan.identifiers.jobs[key] = job_id
        plan.jobs.append(
            LogicalRecord(
                id=job_id,
                company_id=company_id,
                fields={
                    "title": job.title,
                    "description": job.description,
                    "traits": dict(job.traits),
                },
            )
        )

    if problems:
        raise SeedIntegrityError("; ".join(problems))


def _index_existing(
    items: Sequence[Mapping[str, object]],
    *,
    key: Callable[[Mapping[str, object]], object],
    table: str,
) -> dict[object, str]:
    """Map natural key to stored id; the lowest id wins when a key is duplicated."""

    index: dict[object, str] = {}
    for item in sorted(items, key=lambda stored: _text(stored.get("id"))):
        item_id = _text(item.get("id"))
        if not item_id:
            continue
        natural_key = key(item)
        if natural_key in index:
            log.warning("Table %s holds duplicate records for %s", table, natural_key)
            continue
        index[natural_key] = item_id
    return index


def _text(value: object) -> str:
    return value if isinstance(value, str) else ""
