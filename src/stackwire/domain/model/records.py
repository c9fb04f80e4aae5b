"""Seed record inputs and the stored logical records."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True, kw_only=True)
class CompanyInput:
    """Company seed entry; ``name`` is its natural key."""

    name: str
    traits: Mapping[str, int] = field(default_factory=dict["str", "int"])
    id: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class JobInput:
    """Job seed entry.

    ``company`` names the owning company by its natural key. ``company_id``
    pins the foreign key explicitly and takes precedence when given.
    """

    title: str
    company: str | None = None
    description: str = ""
    traits: Mapping[str, int] = field(default_factory=dict["str", "int"])
    company_id: str | None = None
    id: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class LogicalRecord:
    id: str
    fields: Mapping[str, object]
    company_id: str | None = None

    def to_item(self) -> dict[str, object]:
        item: dict[str, object] = {"id": self.id}
        if self.company_id is not None:
            item["companyId"] = self.company_id
        item.update(self.fields)
        return item
