"""Ports for the external cloud services the reconciler drives.

Every operation is expected to be idempotent: calling it again with the same
arguments converges on the existing resource instead of creating a second one.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from stackwire.domain.model import ValidationChallenge, ValidationStatus


@dataclass(frozen=True, slots=True)
class Repository:
    name: str
    url: str


@dataclass(frozen=True, slots=True)
class Image:
    image_uri: str


@dataclass(frozen=True, slots=True)
class Table:
    name: str
    arn: str
    hash_key: str


@dataclass(frozen=True, slots=True)
class Role:
    id: str
    arn: str


@dataclass(frozen=True, slots=True)
class Zone:
    zone_id: str
    name_servers: tuple[str, ...]


@dataclass(frozen=True, slots=True, kw_only=True)
class AliasTarget:
    name: str
    zone_id: str
    evaluate_target_health: bool = True


@dataclass(frozen=True, slots=True, kw_only=True)
class DnsRecord:
    """A record set; either ``values`` with a ``ttl`` or an ``alias`` target."""

    name: str
    type: str
    values: tuple[str, ...] = ()
    ttl: int | None = None
    alias: AliasTarget | None = None

    def __post_init__(self) -> None:
        if self.alias is None and not self.values:
            raise ValueError(f"DNS record {self.name} needs values or an alias target")
        if self.alias is not None and self.values:
            raise ValueError(f"DNS record {self.name} cannot have both values and an alias")


@dataclass(frozen=True, slots=True)
class CertificateRequest:
    arn: str
    challenges: tuple[ValidationChallenge, ...]


@dataclass(frozen=True, slots=True)
class LoadBalancer:
    dns_name: str
    zone_id: str
    target_group_arn: str


@dataclass(frozen=True, slots=True)
class Service:
    name: str
    cluster: str


@runtime_checkable
class RegistryService(Protocol):
    async def ensure_repository(self, name: str, *, force_delete: bool = False) -> Repository: ...


@runtime_checkable
class ImageService(Protocol):
    async def build_and_push(
        self,
        *,
        context: str,
        dockerfile: str,
        repository_url: str,
        platform: str | None = None,
    ) -> Image: ...


@runtime_checkable
class TableService(Protocol):
    async def ensure_table(
        self,
        name: str,
        *,
        key_schema: Mapping[str, str],
        indexes: Sequence[Mapping[str, object]] = (),
        billing_mode: str = "PAY_PER_REQUEST",
        tags: Mapping[str, str] | None = None,
    ) -> Table: ...

    async def put_item(self, table_name: str, item: Mapping[str, object]) -> None:
        """Store ``item`` under its primary key, fully replacing any previous item."""
        ...

    async def scan_items(self, table_name: str) -> list[dict[str, object]]: ...


@runtime_checkable
class IdentityService(Protocol):
    async def ensure_role(self, name: str, *, assume_role_policy: Mapping[str, object]) -> Role: ...

    async def attach_inline_policy(
        self,
        role_id: str,
        *,
        policy_name: str,
        policy_document: Mapping[str, object],
    ) -> None: ...


@runtime_checkable
class DnsService(Protocol):
    async def ensure_zone(self, domain: str) -> Zone: ...

    async def upsert_record(self, zone_id: str, record: DnsRecord) -> str:
        """Create or replace ``record``; return its fully qualified name."""
        ...


@runtime_checkable
class CertificateService(Protocol):
    async def request_certificate(self, domain: str, *, method: str = "DNS") -> CertificateRequest: ...

    async def validation_status(self, arn: str, fqdns: Sequence[str]) -> ValidationStatus: ...


@runtime_checkable
class ComputeService(Protocol):
    async def ensure_load_balancer(
        self,
        name: str,
        *,
        listener: Mapping[str, object],
        target_group: Mapping[str, object],
    ) -> LoadBalancer: ...

    async def ensure_service(
        self,
        name: str,
        *,
        cluster: str,
        task: Mapping[str, object],
        desired_count: int = 1,
        assign_public_ip: bool = False,
    ) -> Service: ...


@dataclass(slots=True, kw_only=True)
class CloudServices:
    """Bundle of service ports handed to resource handlers."""

    registry: RegistryService
    images: ImageService
    tables: TableService
    identity: IdentityService
    dns: DnsService
    certificates: CertificateService
    compute: ComputeService
