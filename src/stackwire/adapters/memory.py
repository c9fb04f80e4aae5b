"""In-memory cloud implementing every service port.

Used for local previews and tests. Identifiers are derived from resource names,
so repeating a call converges on the stored resource. ``operations`` logs every
call and ``creations`` counts calls that actually created something, which is
what idempotence checks assert on.
"""

from __future__ import annotations

import copy
import hashlib
from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from logging import getLogger
from typing import Final

from stackwire.domain.errors import ServiceError
from stackwire.domain.model import ValidationChallenge, ValidationStatus
from stackwire.domain.ports import (
    CertificateRequest,
    CloudServices,
    DnsRecord,
    Image,
    LoadBalancer,
    Repository,
    Role,
    Service,
    Table,
    Zone,
)

log = getLogger(__name__)

DEFAULT_ACCOUNT_ID: Final[str] = "123456789012"
LOAD_BALANCER_ZONE_ID: Final[str] = "Z35SXDOTRQ7X7K"


def _digest(*parts: object, length: int = 12) -> str:
    payload = "\x1f".join(str(part) for part in parts).encode("utf-8")
    return hashlib.sha256(payload).hexdigest()[:length]


def _fqdn(name: str) -> str:
    return name.rstrip(".").lower()


@dataclass(slots=True)
class _StoredTable:
    table: Table
    key_schema: dict[str, str]
    indexes: list[dict[str, object]]
    billing_mode: str
    tags: dict[str, str]
    items: dict[str, dict[str, object]] = field(default_factory=dict["str", "dict[str, object]"])


@dataclass(slots=True)
class _StoredZone:
    zone: Zone
    domain: str
    records: dict[tuple[str, str], DnsRecord] = field(
        default_factory=dict["tuple[str, str]", "DnsRecord"]
    )


@dataclass(slots=True)
class _StoredCertificate:
    arn: str
    domain: str
    challenge: ValidationChallenge
    status: ValidationStatus = ValidationStatus.PENDING


class InMemoryCloud:
    """Deterministic, idempotent stand-in for the external cloud services."""

    def __init__(
        self,
        *,
        region: str = "us-east-1",
        account_id: str = DEFAULT_ACCOUNT_ID,
        validation_delay: int = 0,
    ) -> None:
        self.region = region
        self.account_id = account_id
        self.validation_delay = validation_delay
        self.operations: list[tuple[str, str]] = []
        self.creations: Counter[str] = Counter()
        self.repositories: dict[str, Repository] = {}
        self.images: dict[str, Image] = {}
        self.tables: dict[str, _StoredTable] = {}
        self.roles: dict[str, Role] = {}
        self.role_policies: dict[tuple[str, str], dict[str, object]] = {}
        self.zones: dict[str, _StoredZone] = {}
        self.certificates: dict[str, _StoredCertificate] = {}
        self.load_balancers: dict[str, tuple[LoadBalancer, dict[str, object]]] = {}
        self.services: dict[str, tuple[Service, dict[str, object]]] = {}
        self._validation_polls: Counter[str] = Counter()

    def as_services(self) -> CloudServices:
        return CloudServices(
            registry=self,
            images=self,
            tables=self,
            identity=self,
            dns=self,
            certificates=self,
            compute=self,
        )

    def _record(self, operation: str, subject: str, *, created: bool = False) -> None:
        self.operations.append((operation, subject))
        if created:
            self.creations[operation] += 1
            log.debug("Created %s via %s", subject, operation)

    def _arn(self, service: str, resource: str) -> str:
        return f"arn:aws:{service}:{self.region}:{self.account_id}:{resource}"

    # registry / images

    async def ensure_repository(self, name: str, *, force_delete: bool = False) -> Repository:
        _ = force_delete
        repository = self.repositories.get(name)
        self._record("ensure_repository", name, created=repository is None)
        if repository is None:
            url = f"{self.account_id}.dkr.ecr.{self.region}.amazonaws.com/{name}"
            repository = Repository(name=name, url=url)
            self.repositories[name] = repository
        return repository

    async def build_and_push(
        self,
        *,
        context: str,
        dockerfile: str,
        repository_url: str,
        platform: str | None = None,
    ) -> Image:
        digest = _digest(context, dockerfile, platform, length=64)
        image_uri = f"{repository_url}@sha256:{digest}"
        image = self.images.get(image_uri)
        self._record("build_and_push", image_uri, created=image is None)
        if image is None:
            image = Image(image_uri=image_uri)
            self.images[image_uri] = image
        return image

    # tables

    async def ensure_table(
        self,
        name: str,
        *,
        key_schema: Mapping[str, str],
        indexes: Sequence[Mapping[str, object]] = (),
        billing_mode: str = "PAY_PER_REQUEST",
        tags: Mapping[str, str] | None = None,
    ) -> Table:
        if not key_schema:
            raise ServiceError("ensure_table", f"table {name} needs a key schema")
        stored = self.tables.get(name)
        self._record("ensure_table", name, created=stored is None)
        if stored is None:
            table = Table(
                name=name,
                arn=self._arn("dynamodb", f"table/{name}"),
                hash_key=next(iter(key_schema)),
            )
            stored = _StoredTable(
                table=table,
                key_schema=dict(key_schema),
                indexes=[dict(index) for index in indexes],
                billing_mode=billing_mode,
                tags=dict(tags or {}),
            )
            self.tables[name] = stored
        else:
            stored.indexes = [dict(index) for index in indexes]
            stored.billing_mode = billing_mode
            stored.tags = dict(tags or {})
        return stored.table

    async def put_item(self, table_name: str, item: Mapping[str, object]) -> None:
        stored = self._table(table_name, "put_item")
        key = item.get(stored.table.hash_key)
        if not isinstance(key, str) or not key:
            raise ServiceError("put_item", f"item for {table_name} lacks {stored.table.hash_key}")
        self._record("put_item", f"{table_name}/{key}", created=key not in stored.items)
        stored.items[key] = copy.deepcopy(dict(item))

    async def scan_items(self, table_name: str) -> list[dict[str, object]]:
        stored = self._table(table_name, "scan_items")
        self._record("scan_items", table_name)
        return [copy.deepcopy(item) for item in stored.items.values()]

    def _table(self, table_name: str, operation: str) -> _StoredTable:
        stored = self.tables.get(table_name)
        if stored is None:
            raise ServiceError(operation, f"table {table_name} does not exist")
        return stored

    # identity

    async def ensure_role(self, name: str, *, assume_role_policy: Mapping[str, object]) -> Role:
        _ = assume_role_policy
        role = self.roles.get(name)
        self._record("ensure_role", name, created=role is None)
        if role is None:
            role = Role(id=name, arn=f"arn:aws:iam::{self.account_id}:role/{name}")
            self.roles[name] = role
        return role

    async def attach_inline_policy(
        self,
        role_id: str,
        *,
        policy_name: str,
        policy_document: Mapping[str, object],
    ) -> None:
        if role_id not in self.roles:
            raise ServiceError("attach_inline_policy", f"role {role_id} does not exist")
        key = (role_id, policy_name)
        self._record("attach_inline_policy", policy_name, created=key not in self.role_policies)
        self.role_policies[key] = copy.deepcopy(dict(policy_document))

    # dns

    async def ensure_zone(self, domain: str) -> Zone:
        domain = _fqdn(domain)
        stored = self.zones.get(domain)
        self._record("ensure_zone", domain, created=stored is None)
        if stored is None:
            zone_id = f"Z{_digest('zone', domain).upper()}"
            name_servers = tuple(
                f"ns-{index}.awsdns-{_digest(domain, index, length=2)}.net" for index in range(4)
            )
            stored = _StoredZone(
                zone=Zone(zone_id=zone_id, name_servers=name_servers), domain=domain
            )
            self.zones[domain] = stored
        return stored.zone

    async def upsert_record(self, zone_id: str, record: DnsRecord) -> str:
        stored = next((zone for zone in self.zones.values() if zone.zone.zone_id == zone_id), None)
        if stored is None:
            raise ServiceError("upsert_record", f"zone {zone_id} does not exist")
        fqdn = _fqdn(record.name)
        if fqdn != stored.domain and not fqdn.endswith(f".{stored.domain}"):
            raise ServiceError("upsert_record", f"{fqdn} is outside zone {stored.domain}")
        key = (fqdn, record.type)
        self._record("upsert_record", f"{fqdn}/{record.type}", created=key not in stored.records)
        stored.records[key] = record
        return fqdn

    def find_record(self, fqdn: str, record_type: str) -> DnsRecord | None:
        for stored in self.zones.values():
            record = stored.records.get((_fqdn(fqdn), record_type))
            if record is not None:
                return record
        return None

    # certificates

    async def request_certificate(self, domain: str, *, method: str = "DNS") -> CertificateRequest:
        if method != "DNS":
            raise ServiceError("request_certificate", f"unsupported validation method {method}")
        domain = _fqdn(domain)
        stored = self.certificates.get(domain)
        self._record("request_certificate", domain, created=stored is None)
        if stored is None:
            token = _digest("certificate", domain, length=32)
            stored = _StoredCertificate(
                arn=self._arn("acm", f"certificate/{_digest('arn', domain, length=36)}"),
                domain=domain,
                challenge=ValidationChallenge(
                    record_name=f"_{token}.{domain}.",
                    record_type="CNAME",
                    record_value=f"_{_digest('value', domain, length=32)}.acm-validations.aws.",
                ),
            )
            self.certificates[domain] = stored
        return CertificateRequest(arn=stored.arn, challenges=(stored.challenge,))

    async def validation_status(self, arn: str, fqdns: Sequence[str]) -> ValidationStatus:
        stored = next((cert for cert in self.certificates.values() if cert.arn == arn), None)
        if stored is None:
            raise ServiceError("validation_status", f"certificate {arn} does not exist")
        self._record("validation_status", arn)
        if stored.status is not ValidationStatus.PENDING:
            return stored.status

        expected = stored.challenge.expected_fqdn
        record = self.find_record(expected, stored.challenge.record_type)
        if expected not in {_fqdn(fqdn) for fqdn in fqdns} or record is None:
            return ValidationStatus.PENDING
        if stored.challenge.record_value not in record.values:
            return ValidationStatus.FAILURE

        self._validation_polls[arn] += 1
        if self._validation_polls[arn] <= self.validation_delay:
            return ValidationStatus.PENDING
        stored.status = ValidationStatus.SUCCESS
        return stored.status

    # compute

    async def ensure_load_balancer(
        self,
        name: str,
        *,
        listener: Mapping[str, object],
        target_group: Mapping[str, object],
    ) -> LoadBalancer:
        if listener.get("protocol") == "HTTPS":
            certificate_arn = listener.get("certificate_arn")
            issued = any(
                cert.arn == certificate_arn and cert.status is ValidationStatus.SUCCESS
                for cert in self.certificates.values()
            )
            if not issued:
                raise ServiceError(
                    "ensure_load_balancer", f"certificate {certificate_arn} is not issued"
                )
        existing = self.load_balancers.get(name)
        self._record("ensure_load_balancer", name, created=existing is None)
        if existing is None:
            balancer = LoadBalancer(
                dns_name=f"{name}-{_digest('lb', name, length=8)}.{self.region}.elb.amazonaws.com",
                zone_id=LOAD_BALANCER_ZONE_ID,
                target_group_arn=self._arn(
                    "elasticloadbalancing", f"targetgroup/{name}/{_digest('tg', name, length=16)}"
                ),
            )
        else:
            balancer = existing[0]
        self.load_balancers[name] = (
            balancer,
            {
                "listener": copy.deepcopy(dict(listener)),
                "target_group": copy.deepcopy(dict(target_group)),
            },
        )
        return balancer

    async def ensure_service(
        self,
        name: str,
        *,
        cluster: str,
        task: Mapping[str, object],
        desired_count: int = 1,
        assign_public_ip: bool = False,
    ) -> Service:
        existing = self.services.get(name)
        self._record("ensure_service", name, created=existing is None)
        service = existing[0] if existing is not None else Service(name=name, cluster=cluster)
        self.services[name] = (
            service,
            {
                "task": copy.deepcopy(dict(task)),
                "desired_count": desired_count,
                "assign_public_ip": assign_public_ip,
            },
        )
        return service
