"""HTTP client for the provisioning gateway.

Every operation is a create-or-update on a resource-oriented REST API, so a
retried request converges on the same resource.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from stackwire.adapters.http_resilience import ResilientClient
from stackwire.config import get_control_plane_config
from stackwire.domain.errors import ServiceError
from stackwire.domain.model import ValidationChallenge
from stackwire.domain.ports import (
    CertificateRequest,
    CloudServices,
    Image,
    LoadBalancer,
    Repository,
    Role,
    Service,
    Table,
    Zone,
)

from .schema import (
    CertificatePayload,
    ErrorResponse,
    ImagePayload,
    ItemsPage,
    LoadBalancerPayload,
    RecordPayload,
    RepositoryPayload,
    RolePayload,
    ServicePayload,
    TablePayload,
    ValidationStatusPayload,
    ZonePayload,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence
    from types import TracebackType

    from stackwire.config import ControlPlaneConfig, ResilienceConfig
    from stackwire.domain.model import ValidationStatus
    from stackwire.domain.ports import DnsRecord

log = getLogger(__name__)


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _segment(value: str) -> str:
    return quote(value, safe="")


@dataclass(slots=True)
class ControlPlaneClient:
    """Implements every service port against the provisioning gateway."""

    config: ControlPlaneConfig = field(default_factory=get_control_plane_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    _client: ResilientClient | None = field(default=None, init=False)

    async def __aenter__(self) -> ControlPlaneClient:
        self._client = self.client_factory(self.config.resilience)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

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

    # registry / images

    async def ensure_repository(self, name: str, *, force_delete: bool = False) -> Repository:
        payload = await self._call(
            "ensure_repository",
            "PUT",
            f"/registries/{_segment(name)}",
            RepositoryPayload,
            json={"forceDelete": force_delete},
        )
        return Repository(name=payload.name, url=payload.url)

    async def build_and_push(
        self,
        *,
        context: str,
        dockerfile: str,
        repository_url: str,
        platform: str | None = None,
    ) -> Image:
        payload = await self._call(
            "build_and_push",
            "POST",
            "/images",
            ImagePayload,
            json={
                "context": context,
                "dockerfile": dockerfile,
                "repositoryUrl": repository_url,
                "platform": platform,
            },
        )
        return Image(image_uri=payload.image_uri)

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
        payload = await self._call(
            "ensure_table",
            "PUT",
            f"/tables/{_segment(name)}",
            TablePayload,
            json={
                "keySchema": dict(key_schema),
                "indexes": [dict(index) for index in indexes],
                "billingMode": billing_mode,
                "tags": dict(tags or {}),
            },
        )
        return Table(name=payload.name, arn=payload.arn, hash_key=payload.hash_key)

    async def put_item(self, table_name: str, item: Mapping[str, object]) -> None:
        path = f"/tables/{_segment(table_name)}/items"
        await self._send("put_item", "PUT", path, json=dict(item))

    async def scan_items(self, table_name: str) -> list[dict[str, object]]:
        items: list[dict[str, object]] = []
        next_token: str | None = None
        while True:
            params = {"nextToken": next_token} if next_token else None
            page = await self._call(
                "scan_items",
                "GET",
                f"/tables/{_segment(table_name)}/items",
                ItemsPage,
                params=params,
            )
            items.extend(page.items)
            if not page.next_token:
                return items
            next_token = page.next_token

    # identity

    async def ensure_role(self, name: str, *, assume_role_policy: Mapping[str, object]) -> Role:
        payload = await self._call(
            "ensure_role",
            "PUT",
            f"/roles/{_segment(name)}",
            RolePayload,
            json={"assumeRolePolicy": dict(assume_role_policy)},
        )
        return Role(id=payload.id, arn=payload.arn)

    async def attach_inline_policy(
        self,
        role_id: str,
        *,
        policy_name: str,
        policy_document: Mapping[str, object],
    ) -> None:
        await self._send(
            "attach_inline_policy",
            "PUT",
            f"/roles/{_segment(role_id)}/policies/{_segment(policy_name)}",
            json={"document": dict(policy_document)},
        )

    # dns

    async def ensure_zone(self, domain: str) -> Zone:
        payload = await self._call("ensure_zone", "PUT", f"/zones/{_segment(domain)}", ZonePayload)
        return Zone(zone_id=payload.zone_id, name_servers=tuple(payload.name_servers))

    async def upsert_record(self, zone_id: str, record: DnsRecord) -> str:
        body: dict[str, object] = {"name": record.name, "type": record.type}
        if record.alias is not None:
            body["alias"] = {
                "name": record.alias.name,
                "zoneId": record.alias.zone_id,
                "evaluateTargetHealth": record.alias.evaluate_target_health,
            }
        else:
            body["values"] = list(record.values)
            body["ttl"] = record.ttl
        payload = await self._call(
            "upsert_record",
            "PUT",
            f"/zones/{_segment(zone_id)}/records",
            RecordPayload,
            json=body,
        )
        return payload.fqdn

    # certificates

    async def request_certificate(self, domain: str, *, method: str = "DNS") -> CertificateRequest:
        payload = await self._call(
            "request_certificate",
            "POST",
            "/certificates",
            CertificatePayload,
            json={"domain": domain, "validationMethod": method},
        )
        return CertificateRequest(
            arn=payload.arn,
            challenges=tuple(
                ValidationChallenge(
                    record_name=challenge.record_name,
                    record_type=challenge.record_type,
                    record_value=challenge.record_value,
                )
                for challenge in payload.challenges
            ),
        )

    async def validation_status(self, arn: str, fqdns: Sequence[str]) -> ValidationStatus:
        payload = await self._call(
            "validation_status",
            "GET",
            "/certificates/validation",
            ValidationStatusPayload,
            params=[("arn", arn), *(("fqdn", fqdn) for fqdn in fqdns)],
        )
        return payload.status

    # compute

    async def ensure_load_balancer(
        self,
        name: str,
        *,
        listener: Mapping[str, object],
        target_group: Mapping[str, object],
    ) -> LoadBalancer:
        payload = await self._call(
            "ensure_load_balancer",
            "PUT",
            f"/load-balancers/{_segment(name)}",
            LoadBalancerPayload,
            json={"listener": dict(listener), "targetGroup": dict(target_group)},
        )
        return LoadBalancer(
            dns_name=payload.dns_name,
            zone_id=payload.zone_id,
            target_group_arn=payload.target_group_arn,
        )

    async def ensure_service(
        self,
        name: str,
        *,
        cluster: str,
        task: Mapping[str, object],
        desired_count: int = 1,
        assign_public_ip: bool = False,
    ) -> Service:
        payload = await self._call(
            "ensure_service",
            "PUT",
            f"/services/{_segment(name)}",
            ServicePayload,
            json={
                "cluster": cluster,
                "task": dict(task),
                "desiredCount": desired_count,
                "assignPublicIp": assign_public_ip,
            },
        )
        return Service(name=payload.name, cluster=payload.cluster)

    async def _call[TModel: BaseModel](
        self,
        operation: str,
        method: str,
        path: str,
        model: type[TModel],
        *,
        json: object = None,
        params: Mapping[str, str] | Sequence[tuple[str, str]] | None = None,
    ) -> TModel:
        response = await self._send(operation, method, path, json=json, params=params)
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ServiceError(
                operation, f"unexpected response payload: {exc}", status_code=response.status_code
            ) from exc

    async def _send(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        json: object = None,
        params: Mapping[str, str] | Sequence[tuple[str, str]] | None = None,
    ) -> httpx.Response:
        if self._client is None:
            raise ServiceError(operation, "client is not open")
        try:
            response = await self._client.request(method, path, json=json, params=params)
        except httpx.HTTPError as exc:
            raise ServiceError(operation, f"request failed: {exc}") from exc
        if response.is_error:
            raise self._error(operation, response)
        return response


    @staticmethod
    def _error(operation: str, response: httpx.Response) -> ServiceError:
        message = response.reason_phrase or "request failed"
        try:
            message = ErrorResponse.model_validate(response.json()).error.message
        except (ValueError, ValidationError):
            pass
        log.error("Control plane error %s during %s: %s", response.status_code, operation, message)
        return ServiceError(operation, message, status_code=response.status_code)


if TYPE_CHECKING:
    from stackwire.domain.ports import (
        CertificateService,
        ComputeService,
        DnsService,
        IdentityService,
        ImageService,
        RegistryService,
        TableService,
    )

    _client_stub = ControlPlaneClient.__new__(ControlPlaneClient)
    _registry_check: RegistryService = _client_stub
    _image_check: ImageService = _client_stub
    _table_check: TableService = _client_stub
    _identity_check: IdentityService = _client_stub
    _dns_check: DnsService = _client_stub
    _certificate_check: CertificateService = _client_stub
    _compute_check: ComputeService = _client_stub
