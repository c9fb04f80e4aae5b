"""Create-or-update handlers, one per resource kind.

Each handler receives fully substituted inputs, calls the owning service port
and returns the observed outputs that downstream resources may reference.
Handlers never touch ``ResolvedResource`` state; the reconciler does.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from types import MappingProxyType
from typing import TYPE_CHECKING, cast

from stackwire.domain.model import ResourceKind, ValidationChallenge
from stackwire.domain.ports import AliasTarget, DnsRecord

from .waiter import wait_for_validation

if TYPE_CHECKING:
    from stackwire.domain.model import ResourceSpec, ValidationStatus

    from .contracts import HandlerContext, HandlersByKind, Outputs, ResourceHandler


def _mapping(inputs: Mapping[str, object], key: str) -> Mapping[str, object]:
    value = inputs.get(key, {})
    if not isinstance(value, Mapping):
        raise TypeError(f"Input {key!r} must be a mapping, got {type(value).__name__}")
    return cast("Mapping[str, object]", value)


def _string(inputs: Mapping[str, object], key: str, default: str | None = None) -> str:
    value = inputs.get(key, default)
    if not isinstance(value, str) or not value:
        raise TypeError(f"Input {key!r} must be a non-empty string")
    return value


async def reconcile_registry(
    spec: ResourceSpec, inputs: Mapping[str, object], context: HandlerContext
) -> Outputs:
    repository = await context.services.registry.ensure_repository(
        _string(inputs, "name", spec.name),
        force_delete=bool(inputs.get("force_delete", False)),
    )
    return {"name": repository.name, "url": repository.url}


async def reconcile_image(
    spec: ResourceSpec, inputs: Mapping[str, object], context: HandlerContext
) -> Outputs:
    _ = spec
    platform = inputs.get("platform")
    image = await context.services.images.build_and_push(
        context=_string(inputs, "context"),
        dockerfile=_string(inputs, "dockerfile"),
        repository_url=_string(inputs, "repository_url"),
        platform=platform if isinstance(platform, str) else None,
    )
    return {"image_uri": image.image_uri}


async def reconcile_table(
    spec: ResourceSpec, inputs: Mapping[str, object], context: HandlerContext
) -> Outputs:
    key_schema = {key: str(value) for key, value in _mapping(inputs, "key_schema").items()}
    indexes = cast("Sequence[Mapping[str, object]]", inputs.get("indexes", ()))
    tags = {key: str(value) for key, value in _mapping(inputs, "tags").items()}
    table = await context.services.tables.ensure_table(
        _string(inputs, "name", spec.name),
        key_schema=key_schema,
        indexes=tuple(indexes),
        billing_mode=_string(inputs, "billing_mode", "PAY_PER_REQUEST"),
        tags=tags or None,
    )
    return {"name": table.name, "arn": table.arn, "hash_key": table.hash_key}


async def reconcile_policy(
    spec: ResourceSpec, inputs: Mapping[str, object], context: HandlerContext
) -> Outputs:
    """Ensure the role, then attach the inline policy document to it."""

    identity = context.services.identity
    role = await identity.ensure_role(
        _string(inputs, "role_name", spec.name),
        assume_role_policy=_mapping(inputs, "assume_role_policy"),
    )
    policy_name = _string(inputs, "policy_name", spec.name)
    await identity.attach_inline_policy(
        role.id,
        policy_name=policy_name,
        policy_document=_mapping(inputs, "policy_document"),
    )
    return {"role_id": role.id, "role_arn": role.arn, "policy_name": policy_name}


async def reconcile_zone(
    spec: ResourceSpec, inputs: Mapping[str, object], context: HandlerContext
) -> Outputs:
    _ = spec
    zone = await context.services.dns.ensure_zone(_string(inputs, "domain"))
    return {"zone_id": zone.zone_id, "name_servers": list(zone.name_servers)}


async def reconcile_certificate(
    spec: ResourceSpec, inputs: Mapping[str, object], context: HandlerContext
) -> Outputs:
    _ = spec
    domain = _string(inputs, "domain")
    request = await context.services.certificates.request_certificate(
        domain,
        method=_string(inputs, "validation_method", "DNS"),
    )
    return {
        "arn": request.arn,
        "domain": domain,
        "validation_challenges": [challenge.to_mapping() for challenge in request.challenges],
    }


async def reconcile_validation_record(
    spec: ResourceSpec, inputs: Mapping[str, object], context: HandlerContext
) -> Outputs:
    """Publish the certificate's validation record and wait for the authority."""

    challenge = ValidationChallenge.from_mapping(_mapping(inputs, "challenge"))
    zone_id = _string(inputs, "zone_id")
    certificate_arn = _string(inputs, "certificate_arn")
    ttl = int(cast("int", inputs.get("ttl", 300)))
    dns = context.services.dns
    certificates = context.services.certificates

    async def publish(published: ValidationChallenge) -> None:
        await dns.upsert_record(
            zone_id,
            DnsRecord(
                name=published.record_name,
                type=published.record_type,
                values=(published.record_value,),
                ttl=ttl,
            ),
        )

    async def poll() -> ValidationStatus:
        return await certificates.validation_status(certificate_arn, [challenge.expected_fqdn])

    resolved = await wait_for_validation(
        challenge,
        spec=spec,
        publish=publish,
        poll=poll,
        policy=context.policy,
        cancellation=context.cancellation,
    )
    return {**resolved.outputs, "certificate_arn": certificate_arn}


async def reconcile_load_balancer(
    spec: ResourceSpec, inputs: Mapping[str, object], context: HandlerContext
) -> Outputs:
    balancer = await context.services.compute.ensure_load_balancer(
        _string(inputs, "name", spec.name),
        listener=_mapping(inputs, "listener"),
        target_group=_mapping(inputs, "target_group"),
    )
    return {
        "dns_name": balancer.dns_name,
        "zone_id": balancer.zone_id,
        "target_group_arn": balancer.target_group_arn,
    }


async def reconcile_service(
    spec: ResourceSpec, inputs: Mapping[str, object], context: HandlerContext
) -> Outputs:
    service = await context.services.compute.ensure_service(
        _string(inputs, "name", spec.name),
        cluster=_string(inputs, "cluster"),
        task=_mapping(inputs, "task"),
        desired_count=int(cast("int", inputs.get("desired_count", 1))),
        assign_public_ip=bool(inputs.get("assign_public_ip", False)),
    )
    return {"name": service.name, "cluster": service.cluster}


async def reconcile_dns_record(
    spec: ResourceSpec, inputs: Mapping[str, object], context: HandlerContext
) -> Outputs:
    _ = spec
    alias_input = inputs.get("alias")
    alias: AliasTarget | None = None
    if alias_input is not None:
        alias_values = _mapping(inputs, "alias")
        alias = AliasTarget(
            name=_string(alias_values, "name"),
            zone_id=_string(alias_values, "zone_id"),
            evaluate_target_health=bool(alias_values.get("evaluate_target_health", True)),
        )
    values = cast("Sequence[object]", inputs.get("values", ()))
    ttl = inputs.get("ttl")
    record = DnsRecord(
        name=_string(inputs, "name"),
        type=_string(inputs, "type"),
        values=tuple(str(value) for value in values),
        ttl=int(cast("int", ttl)) if ttl is not None else None,
        alias=alias,
    )
    fqdn = await context.services.dns.upsert_record(_string(inputs, "zone_id"), record)
    return {"fqdn": fqdn}


DEFAULT_HANDLERS: HandlersByKind = MappingProxyType(
    cast(
        "dict[ResourceKind, ResourceHandler]",
        {
            ResourceKind.REGISTRY: reconcile_registry,
            ResourceKind.IMAGE: reconcile_image,
            ResourceKind.TABLE: reconcile_table,
            ResourceKind.POLICY: reconcile_policy,
            ResourceKind.ZONE: reconcile_zone,
            ResourceKind.CERTIFICATE: reconcile_certificate,
            ResourceKind.VALIDATION_RECORD: reconcile_validation_record,
            ResourceKind.LOAD_BALANCER: reconcile_load_balancer,
            ResourceKind.SERVICE: reconcile_service,
            ResourceKind.DNS_RECORD: reconcile_dns_record,
        },
    )
)

VALIDATION_GATED_KINDS: frozenset[ResourceKind] = frozenset({ResourceKind.VALIDATION_RECORD})
