from __future__ import annotations

import asyncio

import pytest

from stackwire.adapters.memory import InMemoryCloud
from stackwire.domain.errors import ServiceError
from stackwire.domain.model import ValidationStatus
from stackwire.domain.ports import (
    CertificateService,
    ComputeService,
    DnsRecord,
    DnsService,
    IdentityService,
    ImageService,
    RegistryService,
    TableService,
)


def test_implements_every_port(cloud: InMemoryCloud) -> None:
    for port in (
        RegistryService,
        ImageService,
        TableService,
        IdentityService,
        DnsService,
        CertificateService,
        ComputeService,
    ):
        assert isinstance(cloud, port)


def test_repeated_calls_converge(cloud: InMemoryCloud) -> None:
    async def scenario() -> None:
        first = await cloud.ensure_repository("repo")
        second = await cloud.ensure_repository("repo")
        assert first == second
        zone_a = await cloud.ensure_zone("Example.com.")
        zone_b = await cloud.ensure_zone("example.com")
        assert zone_a == zone_b
        assert len(zone_a.name_servers) == 4

    asyncio.run(scenario())

    assert cloud.creations["ensure_repository"] == 1
    assert cloud.creations["ensure_zone"] == 1


def test_certificate_validates_once_record_is_published(cloud: InMemoryCloud) -> None:
    async def scenario() -> list[ValidationStatus]:
        zone = await cloud.ensure_zone("example.com")
        request = await cloud.request_certificate("api.example.com")
        challenge = request.challenges[0]
        fqdns = [challenge.expected_fqdn]
        before = await cloud.validation_status(request.arn, fqdns)
        await cloud.upsert_record(
            zone.zone_id,
            DnsRecord(
                name=challenge.record_name,
                type=challenge.record_type,
                values=(challenge.record_value,),
                ttl=300,
            ),
        )
        after = await cloud.validation_status(request.arn, fqdns)
        return [before, after]

    assert asyncio.run(scenario()) == [ValidationStatus.PENDING, ValidationStatus.SUCCESS]


def test_wrong_record_value_is_rejected(cloud: InMemoryCloud) -> None:
    async def scenario() -> ValidationStatus:
        zone = await cloud.ensure_zone("example.com")
        request = await cloud.request_certificate("api.example.com")
        challenge = request.challenges[0]
        await cloud.upsert_record(
            zone.zone_id,
            DnsRecord(name=challenge.record_name, type="CNAME", values=("wrong.",), ttl=300),
        )
        return await cloud.validation_status(request.arn, [challenge.expected_fqdn])

    assert asyncio.run(scenario()) is ValidationStatus.FAILURE


def test_https_listener_requires_issued_certificate(cloud: InMemoryCloud) -> None:
    async def scenario() -> None:
        request = await cloud.request_certificate("api.example.com")
        await cloud.ensure_load_balancer(
            "lb",
            listener={"port": 443, "protocol": "HTTPS", "certificate_arn": request.arn},
            target_group={"port": 8080, "protocol": "HTTP"},
        )

    with pytest.raises(ServiceError, match="not issued"):
        asyncio.run(scenario())


def test_put_item_replaces_the_whole_item(cloud: InMemoryCloud) -> None:
    async def scenario() -> list[dict[str, object]]:
        await cloud.ensure_table("jobs", key_schema={"id": "S"})
        await cloud.put_item("jobs", {"id": "1", "title": "Old", "extra": True})
        await cloud.put_item("jobs", {"id": "1", "title": "New"})
        return await cloud.scan_items("jobs")

    assert asyncio.run(scenario()) == [{"id": "1", "title": "New"}]


def test_record_outside_zone_is_rejected(cloud: InMemoryCloud) -> None:
    async def scenario() -> None:
        zone = await cloud.ensure_zone("example.com")
        await cloud.upsert_record(
            zone.zone_id, DnsRecord(name="other.org", type="A", values=("1.2.3.4",))
        )

    with pytest.raises(ServiceError, match="outside zone"):
        asyncio.run(scenario())
