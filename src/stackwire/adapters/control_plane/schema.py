"""Pydantic models describing the provisioning gateway payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stackwire.domain.model import ValidationStatus


class ControlPlaneModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ErrorDetail(ControlPlaneModel):
    code: str
    message: str


class ErrorResponse(ControlPlaneModel):
    error: ErrorDetail


class RepositoryPayload(ControlPlaneModel):
    name: str
    url: str


class ImagePayload(ControlPlaneModel):
    image_uri: str = Field(alias="imageUri")


class TablePayload(ControlPlaneModel):
    name: str
    arn: str
    hash_key: str = Field(alias="hashKey")


class ItemsPage(ControlPlaneModel):
    items: list[dict[str, object]]
    next_token: str | None = Field(default=None, alias="nextToken")


class RolePayload(ControlPlaneModel):
    id: str
    arn: str


class ZonePayload(ControlPlaneModel):
    zone_id: str = Field(alias="zoneId")
    name_servers: list[str] = Field(alias="nameServers")


class RecordPayload(ControlPlaneModel):
    fqdn: str

    @field_validator("fqdn")
    @classmethod
    def _strip_root(cls, value: str) -> str:
        return value.rstrip(".")


class ChallengePayload(ControlPlaneModel):
    record_name: str = Field(alias="recordName")
    record_type: str = Field(alias="recordType")
    record_value: str = Field(alias="recordValue")


class CertificatePayload(ControlPlaneModel):
    arn: str
    challenges: list[ChallengePayload] = Field(default_factory=list)


class ValidationStatusPayload(ControlPlaneModel):
    status: ValidationStatus

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class LoadBalancerPayload(ControlPlaneModel):
    dns_name: str = Field(alias="dnsName")
    zone_id: str = Field(alias="zoneId")
    target_group_arn: str = Field(alias="targetGroupArn")


class ServicePayload(ControlPlaneModel):
    name: str
    cluster: str
