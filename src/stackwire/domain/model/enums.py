"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class ResourceKind(StrEnum):
    REGISTRY = "registry"
    IMAGE = "image"
    TABLE = "table"
    POLICY = "policy"
    ZONE = "zone"
    CERTIFICATE = "certificate"
    VALIDATION_RECORD = "validation_record"
    LOAD_BALANCER = "load_balancer"
    SERVICE = "service"
    DNS_RECORD = "dns_record"


class ResourceStatus(StrEnum):
    """Lifecycle of one node during a reconciliation run."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    VALIDATED = "validated"
    FAILED = "failed"


class ValidationStatus(StrEnum):
    """Status reported by the certificate authority while a challenge is checked."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"
