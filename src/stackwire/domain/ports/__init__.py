"""Domain port definitions for adapters."""

from __future__ import annotations

from .services import (
    AliasTarget,
    CertificateRequest,
    CertificateService,
    CloudServices,
    ComputeService,
    DnsRecord,
    DnsService,
    IdentityService,
    Image,
    ImageService,
    LoadBalancer,
    RegistryService,
    Repository,
    Role,
    Service,
    Table,
    TableService,
    Zone,
)

__all__ = [
    "AliasTarget",
    "CertificateRequest",
    "CertificateService",
    "CloudServices",
    "ComputeService",
    "DnsRecord",
    "DnsService",
    "IdentityService",
    "Image",
    "ImageService",
    "LoadBalancer",
    "RegistryService",
    "Repository",
    "Role",
    "Service",
    "Table",
    "TableService",
    "Zone",
]
