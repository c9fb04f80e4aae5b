"""Public domain model surface."""

from __future__ import annotations

from stackwire.domain.model.enums import ResourceKind, ResourceStatus, ValidationStatus
from stackwire.domain.model.records import CompanyInput, JobInput, LogicalRecord
from stackwire.domain.model.resources import (
    Interpolation,
    Reference,
    ResolvedResource,
    ResourceSpec,
    interpolate,
    iter_references,
    ref,
)
from stackwire.domain.model.validation import ValidationChallenge

__all__ = [
    "CompanyInput",
    "Interpolation",
    "JobInput",
    "LogicalRecord",
    "Reference",
    "ResolvedResource",
    "ResourceKind",
    "ResourceSpec",
    "ResourceStatus",
    "ValidationChallenge",
    "ValidationStatus",
    "interpolate",
    "iter_references",
    "ref",
]
