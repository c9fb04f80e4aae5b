"""Certificate validation artifacts."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass


@dataclass(frozen=True, slots=True, kw_only=True)
class ValidationChallenge:
    """DNS record the certificate authority queries before issuing a certificate."""

    record_name: str
    record_type: str
    record_value: str
    expected_fqdn: str = ""

    def __post_init__(self) -> None:
        if not self.expected_fqdn:
            object.__setattr__(self, "expected_fqdn", self.record_name.rstrip("."))

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> ValidationChallenge:
        return cls(
            record_name=str(payload["record_name"]),
            record_type=str(payload["record_type"]),
            record_value=str(payload["record_value"]),
            expected_fqdn=str(payload.get("expected_fqdn") or ""),
        )

    def to_mapping(self) -> dict[str, str]:
        return {
            "record_name": self.record_name,
            "record_type": self.record_type,
            "record_value": self.record_value,
            "expected_fqdn": self.expected_fqdn,
        }
