"""Provisioning gateway configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_float, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

CONTROL_PLANE_TIMEOUT_SECONDS = 60.0
CONTROL_PLANE_RATE_LIMIT = RateLimit(max_calls=10, per_seconds=1.0)


@dataclass(frozen=True, slots=True)
class ControlPlaneConfig:
    """Holds provisioning gateway connection values."""

    base_url: str
    resilience: ResilienceConfig


def get_control_plane_config(*, resilience: ResilienceConfig | None = None) -> ControlPlaneConfig:
    values = require_env_vars(("STACKWIRE_CONTROL_PLANE_URL", "STACKWIRE_CONTROL_PLANE_TOKEN"))
    base_url = values["STACKWIRE_CONTROL_PLANE_URL"].rstrip("/")
    return ControlPlaneConfig(
        base_url=base_url,
        resilience=resilience
        or ResilienceConfig(
            name="control-plane",
            base_url=base_url,
            timeout_seconds=optional_env_float(
                "STACKWIRE_CONTROL_PLANE_TIMEOUT", CONTROL_PLANE_TIMEOUT_SECONDS
            ),
            retry=RetryPolicy(total=5),
            ratelimit=CONTROL_PLANE_RATE_LIMIT,
            default_headers={
                "Authorization": f"Bearer {values['STACKWIRE_CONTROL_PLANE_TOKEN']}",
                "Accept": "application/json",
            },
        ),
    )
