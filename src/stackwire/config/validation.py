"""Polling budget for certificate validation."""

from __future__ import annotations

from stackwire.domain.reconciliation import PollingPolicy

from .env import optional_env_float, optional_env_int
from .errors import InvalidConfigurationError


def get_polling_policy() -> PollingPolicy:
    """Default policy with ``STACKWIRE_VALIDATION_*`` overrides."""

    defaults = PollingPolicy()
    try:
        return PollingPolicy(
            initial_interval=optional_env_float(
                "STACKWIRE_VALIDATION_INITIAL_INTERVAL", defaults.initial_interval
            ),
            multiplier=optional_env_float("STACKWIRE_VALIDATION_MULTIPLIER", defaults.multiplier),
            max_interval=optional_env_float(
                "STACKWIRE_VALIDATION_MAX_INTERVAL", defaults.max_interval
            ),
            max_total_wait=optional_env_float(
                "STACKWIRE_VALIDATION_MAX_TOTAL_WAIT", defaults.max_total_wait
            ),
            max_attempts=optional_env_int("STACKWIRE_VALIDATION_MAX_ATTEMPTS", None),
        )
    except ValueError as exc:
        raise InvalidConfigurationError("STACKWIRE_VALIDATION_*", "", str(exc)) from exc
