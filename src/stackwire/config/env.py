"""Environment variable loaders for configuration."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from .errors import InvalidConfigurationError, MissingConfigurationError

if TYPE_CHECKING:
    from collections.abc import Sequence


def require_env_vars(names: Sequence[str]) -> dict[str, str]:
    """Return the given environment variables or raise if any are missing/blank."""

    missing = [name for name in names if not (os.getenv(name) or "").strip()]
    if missing:
        raise MissingConfigurationError(f"Missing configuration for: {', '.join(sorted(missing))}")
    return {name: os.environ[name].strip() for name in names}


def optional_env_var(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def optional_env_float(name: str, default: float) -> float:
    raw = optional_env_var(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise InvalidConfigurationError(name, raw, "expected a number") from exc


def optional_env_int(name: str, default: int | None) -> int | None:
    raw = optional_env_var(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise InvalidConfigurationError(name, raw, "expected an integer") from exc
