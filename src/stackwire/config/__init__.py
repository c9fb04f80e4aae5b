"""Application configuration helpers."""

from __future__ import annotations

from .control_plane import ControlPlaneConfig, get_control_plane_config
from .deployment import DeploymentConfig, get_deployment_config
from .env import optional_env_var, require_env_vars
from .errors import ConfigurationError, InvalidConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config
from .validation import get_polling_policy

__all__ = [
    "ConfigurationError",
    "ControlPlaneConfig",
    "DatabaseConfig",
    "DeploymentConfig",
    "InvalidConfigurationError",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "get_control_plane_config",
    "get_database_config",
    "get_deployment_config",
    "get_polling_policy",
    "get_storage_config",
    "optional_env_var",
    "require_env_vars",
]
