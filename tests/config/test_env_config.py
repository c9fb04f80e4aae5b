from __future__ import annotations

from pathlib import Path

import pytest

from stackwire.config import (
    ConfigurationError,
    DeploymentConfig,
    InvalidConfigurationError,
    MissingConfigurationError,
    get_control_plane_config,
    get_database_config,
    get_deployment_config,
    get_polling_policy,
    get_storage_config,
    require_env_vars,
)


def test_require_env_vars_lists_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("FIRST_VAR", raising=False)
    monkeypatch.setenv("SECOND_VAR", "   ")

    with pytest.raises(MissingConfigurationError) as excinfo:
        require_env_vars(["FIRST_VAR", "SECOND_VAR"])

    assert "FIRST_VAR" in str(excinfo.value)
    assert "SECOND_VAR" in str(excinfo.value)


def test_deployment_config_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STACKWIRE_DOMAIN_NAME", "API.Diversitus.example.")
    monkeypatch.setenv("STACKWIRE_ROOT_DOMAIN", "diversitus.example")
    monkeypatch.setenv("STACKWIRE_PROJECT", "Job Board")
    monkeypatch.setenv("AWS_REGION", "eu-west-1")

    config = get_deployment_config()

    assert config.domain_name == "api.diversitus.example"
    assert config.region == "eu-west-1"
    assert config.prefix == "job-board"


def test_domain_outside_root_is_rejected() -> None:
    with pytest.raises(InvalidConfigurationError, match="not within"):
        DeploymentConfig(domain_name="api.other.example", root_domain="diversitus.example")


def test_polling_policy_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STACKWIRE_VALIDATION_INITIAL_INTERVAL", "1.5")
    monkeypatch.setenv("STACKWIRE_VALIDATION_MAX_ATTEMPTS", "7")

    policy = get_polling_policy()

    assert policy.initial_interval == 1.5
    assert policy.max_attempts == 7
    assert policy.max_total_wait == 45 * 60.0


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("STACKWIRE_VALIDATION_MULTIPLIER", "fast"),
        ("STACKWIRE_VALIDATION_MULTIPLIER", "0.5"),
    ],
)
def test_invalid_polling_values_raise(
    monkeypatch: pytest.MonkeyPatch,
    name: str,
    value: str,
) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigurationError):
        get_polling_policy()


def test_control_plane_config_carries_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STACKWIRE_CONTROL_PLANE_URL", "https://gateway.example/v1/")
    monkeypatch.setenv("STACKWIRE_CONTROL_PLANE_TOKEN", "secret")

    config = get_control_plane_config()

    assert config.base_url == "https://gateway.example/v1"
    assert config.resilience.default_headers is not None
    assert config.resilience.default_headers["Authorization"] == "Bearer secret"
    assert config.resilience.ratelimit is not None


def test_database_uri_defaults_to_data_dir(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    monkeypatch.delenv("STACKWIRE_DATABASE_URI", raising=False)
    monkeypatch.setenv("STACKWIRE_DATA_DIR", str(tmp_path))

    storage = get_storage_config()
    database = get_database_config(storage=storage)

    assert storage.database_path() == tmp_path.resolve() / "local-cloud.db"
    assert database.uri.endswith("local-cloud.db")


def test_database_uri_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STACKWIRE_DATABASE_URI", "sqlite+pysqlite:///:memory:")

    assert get_database_config().uri == "sqlite+pysqlite:///:memory:"
