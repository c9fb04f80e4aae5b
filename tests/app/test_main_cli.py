from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from stackwire import main as main_module
from stackwire.app import DeploymentResult
from stackwire.domain.errors import OperationCancelledError
from stackwire.domain.reconciliation import ReconciliationReport
from stackwire.domain.seeding import SeedIdentifiers, SeedResult

if TYPE_CHECKING:
    from stackwire.config import DeploymentConfig


@pytest.fixture(autouse=True)
def deployment_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STACKWIRE_DOMAIN_NAME", "app.diversitus.example")
    monkeypatch.setenv("STACKWIRE_ROOT_DOMAIN", "diversitus.example")
    monkeypatch.setattr(main_module, "load_dotenv", lambda: False)


def test_plan_prints_every_resource(capsys: pytest.CaptureFixture[str]) -> None:
    main_module.main(["plan"])

    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 12
    assert lines[0].startswith(" 1. diversitus-repo [registry]")


def test_deploy_passes_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    async def fake_deploy(config: DeploymentConfig, **kwargs: object) -> DeploymentResult:
        captured["domain"] = config.domain_name
        captured.update(kwargs)
        return DeploymentResult(report=ReconciliationReport(), exports={"url": "https://x"})

    monkeypatch.setattr(main_module, "deploy_stack_async", fake_deploy)

    main_module.main(["deploy", "--max-concurrency", "2", "--skip-seed"])

    assert captured["domain"] == "app.diversitus.example"
    assert captured["provider"] == "local"
    assert captured["max_concurrency"] == 2
    assert captured["seed_tables"] is False
    assert captured["cancellation"] is not None


def test_deploy_failure_exits_with_one(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_deploy(_config: DeploymentConfig, **_kwargs: object) -> DeploymentResult:
        report = ReconciliationReport(cancelled=True)
        return DeploymentResult(report=report, exports={})

    monkeypatch.setattr(main_module, "deploy_stack_async", fake_deploy)

    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["deploy"])

    assert excinfo.value.code == 1


def test_cancelled_deploy_exits_with_one(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    async def fake_deploy(_config: DeploymentConfig, **_kwargs: object) -> DeploymentResult:
        raise OperationCancelledError(report=ReconciliationReport(cancelled=True))

    monkeypatch.setattr(main_module, "deploy_stack_async", fake_deploy)

    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["deploy"])

    assert excinfo.value.code == 1
    assert "Cancelled" in capsys.readouterr().err


def test_seed_uses_table_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_seed(**kwargs: object) -> SeedResult:
        captured.update(kwargs)
        return SeedResult(companies=(), jobs=(), identifiers=SeedIdentifiers())

    monkeypatch.setattr(main_module, "seed_stack", fake_seed)

    main_module.main(["seed", "--companies-table", "c", "--jobs-table", "j"])

    assert captured["companies_table"] == "c"
    assert captured["jobs_table"] == "j"


def test_missing_configuration_exits_with_two(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("STACKWIRE_DOMAIN_NAME")

    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["plan"])

    assert excinfo.value.code == 2


def test_invalid_concurrency_exits_with_two() -> None:
    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["deploy", "--max-concurrency", "0"])

    assert excinfo.value.code == 2
