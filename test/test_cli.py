import pytest
from typer.testing import CliRunner

from smartctl_tui import __version__, cli
from smartctl_tui.errors import StartupError

runner = CliRunner()


class UnavailableManager:
    name = "unavailable"

    async def check(self) -> None:
        raise StartupError("systemctl is not usable: systemctl not found")


@pytest.fixture(autouse=True)
def isolated(monkeypatch):
    for var in ("SMARTCTL_BACKEND", "SMARTCTL_SCOPE", "SMARTCTL_TIMEOUT", "SMARTCTL_LOG_FILE", "SMARTCTL_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(cli, "configure_logging", lambda settings: None)


def test_version():
    result = runner.invoke(cli.app, ["--version"])
    assert result.exit_code == 0
    assert result.output.strip() == __version__


def test_runs_dashboard_with_configured_manager(monkeypatch, fake_manager):
    launched = []
    monkeypatch.setenv("SMARTCTL_SCOPE", "user")
    monkeypatch.setattr(cli, "make_manager", lambda settings: (launched.append(settings), fake_manager)[1])
    monkeypatch.setattr(cli, "run_dash", lambda manager: launched.append(manager))

    result = runner.invoke(cli.app, [])

    assert result.exit_code == 0, result.output
    settings, manager = launched
    assert settings.user is True
    assert manager is fake_manager


def test_startup_failure_exits_non_zero(monkeypatch):
    launched = []
    monkeypatch.setattr(cli, "make_manager", lambda settings: UnavailableManager())
    monkeypatch.setattr(cli, "run_dash", lambda manager: launched.append(manager))

    result = runner.invoke(cli.app, [])

    assert result.exit_code == 1
    assert "systemctl is not usable" in result.output
    assert launched == []


def test_bad_config_exits_with_usage_code(monkeypatch):
    launched = []
    monkeypatch.setenv("SMARTCTL_BACKEND", "upstart")
    monkeypatch.setattr(cli, "run_dash", lambda manager: launched.append(manager))

    result = runner.invoke(cli.app, [])

    assert result.exit_code == 2
    assert "SMARTCTL_BACKEND" in result.output
    assert launched == []


def test_rejects_subcommands():
    result = runner.invoke(cli.app, ["ps"])
    assert result.exit_code != 0
