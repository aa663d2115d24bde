"""Tests for deployer settings and logging setup."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from tracker_deployer.config.settings import DeployerSettings, load_settings
from tracker_deployer.utils.logging import _json_default, _sanitize_event_dict, configure_logging


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Run from an empty directory so no stray .env file is read."""
    monkeypatch.chdir(tmp_path)
    for key in ("LOG_LEVEL", "LOG_FORMAT", "WORKING_DIR", "LOCK_TIMEOUT", "SKIP_FIREWALL"):
        monkeypatch.delenv(f"TRACKER_DEPLOYER_{key}", raising=False)


class TestDeployerSettings:
    def test_defaults(self, tmp_path: Path) -> None:
        settings = DeployerSettings()

        assert settings.working_dir == tmp_path
        assert settings.data_dir == tmp_path / "data"
        assert settings.build_dir == tmp_path / "build"
        assert settings.resolved_templates_dir == tmp_path / "templates"
        assert settings.log_level == "info"
        assert not settings.skip_docker_install

    def test_environment_variables(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("TRACKER_DEPLOYER_WORKING_DIR", str(tmp_path / "ws"))
        monkeypatch.setenv("TRACKER_DEPLOYER_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("TRACKER_DEPLOYER_SKIP_FIREWALL", "true")

        settings = DeployerSettings()

        assert settings.data_dir == tmp_path / "ws" / "data"
        assert settings.log_level == "debug"
        assert settings.skip_firewall is True

    def test_dotenv_file(self, tmp_path: Path) -> None:
        (tmp_path / ".env").write_text("TRACKER_DEPLOYER_LOCK_TIMEOUT=2.5\n")
        assert DeployerSettings().lock_timeout == 2.5

    def test_invalid_values(self) -> None:
        with pytest.raises(ValidationError):
            DeployerSettings(lock_timeout=0)
        with pytest.raises(ValidationError):
            DeployerSettings(log_format="xml")


class TestLoadSettings:
    def test_none_overrides_are_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TRACKER_DEPLOYER_LOG_LEVEL", "warning")

        settings = load_settings(log_level=None, log_format="json")

        assert settings.log_level == "warning"
        assert settings.log_format == "json"

    def test_overrides_win(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("TRACKER_DEPLOYER_WORKING_DIR", "/elsewhere")
        assert load_settings(working_dir=tmp_path).working_dir == tmp_path


# =============================================================================
# LOGGING
# =============================================================================


class TestLogging:
    def test_configure_logging_sets_level_and_file(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "deployer.log"

        configure_logging(level="warning", output_format="json", log_file=log_file)

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert len(root.handlers) == 2
        assert log_file.parent.is_dir()

    def test_json_default(self, tmp_path: Path) -> None:
        assert _json_default(tmp_path) == str(tmp_path)
        assert _json_default({"b", "a"}) == ["a", "b"]

    def test_long_strings_are_truncated(self) -> None:
        event = _sanitize_event_dict(logging.getLogger(), "info", {"stdout": "x" * 20000})
        assert event["stdout"].endswith("...<truncated>")
