"""Process-wide settings for the deployer.

Values come from (highest priority first) explicit CLI options, environment
variables prefixed with ``TRACKER_DEPLOYER_`` and a ``.env`` file in the
current directory, then the defaults below.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "TRACKER_DEPLOYER_"
DATA_DIR_NAME = "data"
BUILD_DIR_NAME = "build"


class DeployerSettings(BaseSettings):
    """Runtime configuration shared by every command."""

    # Workspace
    working_dir: Path = Field(default_factory=Path.cwd)
    templates_dir: Path | None = None

    # Locking
    lock_timeout: float = Field(default=10.0, gt=0)

    # Remote access
    ssh_connect_timeout: float = Field(default=5.0, gt=0)
    ssh_wait_timeout: float = Field(default=300.0, gt=0)
    ssh_poll_interval: float = Field(default=5.0, gt=0)
    command_timeout: float = Field(default=1800.0, gt=0)

    # Container-based test environments cannot run these steps.
    skip_docker_install: bool = False
    skip_firewall: bool = False

    # External tools
    tofu_binary: str = "tofu"
    ansible_playbook_binary: str = "ansible-playbook"
    ssh_binary: str = "ssh"

    # Logging
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "info"
    log_format: Literal["text", "json"] = "text"
    log_file: Path | None = None

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level", "log_format", mode="before")
    @classmethod
    def _lowercase(cls, value: object) -> object:
        return value.lower() if isinstance(value, str) else value

    @property
    def data_dir(self) -> Path:
        return self.working_dir / DATA_DIR_NAME

    @property
    def build_dir(self) -> Path:
        return self.working_dir / BUILD_DIR_NAME

    @property
    def resolved_templates_dir(self) -> Path:
        return self.templates_dir or self.working_dir / "templates"


def load_settings(**overrides: object) -> DeployerSettings:
    """Build settings, letting non-``None`` overrides win over the environment."""
    return DeployerSettings(**{k: v for k, v in overrides.items() if v is not None})
