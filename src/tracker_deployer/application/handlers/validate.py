"""Validate command: check a definition file without creating anything."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from tracker_deployer.application.config import (
    EnvironmentCreationConfig,
    ValidatedParams,
    missing_key_warnings,
)
from tracker_deployer.application.handlers.common import CommandHandler


@dataclass(frozen=True)
class ValidationReport:
    params: ValidatedParams
    already_exists: bool
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "valid": True,
            "name": self.params.name,
            "instance_name": self.params.instance_name,
            "provider": self.params.provider_config.provider,
            "ssh_username": self.params.ssh_credentials.username,
            "ssh_port": self.params.ssh_credentials.port,
            "already_exists": self.already_exists,
            "warnings": self.warnings,
        }


class ValidateCommandHandler(CommandHandler):
    command = "validate"

    def execute(self, env_file: Path) -> ValidationReport:
        """Parse and validate ``env_file``; raises InvalidDefinitionError if it is invalid."""
        params = EnvironmentCreationConfig.from_file(env_file).to_params()
        warnings = missing_key_warnings(params)
        already_exists = self.repository.exists(params.name)
        if already_exists:
            warnings.append(f"Environment '{params.name}' already exists; create would fail")
        self.logger.info("validate.completed", environment=params.name, warnings=len(warnings))
        return ValidationReport(params=params, already_exists=already_exists, warnings=warnings)
