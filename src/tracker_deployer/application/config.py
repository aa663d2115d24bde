"""Environment definition file accepted by ``create`` and ``validate``.

Example::

    {
      "environment": {"name": "e2e"},
      "ssh_credentials": {
        "private_key_path": "fixtures/testing_rsa",
        "public_key_path": "fixtures/testing_rsa.pub"
      },
      "provider": {"provider": "lxd", "profile_name": "torrust-profile-e2e"}
    }

``provider`` is optional and defaults to LXD with the environment's default
profile name.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from tracker_deployer.application.errors import InvalidDefinitionError
from tracker_deployer.domain.values import (
    DEFAULT_SSH_PORT,
    DEFAULT_SSH_USERNAME,
    EnvironmentName,
    HetznerConfig,
    InstanceName,
    InvalidValueError,
    LxdConfig,
    ProfileName,
    SshCredentials,
    SshKeyNotFoundError,
    Username,
)


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


class EnvironmentSection(_Section):
    name: str
    instance_name: str | None = None


class SshCredentialsSection(_Section):
    private_key_path: Path
    public_key_path: Path
    username: str = DEFAULT_SSH_USERNAME
    port: int = DEFAULT_SSH_PORT


class LxdProviderSection(_Section):
    provider: Literal["lxd"]
    profile_name: str | None = None


class HetznerProviderSection(_Section):
    provider: Literal["hetzner"]
    api_token: str
    server_type: str = "cx22"
    location: str = "nbg1"
    image: str = "ubuntu-24.04"


ProviderSection = Annotated[
    Union[LxdProviderSection, HetznerProviderSection], Field(discriminator="provider")
]


@dataclass(frozen=True)
class ValidatedParams:
    """Domain values built from a definition file."""

    name: EnvironmentName
    instance_name: InstanceName
    provider_config: LxdConfig | HetznerConfig
    ssh_credentials: SshCredentials


class EnvironmentCreationConfig(_Section):
    """Parsed (but not yet domain-validated) environment definition."""

    environment: EnvironmentSection
    ssh_credentials: SshCredentialsSection
    provider: ProviderSection | None = None

    @classmethod
    def from_json(cls, text: str, source: Path | None = None) -> EnvironmentCreationConfig:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise InvalidDefinitionError(f"Definition is not valid JSON: {exc}", source) from exc
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise InvalidDefinitionError(_format_validation_error(exc), source) from exc

    @classmethod
    def from_file(cls, path: Path) -> EnvironmentCreationConfig:
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise InvalidDefinitionError(f"Definition file not found: {path}", path) from exc
        except OSError as exc:
            raise InvalidDefinitionError(f"Cannot read definition file {path}: {exc}", path) from exc
        return cls.from_json(text, path)

    def to_params(self) -> ValidatedParams:
        """Convert to domain values, raising InvalidDefinitionError on the first bad value."""
        try:
            name = EnvironmentName(self.environment.name)
            instance_name = (
                InstanceName(self.environment.instance_name)
                if self.environment.instance_name
                else InstanceName.for_environment(name)
            )
            provider_config = self._provider_config(name)
            ssh = self.ssh_credentials
            credentials = SshCredentials(
                private_key_path=ssh.private_key_path.expanduser(),
                public_key_path=ssh.public_key_path.expanduser(),
                username=Username(ssh.username),
                port=ssh.port,
            )
        except (InvalidValueError, ValidationError) as exc:
            message = _format_validation_error(exc) if isinstance(exc, ValidationError) else str(exc)
            raise InvalidDefinitionError(message) from exc
        return ValidatedParams(name, instance_name, provider_config, credentials)

    def _provider_config(self, name: EnvironmentName) -> LxdConfig | HetznerConfig:
        section = self.provider
        if isinstance(section, HetznerProviderSection):
            return HetznerConfig(
                api_token=section.api_token,
                server_type=section.server_type,
                location=section.location,
                image=section.image,
            )
        if isinstance(section, LxdProviderSection) and section.profile_name:
            return LxdConfig(profile_name=ProfileName(section.profile_name))
        return LxdConfig(profile_name=ProfileName.for_environment(name))


def _format_validation_error(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "<root>"
        problems.append(f"{location}: {error['msg']}")
    return "Invalid environment definition: " + "; ".join(problems)


def missing_key_warnings(params: ValidatedParams) -> list[str]:
    """Key files that do not exist yet, reported by ``validate`` as warnings."""
    credentials = params.ssh_credentials
    return [
        str(SshKeyNotFoundError(path, key_type))
        for path, key_type in (
            (credentials.private_key_path, "private"),
            (credentials.public_key_path, "public"),
        )
        if not path.is_file()
    ]


__all__ = [
    "EnvironmentSection",
    "SshCredentialsSection",
    "LxdProviderSection",
    "HetznerProviderSection",
    "EnvironmentCreationConfig",
    "ValidatedParams",
    "missing_key_warnings",
]
