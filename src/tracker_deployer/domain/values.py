"""Validated value objects shared by the environment aggregate.

Names are ``str`` subclasses so they serialize as plain JSON strings while
still being validated on construction and when loaded by pydantic.
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic_core import core_schema

from tracker_deployer.domain.errors import ErrorKind, Traceable

MAX_NAME_LENGTH = 63
MAX_USERNAME_LENGTH = 32
DEFAULT_SSH_USERNAME = "torrust"
DEFAULT_SSH_PORT = 22


class InvalidValueError(Traceable, ValueError):
    """A user supplied value failed domain validation."""

    kind = ErrorKind.CONFIGURATION


class EnvironmentNameError(InvalidValueError):
    """Raised when an environment name is not DNS safe."""

    VALID_EXAMPLES = (
        "dev",
        "staging",
        "production",
        "e2e-config",
        "e2e-provision",
        "e2e-full",
        "release-v1-2",
    )

    def __init__(self, attempted: str, reason: str):
        self.attempted = attempted
        self.reason = reason
        super().__init__(
            f"Invalid environment name '{attempted}': {reason}. "
            f"Valid examples: {', '.join(self.VALID_EXAMPLES)}"
        )


class _ValidatedName(str):
    """Base for validated string identifiers."""

    def __new__(cls, value: str):
        if not isinstance(value, str):
            raise TypeError(f"{cls.__name__} must be a string, got {type(value).__name__}")
        cls.validate(value)
        return super().__new__(cls, value)

    @classmethod
    def validate(cls, value: str) -> None:
        raise NotImplementedError

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> core_schema.CoreSchema:
        return core_schema.no_info_after_validator_function(cls, core_schema.str_schema())


def _check_dns_label(value: str, error: type[EnvironmentNameError] | None, label: str) -> None:
    def fail(reason: str) -> None:
        if error is not None:
            raise error(value, reason)
        raise InvalidValueError(f"Invalid {label} '{value}': {reason}")

    if not value:
        fail("name is empty")
    if len(value) > MAX_NAME_LENGTH:
        fail(f"longer than {MAX_NAME_LENGTH} characters")
    if value[0].isdigit():
        fail("starts with a number")
    uppercase = sorted({ch for ch in value if ch.isascii() and ch.isupper()})
    if uppercase:
        fail(f"contains uppercase letters: {''.join(uppercase)}")
    invalid = sorted({ch for ch in value if not (ch.isascii() and (ch.islower() or ch.isdigit() or ch == "-"))})
    if invalid:
        fail(f"contains invalid characters: {''.join(invalid)}")
    if value.startswith("-"):
        fail("starts with dash")
    if value.endswith("-"):
        fail("ends with dash")
    if "--" in value:
        fail("contains consecutive dashes")


class EnvironmentName(_ValidatedName):
    """Lowercase, DNS-safe environment identifier.

    Also used as the on-disk directory key under ``data/`` and ``build/``.
    """

    @classmethod
    def validate(cls, value: str) -> None:
        _check_dns_label(value, EnvironmentNameError, "environment name")


class InstanceName(_ValidatedName):
    """Name of the VM or cloud server backing an environment."""

    @classmethod
    def validate(cls, value: str) -> None:
        _check_dns_label(value, None, "instance name")

    @classmethod
    def for_environment(cls, name: EnvironmentName) -> InstanceName:
        return cls(f"torrust-tracker-vm-{name}")


class ProfileName(_ValidatedName):
    """LXD profile name."""

    @classmethod
    def validate(cls, value: str) -> None:
        _check_dns_label(value, None, "profile name")

    @classmethod
    def for_environment(cls, name: EnvironmentName) -> ProfileName:
        return cls(f"torrust-profile-{name}")


_USERNAME_PATTERN = re.compile(r"^[a-z_][a-z0-9_-]*$")


class Username(_ValidatedName):
    """Linux user name used for SSH access."""

    @classmethod
    def validate(cls, value: str) -> None:
        if not value:
            raise InvalidValueError("Invalid username: empty")
        if len(value) > MAX_USERNAME_LENGTH:
            raise InvalidValueError(
                f"Invalid username '{value}': longer than {MAX_USERNAME_LENGTH} characters"
            )
        if not _USERNAME_PATTERN.match(value):
            raise InvalidValueError(
                f"Invalid username '{value}': must start with a lowercase letter or "
                "underscore and contain only lowercase letters, digits, '_' or '-'"
            )


# ==================== SSH CREDENTIALS ====================


class SshKeyNotFoundError(Traceable, FileNotFoundError):
    """An SSH key file required by an adapter does not exist."""

    kind = ErrorKind.CONFIGURATION

    def __init__(self, path: Path, key_type: str):
        self.path = path
        self.key_type = key_type
        super().__init__(f"SSH {key_type} key not found: {path}")


class SshCredentials(BaseModel):
    """Key pair, user and port used to reach an instance.

    Key files are not checked here: a definition may be validated before the
    keys are deployed. Call :meth:`ensure_keys_exist` when they are needed.
    """

    model_config = ConfigDict(frozen=True)

    private_key_path: Path
    public_key_path: Path
    username: Username = Username(DEFAULT_SSH_USERNAME)
    port: int = Field(default=DEFAULT_SSH_PORT, ge=1, le=65535)

    def ensure_keys_exist(self) -> None:
        if not self.private_key_path.is_file():
            raise SshKeyNotFoundError(self.private_key_path, "private")
        if not self.public_key_path.is_file():
            raise SshKeyNotFoundError(self.public_key_path, "public")

    def read_public_key(self) -> str:
        self.ensure_keys_exist()
        return self.public_key_path.read_text(encoding="utf-8").strip()


# ==================== PROVIDERS ====================


class Provider(str, Enum):
    """Infrastructure provider backing an environment."""

    LXD = "lxd"
    HETZNER = "hetzner"

    @property
    def display_name(self) -> str:
        return {"lxd": "LXD", "hetzner": "Hetzner Cloud"}[self.value]


class LxdConfig(BaseModel):
    """Local LXD virtual machine."""

    model_config = ConfigDict(frozen=True)

    provider: Literal["lxd"] = "lxd"
    profile_name: ProfileName


class HetznerConfig(BaseModel):
    """Hetzner Cloud server."""

    model_config = ConfigDict(frozen=True)

    provider: Literal["hetzner"] = "hetzner"
    api_token: str = Field(min_length=1)
    server_type: str = "cx22"
    location: str = "nbg1"
    image: str = "ubuntu-24.04"


ProviderConfig = Annotated[Union[LxdConfig, HetznerConfig], Field(discriminator="provider")]


def provider_of(config: LxdConfig | HetznerConfig) -> Provider:
    return Provider(config.provider)


__all__ = [
    "InvalidValueError",
    "EnvironmentNameError",
    "EnvironmentName",
    "InstanceName",
    "ProfileName",
    "Username",
    "SshKeyNotFoundError",
    "SshCredentials",
    "Provider",
    "LxdConfig",
    "HetznerConfig",
    "ProviderConfig",
    "provider_of",
]
