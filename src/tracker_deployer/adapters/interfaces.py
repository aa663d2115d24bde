"""Capabilities the command handlers need from the outside world.

Handlers depend only on these protocols; tests substitute in-memory fakes.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from tracker_deployer.adapters.command import CommandOutput
from tracker_deployer.domain.values import (
    HetznerConfig,
    InstanceName,
    LxdConfig,
    SshCredentials,
)


@dataclass(frozen=True)
class InstanceInfo:
    """What the provisioner reports about a created instance."""

    name: str
    ip_address: str
    status: str = "running"
    image: str | None = None


@dataclass(frozen=True)
class ProvisionProfile:
    """Everything the provisioner needs to create or destroy one instance."""

    instance_name: InstanceName
    provider_config: LxdConfig | HetznerConfig
    ssh_credentials: SshCredentials
    workdir: Path


class Renderer(Protocol):
    def render(self, config: Mapping[str, Any], target_dir: Path) -> None: ...


class Provisioner(Protocol):
    def apply(self, profile: ProvisionProfile) -> InstanceInfo: ...

    def destroy(self, profile: ProvisionProfile) -> bool:
        """Tear the instance down; return ``False`` when there was nothing to destroy."""
        ...


class ConfigurationEngine(Protocol):
    def run_playbook(self, name: str, inventory: Path) -> CommandOutput: ...


class SshClient(Protocol):
    def wait_for_connectivity(self, timeout: float) -> None: ...

    def execute(self, command: str) -> CommandOutput: ...


SshClientFactory = Callable[[str, SshCredentials], SshClient]


__all__ = [
    "InstanceInfo",
    "ProvisionProfile",
    "Renderer",
    "Provisioner",
    "ConfigurationEngine",
    "SshClient",
    "SshClientFactory",
]
