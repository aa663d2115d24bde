"""
Adapters for the external tools the deployer drives (OpenTofu, Ansible, SSH).
"""

from tracker_deployer.adapters.command import CommandOutput, CommandRunner
from tracker_deployer.adapters.interfaces import (
    ConfigurationEngine,
    InstanceInfo,
    ProvisionProfile,
    Provisioner,
    Renderer,
    SshClient,
    SshClientFactory,
)

__all__ = [
    "CommandOutput",
    "CommandRunner",
    "ConfigurationEngine",
    "InstanceInfo",
    "ProvisionProfile",
    "Provisioner",
    "Renderer",
    "SshClient",
    "SshClientFactory",
]
