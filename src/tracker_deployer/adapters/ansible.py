"""Ansible-backed configuration engine."""

from __future__ import annotations

from pathlib import Path

import structlog

from tracker_deployer.adapters.command import CommandOutput, CommandRunner
from tracker_deployer.utils.logging import get_logger

# Playbooks shipped with the ansible templates.
WAIT_CLOUD_INIT = "wait-cloud-init"
INSTALL_DOCKER = "install-docker"
INSTALL_DOCKER_COMPOSE = "install-docker-compose"
CONFIGURE_SECURITY_UPDATES = "configure-security-updates"
CONFIGURE_FIREWALL = "configure-firewall"
DEPLOY_COMPOSE_FILES = "deploy-compose-files"
RUN_COMPOSE_SERVICES = "run-compose-services"


class AnsibleConfigurationEngine:
    """Runs ``ansible-playbook <name>.yml`` from the inventory's directory."""

    def __init__(
        self,
        runner: CommandRunner,
        binary: str = "ansible-playbook",
        logger: structlog.stdlib.BoundLogger | None = None,
    ):
        self.runner = runner
        self.binary = binary
        self.logger = logger or get_logger("adapters.ansible")

    def run_playbook(self, name: str, inventory: Path) -> CommandOutput:
        playbook_dir = inventory.parent
        args = [self.binary, "-i", inventory.name, f"{name}.yml"]
        output = self.runner.run(
            args,
            cwd=playbook_dir,
            env={"ANSIBLE_HOST_KEY_CHECKING": "False", "ANSIBLE_NOCOLOR": "1"},
        )
        self.logger.info("ansible.playbook_completed", playbook=name)
        return output


__all__ = [
    "AnsibleConfigurationEngine",
    "WAIT_CLOUD_INIT",
    "INSTALL_DOCKER",
    "INSTALL_DOCKER_COMPOSE",
    "CONFIGURE_SECURITY_UPDATES",
    "CONFIGURE_FIREWALL",
    "DEPLOY_COMPOSE_FILES",
    "RUN_COMPOSE_SERVICES",
]
