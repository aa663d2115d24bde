"""Register command: adopt an instance that already exists.

Moves a ``Created`` environment straight to ``Provisioned`` using an IP the
user supplies, after the instance has answered over SSH. There is no
in-progress state: on failure nothing is persisted and the environment
stays ``Created``.

Steps, in order:

1. ValidateSshKeys: both key files of the SSH credentials exist
2. WaitSshConnectivity: poll until SSH answers at the given IP
3. RenderAnsibleTemplates: write the inventory for the configure command
"""

from __future__ import annotations

import ipaddress
from typing import Any

import structlog

from tracker_deployer.adapters.interfaces import Renderer, SshClientFactory
from tracker_deployer.application.errors import (
    InvalidInstanceIpError,
    RegisterFailedError,
    StepFailedError,
)
from tracker_deployer.application.handlers.common import BuildPaths, CommandHandler, build_inventory
from tracker_deployer.domain.environment import Created, Provisioned, RegisterStep
from tracker_deployer.domain.errors import describe_error
from tracker_deployer.domain.values import EnvironmentName


def parse_instance_ip(value: str) -> Any:
    try:
        return ipaddress.ip_address(value.strip())
    except ValueError as exc:
        raise InvalidInstanceIpError(value) from exc


class RegisterCommandHandler(CommandHandler):
    command = "register"

    def __init__(
        self,
        *args: Any,
        ansible_renderer: Renderer,
        ssh_client_factory: SshClientFactory,
        **kwargs: Any,
    ):
        super().__init__(*args, **kwargs)
        self.ansible_renderer = ansible_renderer
        self.ssh_client_factory = ssh_client_factory

    def execute(self, name: EnvironmentName, instance_ip: str) -> Provisioned:
        """Register the instance at ``instance_ip`` for environment ``name``.

        Raises:
            InvalidInstanceIpError: ``instance_ip`` is not an IP address
            NoSuchEnvironmentError: The environment does not exist
            WrongStateError: The environment is not ``Created``
            RegisterFailedError: A step failed; the environment is unchanged
        """
        ip = parse_instance_ip(instance_ip)
        log = self.logger.bind(environment=name, instance_ip=str(ip))

        with self._locked(name):
            environment = self._narrow(self._load(name), Created)
            log.info("register.started")

            try:
                self._run_steps(environment, ip, log)
            except StepFailedError as error:
                cause = error.trace_source()
                log.error("register.failed", step=error.step, error_kind=error.error_kind().value)
                raise RegisterFailedError(
                    name, str(ip), error.step, describe_error(cause if cause is not None else error)
                ) from error

            provisioned = environment.registered(ip, self.clock.now())
            self._save(self.repository.save_provisioned, provisioned)

        log.info("register.completed")
        return provisioned

    def _run_steps(self, environment: Created, instance_ip: Any, log: structlog.stdlib.BoundLogger) -> None:
        paths = BuildPaths.for_environment(self.settings.build_dir, environment.name)
        credentials = environment.ssh_credentials

        self._step(RegisterStep.VALIDATE_SSH_KEYS, credentials.ensure_keys_exist, log)

        ssh = self.ssh_client_factory(str(instance_ip), credentials)
        self._step(
            RegisterStep.WAIT_SSH_CONNECTIVITY,
            lambda: ssh.wait_for_connectivity(self.settings.ssh_wait_timeout),
            log,
        )

        self._step(
            RegisterStep.RENDER_ANSIBLE_TEMPLATES,
            lambda: self.ansible_renderer.render(build_inventory(instance_ip, credentials), paths.ansible),
            log,
        )
