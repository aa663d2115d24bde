"""Provision command: create the instance and make it reachable over SSH.

Steps, in order:

1. ValidateSshKeys: both key files of the SSH credentials exist
2. RenderOpenTofuTemplates: write ``build/<env>/tofu``
3. OpenTofuApply: create the instance and read its IP
4. RenderAnsibleTemplates: write the inventory with the new IP
5. WaitSshConnectivity: poll until SSH answers
6. CloudInitWait: run the ``wait-cloud-init`` playbook
"""

from __future__ import annotations

from typing import Any

import structlog

from tracker_deployer.adapters.ansible import WAIT_CLOUD_INIT
from tracker_deployer.adapters.interfaces import (
    ConfigurationEngine,
    ProvisionProfile,
    Provisioner,
    Renderer,
    SshClientFactory,
)
from tracker_deployer.application.errors import StepFailedError
from tracker_deployer.application.handlers.common import (
    BuildPaths,
    CommandHandler,
    build_inventory,
    parse_ip,
)
from tracker_deployer.domain.environment import (
    Created,
    Provisioned,
    ProvisionFailed,
    Provisioning,
    ProvisionStep,
)
from tracker_deployer.domain.values import EnvironmentName, HetznerConfig


def tofu_variables(environment: Provisioning) -> dict[str, Any]:
    """Variables for the OpenTofu template set of the environment's provider."""
    config = environment.provider_config
    variables: dict[str, Any] = {
        "instance_name": str(environment.instance_name),
        "ssh_username": str(environment.ssh_credentials.username),
        "ssh_public_key_path": str(environment.ssh_credentials.public_key_path),
    }
    if isinstance(config, HetznerConfig):
        variables.update(
            hcloud_token=config.api_token,
            server_type=config.server_type,
            location=config.location,
            image=config.image,
        )
    else:
        variables["profile_name"] = str(config.profile_name)
    return variables


class ProvisionCommandHandler(CommandHandler):
    command = "provision"

    def __init__(
        self,
        *args: Any,
        tofu_renderer: Renderer,
        ansible_renderer: Renderer,
        provisioner: Provisioner,
        configuration_engine: ConfigurationEngine,
        ssh_client_factory: SshClientFactory,
        **kwargs: Any,
    ):
        super().__init__(*args, **kwargs)
        self.tofu_renderer = tofu_renderer
        self.ansible_renderer = ansible_renderer
        self.provisioner = provisioner
        self.configuration_engine = configuration_engine
        self.ssh_client_factory = ssh_client_factory

    def execute(self, name: EnvironmentName) -> Provisioned:
        log = self.logger.bind(environment=name)

        with self._locked(name):
            snapshot = self._load(name)
            environment = self._narrow(snapshot, Created, ProvisionFailed, Provisioning)

            started_at = self.clock.now()
            provisioning = environment.start_provisioning(started_at)
            self._save(self.repository.save_provisioning, provisioning)
            log.info("provision.started", resumed_from=snapshot.state_name)

            try:
                instance_ip = self._run_steps(provisioning, log)
            except StepFailedError as error:
                raise self._fail(
                    in_progress=provisioning,
                    transition=provisioning.provision_failed,
                    save=self.repository.save_provision_failed,
                    error=error,
                    started_at=started_at,
                    log=log,
                ) from error

            provisioned = provisioning.provisioned(instance_ip, self.clock.now())
            self._save(self.repository.save_provisioned, provisioned)

        log.info("provision.completed", instance_ip=str(provisioned.instance_ip))
        return provisioned

    def _run_steps(self, environment: Provisioning, log: structlog.stdlib.BoundLogger) -> Any:
        paths = BuildPaths.for_environment(self.settings.build_dir, environment.name)
        credentials = environment.ssh_credentials

        self._step(ProvisionStep.VALIDATE_SSH_KEYS, credentials.ensure_keys_exist, log)

        self._step(
            ProvisionStep.RENDER_OPENTOFU_TEMPLATES,
            lambda: self.tofu_renderer.render(tofu_variables(environment), paths.tofu),
            log,
        )

        profile = ProvisionProfile(
            instance_name=environment.instance_name,
            provider_config=environment.provider_config,
            ssh_credentials=credentials,
            workdir=paths.tofu,
        )
        instance = self._step(ProvisionStep.OPENTOFU_APPLY, lambda: self.provisioner.apply(profile), log)
        instance_ip = self._step(ProvisionStep.OPENTOFU_APPLY, lambda: parse_ip(instance.ip_address), log)
        log.info("provision.instance_created", instance=instance.name, instance_ip=str(instance_ip))

        self._step(
            ProvisionStep.RENDER_ANSIBLE_TEMPLATES,
            lambda: self.ansible_renderer.render(build_inventory(instance_ip, credentials), paths.ansible),
            log,
        )

        ssh = self.ssh_client_factory(str(instance_ip), credentials)
        self._step(
            ProvisionStep.WAIT_SSH_CONNECTIVITY,
            lambda: ssh.wait_for_connectivity(self.settings.ssh_wait_timeout),
            log,
        )

        self._step(
            ProvisionStep.CLOUD_INIT_WAIT,
            lambda: self.configuration_engine.run_playbook(WAIT_CLOUD_INIT, paths.inventory),
            log,
        )
        return instance_ip
