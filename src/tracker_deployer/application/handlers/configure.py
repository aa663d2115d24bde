"""Configure command: install Docker, Docker Compose, updates and firewall."""

from __future__ import annotations

from typing import Any

import structlog

from tracker_deployer.adapters import ansible
from tracker_deployer.adapters.interfaces import ConfigurationEngine
from tracker_deployer.application.errors import StepFailedError
from tracker_deployer.application.handlers.common import BuildPaths, CommandHandler
from tracker_deployer.domain.environment import (
    ConfigureFailed,
    Configured,
    Configuring,
    ConfigureStep,
    Provisioned,
)
from tracker_deployer.domain.values import EnvironmentName

PLAYBOOKS = {
    ConfigureStep.INSTALL_DOCKER: ansible.INSTALL_DOCKER,
    ConfigureStep.INSTALL_DOCKER_COMPOSE: ansible.INSTALL_DOCKER_COMPOSE,
    ConfigureStep.CONFIGURE_SECURITY_UPDATES: ansible.CONFIGURE_SECURITY_UPDATES,
    ConfigureStep.CONFIGURE_FIREWALL: ansible.CONFIGURE_FIREWALL,
}


class ConfigureCommandHandler(CommandHandler):
    command = "configure"

    def __init__(self, *args: Any, configuration_engine: ConfigurationEngine, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.configuration_engine = configuration_engine

    def execute(self, name: EnvironmentName) -> Configured:
        log = self.logger.bind(environment=name)

        with self._locked(name):
            snapshot = self._load(name)
            environment = self._narrow(snapshot, Provisioned, ConfigureFailed, Configuring)

            started_at = self.clock.now()
            configuring = environment.start_configuring(started_at)
            self._save(self.repository.save_configuring, configuring)
            log.info("configure.started", instance_ip=str(configuring.instance_ip))

            try:
                self._run_steps(configuring, log)
            except StepFailedError as error:
                raise self._fail(
                    in_progress=configuring,
                    transition=configuring.configure_failed,
                    save=self.repository.save_configure_failed,
                    error=error,
                    started_at=started_at,
                    log=log,
                ) from error

            configured = configuring.configured(self.clock.now())
            self._save(self.repository.save_configured, configured)

        log.info("configure.completed")
        return configured

    def _skipped_steps(self) -> dict[ConfigureStep, str]:
        skipped = {}
        if self.settings.skip_docker_install:
            reason = "docker installation disabled by settings"
            skipped[ConfigureStep.INSTALL_DOCKER] = reason
            skipped[ConfigureStep.INSTALL_DOCKER_COMPOSE] = reason
        if self.settings.skip_firewall:
            skipped[ConfigureStep.CONFIGURE_FIREWALL] = "firewall configuration disabled by settings"
        return skipped

    def _run_steps(self, environment: Configuring, log: structlog.stdlib.BoundLogger) -> None:
        inventory = BuildPaths.for_environment(self.settings.build_dir, environment.name).inventory
        skipped = self._skipped_steps()
        for step, playbook in PLAYBOOKS.items():
            if step in skipped:
                self._skip(step, skipped[step], log)
                continue
            self._step(step, lambda: self.configuration_engine.run_playbook(playbook, inventory), log)
