"""Run command: start the released Docker Compose services."""

from __future__ import annotations

from typing import Any

from tracker_deployer.adapters.ansible import RUN_COMPOSE_SERVICES
from tracker_deployer.adapters.interfaces import ConfigurationEngine
from tracker_deployer.application.errors import StepFailedError
from tracker_deployer.application.handlers.common import BuildPaths, CommandHandler
from tracker_deployer.domain.environment import Released, RunFailed, Running, RunStep, Starting
from tracker_deployer.domain.values import EnvironmentName


class RunCommandHandler(CommandHandler):
    command = "run"

    def __init__(self, *args: Any, configuration_engine: ConfigurationEngine, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.configuration_engine = configuration_engine

    def execute(self, name: EnvironmentName) -> Running:
        log = self.logger.bind(environment=name)

        with self._locked(name):
            snapshot = self._load(name)
            environment = self._narrow(snapshot, Released, RunFailed, Starting)

            started_at = self.clock.now()
            starting = environment.start_running(started_at)
            self._save(self.repository.save_starting, starting)
            log.info("run.started")

            inventory = BuildPaths.for_environment(self.settings.build_dir, name).inventory
            try:
                self._step(
                    RunStep.START_SERVICES,
                    lambda: self.configuration_engine.run_playbook(RUN_COMPOSE_SERVICES, inventory),
                    log,
                )
            except StepFailedError as error:
                raise self._fail(
                    in_progress=starting,
                    transition=starting.run_failed,
                    save=self.repository.save_run_failed,
                    error=error,
                    started_at=started_at,
                    log=log,
                ) from error

            running = starting.running(self.clock.now())
            self._save(self.repository.save_running, running)

        log.info("run.completed", instance_ip=str(running.instance_ip))
        return running
