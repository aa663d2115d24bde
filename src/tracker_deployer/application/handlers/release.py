"""Release command: render the Docker Compose stack and copy it to the instance."""

from __future__ import annotations

from typing import Any

import structlog

from tracker_deployer.adapters.ansible import DEPLOY_COMPOSE_FILES
from tracker_deployer.adapters.interfaces import ConfigurationEngine, Renderer
from tracker_deployer.application.errors import StepFailedError
from tracker_deployer.application.handlers.common import BuildPaths, CommandHandler
from tracker_deployer.domain.environment import (
    Configured,
    Released,
    ReleaseFailed,
    Releasing,
    ReleaseStep,
)
from tracker_deployer.domain.values import EnvironmentName


def compose_variables(environment: Releasing) -> dict[str, Any]:
    return {
        "ENVIRONMENT_NAME": str(environment.name),
        "INSTANCE_NAME": str(environment.instance_name),
        "INSTANCE_IP": str(environment.instance_ip),
        "DEPLOY_USER": str(environment.ssh_credentials.username),
    }


class ReleaseCommandHandler(CommandHandler):
    command = "release"

    def __init__(
        self,
        *args: Any,
        compose_renderer: Renderer,
        configuration_engine: ConfigurationEngine,
        **kwargs: Any,
    ):
        super().__init__(*args, **kwargs)
        self.compose_renderer = compose_renderer
        self.configuration_engine = configuration_engine

    def execute(self, name: EnvironmentName) -> Released:
        log = self.logger.bind(environment=name)

        with self._locked(name):
            snapshot = self._load(name)
            environment = self._narrow(snapshot, Configured, ReleaseFailed, Releasing)

            started_at = self.clock.now()
            releasing = environment.start_releasing(started_at)
            self._save(self.repository.save_releasing, releasing)
            log.info("release.started")

            try:
                self._run_steps(releasing, log)
            except StepFailedError as error:
                raise self._fail(
                    in_progress=releasing,
                    transition=releasing.release_failed,
                    save=self.repository.save_release_failed,
                    error=error,
                    started_at=started_at,
                    log=log,
                ) from error

            released = releasing.released(self.clock.now())
            self._save(self.repository.save_released, released)

        log.info("release.completed")
        return released

    def _run_steps(self, environment: Releasing, log: structlog.stdlib.BoundLogger) -> None:
        paths = BuildPaths.for_environment(self.settings.build_dir, environment.name)
        self._step(
            ReleaseStep.RENDER_DOCKER_COMPOSE_TEMPLATES,
            lambda: self.compose_renderer.render(compose_variables(environment), paths.docker_compose),
            log,
        )
        self._step(
            ReleaseStep.DEPLOY_COMPOSE_FILES_TO_REMOTE,
            lambda: self.configuration_engine.run_playbook(DEPLOY_COMPOSE_FILES, paths.inventory),
            log,
        )
