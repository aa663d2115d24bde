"""Create command: persist a new environment in the ``Created`` state."""

from __future__ import annotations

from tracker_deployer.application.config import EnvironmentCreationConfig
from tracker_deployer.application.errors import EnvironmentAlreadyExistsError
from tracker_deployer.application.handlers.common import CommandHandler
from tracker_deployer.domain.environment import Created


class CreateCommandHandler(CommandHandler):
    command = "create"

    def execute(self, config: EnvironmentCreationConfig) -> Created:
        """Validate the definition and persist it.

        Raises:
            InvalidDefinitionError: A value in the definition is invalid
            EnvironmentAlreadyExistsError: An environment with this name exists
        """
        params = config.to_params()
        log = self.logger.bind(environment=params.name)

        with self._locked(params.name, must_exist=False):
            if self.repository.exists(params.name):
                raise EnvironmentAlreadyExistsError(params.name)

            environment = Created(
                name=params.name,
                instance_name=params.instance_name,
                provider_config=params.provider_config,
                ssh_credentials=params.ssh_credentials,
                created_at=self.clock.now(),
            )
            self._save(self.repository.save_created, environment)

        log.info(
            "create.completed",
            provider=environment.provider.value,
            instance_name=environment.instance_name,
        )
        return environment
