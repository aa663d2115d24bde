"""Purge command: forget a destroyed (or never provisioned) environment."""

from __future__ import annotations

import shutil

from tracker_deployer.application.errors import PersistenceError, PurgeRefusedError
from tracker_deployer.application.handlers.common import BuildPaths, CommandHandler
from tracker_deployer.domain.environment import Created, Destroyed
from tracker_deployer.domain.repository import EnvironmentNotFoundError, RepositoryError
from tracker_deployer.domain.values import EnvironmentName


class PurgeCommandHandler(CommandHandler):
    command = "purge"

    def execute(self, name: EnvironmentName) -> None:
        """Remove ``data/<name>`` and ``build/<name>``.

        Raises:
            NoSuchEnvironmentError: The environment does not exist
            PurgeRefusedError: The environment is neither Destroyed nor Created
        """
        log = self.logger.bind(environment=name)

        with self._locked(name):
            snapshot = self._load(name)
            if not snapshot.is_state(Destroyed, Created):
                raise PurgeRefusedError(name, snapshot.state_name)

            # Data before build files, so the environment is either intact or gone.
            try:
                self.repository.delete(name)
            except EnvironmentNotFoundError:
                log.info("purge.data_already_removed")
            except RepositoryError as exc:
                raise PersistenceError(f"Failed to purge environment '{name}': {exc}") from exc

            build_root = BuildPaths.for_environment(self.settings.build_dir, name).root
            try:
                if build_root.exists():
                    shutil.rmtree(build_root)
            except OSError as exc:
                log.error("purge.build_cleanup_failed", build_dir=str(build_root), error=str(exc))
                raise PersistenceError(
                    f"Environment '{name}' was purged but its build files remain at {build_root}: {exc}"
                ) from exc

        log.info("purge.completed", from_state=snapshot.state_name)
