"""Destroy command: tear down the infrastructure and remove build artifacts.

Accepted from every state except ``Destroyed``, for which it is a no-op. The
infrastructure step is skipped for environments that were never provisioned,
and an absent OpenTofu state counts as already destroyed.
"""

from __future__ import annotations

import shutil
from typing import Any

import structlog

from tracker_deployer.adapters.interfaces import ProvisionProfile, Provisioner
from tracker_deployer.application.errors import StepFailedError
from tracker_deployer.application.handlers.common import BuildPaths, CommandHandler
from tracker_deployer.domain.environment import (
    STATE_CLASSES,
    Created,
    Destroyed,
    Destroying,
    DestroyStep,
)
from tracker_deployer.domain.values import EnvironmentName

DESTROYABLE_STATES = tuple(cls for cls in STATE_CLASSES.values() if cls is not Destroyed)


class DestroyCommandHandler(CommandHandler):
    command = "destroy"

    def __init__(self, *args: Any, provisioner: Provisioner, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.provisioner = provisioner

    def execute(self, name: EnvironmentName) -> Destroyed:
        log = self.logger.bind(environment=name)

        with self._locked(name):
            snapshot = self._load(name)
            if snapshot.is_state(Destroyed):
                log.info("destroy.already_destroyed")
                return snapshot.try_into(Destroyed)

            environment = self._narrow(snapshot, *DESTROYABLE_STATES)
            never_provisioned = isinstance(environment, Created)

            started_at = self.clock.now()
            destroying = environment.start_destroying(started_at)
            self._save(self.repository.save_destroying, destroying)
            log.info("destroy.started", from_state=snapshot.state_name)

            try:
                self._run_steps(destroying, never_provisioned, log)
            except StepFailedError as error:
                raise self._fail(
                    in_progress=destroying,
                    transition=destroying.destroy_failed,
                    save=self.repository.save_destroy_failed,
                    error=error,
                    started_at=started_at,
                    log=log,
                ) from error

            destroyed = destroying.destroyed(self.clock.now())
            self._save(self.repository.save_destroyed, destroyed)

        log.info("destroy.completed")
        return destroyed

    def _run_steps(
        self, environment: Destroying, never_provisioned: bool, log: structlog.stdlib.BoundLogger
    ) -> None:
        paths = BuildPaths.for_environment(self.settings.build_dir, environment.name)

        if never_provisioned:
            self._skip(DestroyStep.DESTROY_INFRASTRUCTURE, "environment was never provisioned", log)
        else:
            profile = ProvisionProfile(
                instance_name=environment.instance_name,
                provider_config=environment.provider_config,
                ssh_credentials=environment.ssh_credentials,
                workdir=paths.tofu,
            )
            removed = self._step(
                DestroyStep.DESTROY_INFRASTRUCTURE, lambda: self.provisioner.destroy(profile), log
            )
            if not removed:
                log.info("destroy.infrastructure_absent", workdir=paths.tofu)

        def cleanup() -> None:
            if paths.root.exists():
                shutil.rmtree(paths.root)

        self._step(DestroyStep.CLEANUP_BUILD_FILES, cleanup, log)
