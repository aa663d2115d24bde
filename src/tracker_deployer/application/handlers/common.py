"""Shared pipeline for the command handlers.

Every mutating handler follows the same shape:

1. take the environment's command lock
2. load the snapshot and narrow it to an accepted state (``WrongStateError``)
3. persist the in-progress state before touching anything external
4. run the phase steps in order
5. persist the success state, or on the first failed step mint a trace id,
   write the trace file, persist the ``*Failed`` state and raise
   ``CommandFailedError``
"""

from __future__ import annotations

import ipaddress
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar, TypeVar

import structlog

from tracker_deployer.application.errors import (
    CommandFailedError,
    EnvironmentLockedError,
    NoSuchEnvironmentError,
    PersistenceError,
    StateUnreadableError,
    StepFailedError,
    WrongStateError,
)
from tracker_deployer.config.settings import DeployerSettings
from tracker_deployer.domain.clock import Clock
from tracker_deployer.domain.environment import Environment, FailureContext
from tracker_deployer.domain.errors import TraceId, classify, describe_error
from tracker_deployer.domain.repository import (
    CorruptEnvironmentError,
    EnvironmentNotFoundError,
    RepositoryConflictError,
    RepositoryError,
    TypedEnvironmentRepository,
)
from tracker_deployer.domain.state import AnyEnvironmentState, StateTypeError
from tracker_deployer.domain.values import EnvironmentName, SshCredentials
from tracker_deployer.trace.writer import TraceWriteError, TraceWriter
from tracker_deployer.utils.logging import get_logger, timed_operation

E = TypeVar("E", bound=Environment)
T = TypeVar("T")

INVENTORY_FILE = "inventory.yml"
ANSIBLE_HOST = "torrust_servers"


@dataclass(frozen=True)
class BuildPaths:
    """Per-environment generated artifacts under ``build/<name>/``."""

    root: Path

    @classmethod
    def for_environment(cls, build_dir: Path, name: str) -> BuildPaths:
        return cls(build_dir / name)

    @property
    def tofu(self) -> Path:
        return self.root / "tofu"

    @property
    def ansible(self) -> Path:
        return self.root / "ansible"

    @property
    def inventory(self) -> Path:
        return self.ansible / INVENTORY_FILE

    @property
    def docker_compose(self) -> Path:
        return self.root / "docker-compose"


def build_inventory(instance_ip: Any, credentials: SshCredentials) -> dict[str, Any]:
    """Ansible YAML inventory for the single instance of an environment."""
    return {
        "all": {
            "hosts": {
                ANSIBLE_HOST: {
                    "ansible_host": str(instance_ip),
                    "ansible_port": credentials.port,
                    "ansible_user": str(credentials.username),
                    "ansible_ssh_private_key_file": str(credentials.private_key_path),
                    "ansible_python_interpreter": "/usr/bin/python3",
                }
            }
        }
    }


def parse_ip(value: str) -> Any:
    try:
        return ipaddress.ip_address(value)
    except ValueError as exc:
        raise ValueError(f"Provisioner reported an invalid IP address: {value!r}") from exc


class CommandHandler:
    """Base class holding the dependencies and helpers every handler needs."""

    command: ClassVar[str] = ""

    def __init__(
        self,
        repository: TypedEnvironmentRepository,
        clock: Clock,
        settings: DeployerSettings,
        logger: structlog.stdlib.BoundLogger | None = None,
    ):
        self.repository = repository
        self.clock = clock
        self.settings = settings
        self.logger = (logger or get_logger("application.handlers")).bind(command=self.command)

    # ==================== REPOSITORY ACCESS ====================

    @contextmanager
    def _locked(self, name: EnvironmentName, *, must_exist: bool = True) -> Iterator[None]:
        """Hold the command lock of ``name``.

        Unknown environments are rejected before the lock is taken, so no
        directory is left behind for them.
        """
        if must_exist and not self.repository.exists(name):
            raise NoSuchEnvironmentError(name)
        try:
            with self.repository.lock(name):
                yield
        except RepositoryConflictError as exc:
            raise EnvironmentLockedError(name, exc.detail) from exc
        except RepositoryError as exc:
            raise PersistenceError(str(exc)) from exc

    def _load(self, name: EnvironmentName) -> AnyEnvironmentState:
        try:
            return self.repository.load(name)
        except EnvironmentNotFoundError as exc:
            raise NoSuchEnvironmentError(name) from exc
        except CorruptEnvironmentError as exc:
            raise StateUnreadableError(name, exc.reason) from exc
        except RepositoryConflictError as exc:
            raise EnvironmentLockedError(name, exc.detail) from exc
        except RepositoryError as exc:
            raise PersistenceError(str(exc)) from exc

    def _save(self, save: Callable[[E], None], env: E) -> None:
        try:
            save(env)
        except RepositoryConflictError as exc:
            raise EnvironmentLockedError(env.name, exc.detail) from exc
        except RepositoryError as exc:
            raise PersistenceError(f"Failed to persist {env.state_name()}: {exc}") from exc

    def _narrow(self, snapshot: AnyEnvironmentState, expected: type[E], *also: type[E]) -> E:
        """Narrow to ``expected`` (or one of the retry states in ``also``)."""
        try:
            return snapshot.try_into(expected, *also)
        except StateTypeError as exc:
            raise WrongStateError(
                self.command,
                snapshot.name,
                expected.state_name(),
                snapshot.state_name,
                tuple(cls.state_name() for cls in (expected, *also)),
            ) from exc

    # ==================== STEPS AND FAILURES ====================

    def _step(self, step: Enum, action: Callable[[], T], log: structlog.stdlib.BoundLogger) -> T:
        """Run one named step, wrapping any failure in StepFailedError."""
        with timed_operation(f"{self.command}.step", logger=log, step=step.value):
            try:
                return action()
            except Exception as exc:
                raise StepFailedError(self.command, step.value, describe_error(exc)) from exc

    def _skip(self, step: Enum, reason: str, log: structlog.stdlib.BoundLogger) -> None:
        log.info(f"{self.command}.step_skipped", step=step.value, reason=reason)

    def _fail(
        self,
        *,
        in_progress: Environment,
        transition: Callable[[FailureContext], E],
        save: Callable[[E], None],
        error: StepFailedError,
        started_at: datetime,
        log: structlog.stdlib.BoundLogger,
    ) -> CommandFailedError:
        """Record a failed phase and return the error for the caller to raise."""
        trace_id = TraceId.new()
        kind = classify(error)
        failed_at = self.clock.now()
        writer = TraceWriter(self.settings.data_dir / in_progress.name / "traces")

        failure = FailureContext(
            trace_id=trace_id,
            error_kind=kind,
            summary=str(error),
            failed_step=error.step,
            failed_at=failed_at,
            execution_started_at=started_at,
            trace_file=writer.path_for(trace_id),
        )
        trace_file: Path | None = failure.trace_file
        try:
            writer.write(
                writer.build(
                    environment=in_progress.name,
                    command=self.command,
                    phase=in_progress.state_name(),
                    failure=failure,
                    error=error,
                )
            )
        except TraceWriteError as exc:
            log.error("trace.write_failed", trace_id=trace_id, error=str(exc))
            trace_file = None
            failure = failure.model_copy(update={"trace_file": None})

        failed = transition(failure)
        self._save(save, failed)
        log.error(
            f"{self.command}.failed",
            step=error.step,
            error_kind=kind.value,
            trace_id=trace_id,
            state=failed.state_name(),
        )
        return CommandFailedError(
            command=self.command,
            name=in_progress.name,
            trace_id=trace_id,
            error_kind=kind,
            summary=str(error),
            trace_file=trace_file,
            failed_state=failed.state_name(),
        )


__all__ = [
    "ANSIBLE_HOST",
    "INVENTORY_FILE",
    "BuildPaths",
    "CommandHandler",
    "build_inventory",
    "parse_ip",
]
