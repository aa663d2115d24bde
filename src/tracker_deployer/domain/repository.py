"""Repository contract for environment snapshots.

Provides:
- EnvironmentRepository: persistence protocol used by every handler
- RepositoryError and its NotFound / Corrupt / Conflict / Internal variants
- EnvironmentList: result of enumerating the data directory
- TypedEnvironmentRepository: one save method per lifecycle state
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from tracker_deployer.domain.environment import (
    ConfigureFailed,
    Configured,
    Configuring,
    Created,
    DestroyFailed,
    Destroyed,
    Destroying,
    Environment,
    ProvisionFailed,
    Provisioned,
    Provisioning,
    Released,
    ReleaseFailed,
    Releasing,
    RunFailed,
    Running,
    Starting,
)
from tracker_deployer.domain.errors import ErrorKind, Traceable
from tracker_deployer.domain.state import AnyEnvironmentState
from tracker_deployer.domain.values import EnvironmentName


# ==================== ERRORS ====================


class RepositoryError(Traceable, Exception):
    """Base class for persistence failures."""

    kind = ErrorKind.STATE_PERSISTENCE


class EnvironmentNotFoundError(RepositoryError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Environment '{name}' not found")


class CorruptEnvironmentError(RepositoryError):
    """The snapshot exists but cannot be decoded."""

    def __init__(self, name: str, path: Path, reason: str):
        self.name = name
        self.path = path
        self.reason = reason
        super().__init__(f"Environment '{name}' has a corrupt state file {path}: {reason}")


class RepositoryConflictError(RepositoryError):
    """Another process holds the lock on the environment."""

    def __init__(self, name: str, detail: str):
        self.name = name
        self.detail = detail
        super().__init__(f"Environment '{name}' is locked: {detail}")


class RepositoryInternalError(RepositoryError):
    """Unexpected I/O failure."""

    kind = ErrorKind.FILE_SYSTEM


# ==================== PROTOCOL ====================


@dataclass
class EnvironmentList:
    """Outcome of scanning the data directory.

    A snapshot that fails to load is reported in ``failed_environments``
    instead of aborting the scan.
    """

    environments: list[AnyEnvironmentState] = field(default_factory=list)
    failed_environments: list[tuple[str, str]] = field(default_factory=list)
    data_directory: Path | None = None

    @property
    def total(self) -> int:
        return len(self.environments) + len(self.failed_environments)

    def __iter__(self) -> Iterator[AnyEnvironmentState]:
        return iter(self.environments)


class EnvironmentRepository(Protocol):
    def save(self, snapshot: AnyEnvironmentState) -> None: ...

    def load(self, name: EnvironmentName) -> AnyEnvironmentState: ...

    def list(self) -> EnvironmentList: ...

    def delete(self, name: EnvironmentName) -> None: ...

    def exists(self, name: EnvironmentName) -> bool: ...

    def lock(self, name: EnvironmentName) -> AbstractContextManager[None]: ...


# ==================== TYPED REPOSITORY ====================


class TypedEnvironmentRepository:
    """State-specific save methods over an :class:`EnvironmentRepository`.

    Handlers call ``save_provisioning(env)`` rather than ``save(...)`` so the
    persisted state always matches the transition the handler just made.
    """

    def __init__(self, repository: EnvironmentRepository):
        self.repository = repository

    def load(self, name: EnvironmentName) -> AnyEnvironmentState:
        return self.repository.load(name)

    def exists(self, name: EnvironmentName) -> bool:
        return self.repository.exists(name)

    def lock(self, name: EnvironmentName) -> AbstractContextManager[None]:
        return self.repository.lock(name)

    def list(self) -> EnvironmentList:
        return self.repository.list()

    def delete(self, name: EnvironmentName) -> None:
        self.repository.delete(name)

    def _save(self, env: Environment, expected: type[Environment]) -> None:
        if type(env) is not expected:
            raise TypeError(
                f"save_{_snake(expected.state_name())} expects {expected.state_name()}, "
                f"got {type(env).__name__}"
            )
        self.repository.save(AnyEnvironmentState(env))

    def save_created(self, env: Created) -> None:
        self._save(env, Created)

    def save_provisioning(self, env: Provisioning) -> None:
        self._save(env, Provisioning)

    def save_provision_failed(self, env: ProvisionFailed) -> None:
        self._save(env, ProvisionFailed)

    def save_provisioned(self, env: Provisioned) -> None:
        self._save(env, Provisioned)

    def save_configuring(self, env: Configuring) -> None:
        self._save(env, Configuring)

    def save_configure_failed(self, env: ConfigureFailed) -> None:
        self._save(env, ConfigureFailed)

    def save_configured(self, env: Configured) -> None:
        self._save(env, Configured)

    def save_releasing(self, env: Releasing) -> None:
        self._save(env, Releasing)

    def save_release_failed(self, env: ReleaseFailed) -> None:
        self._save(env, ReleaseFailed)

    def save_released(self, env: Released) -> None:
        self._save(env, Released)

    def save_starting(self, env: Starting) -> None:
        self._save(env, Starting)

    def save_run_failed(self, env: RunFailed) -> None:
        self._save(env, RunFailed)

    def save_running(self, env: Running) -> None:
        self._save(env, Running)

    def save_destroying(self, env: Destroying) -> None:
        self._save(env, Destroying)

    def save_destroy_failed(self, env: DestroyFailed) -> None:
        self._save(env, DestroyFailed)

    def save_destroyed(self, env: Destroyed) -> None:
        self._save(env, Destroyed)


def _snake(name: str) -> str:
    return "".join(f"_{ch.lower()}" if ch.isupper() else ch for ch in name).lstrip("_")


def save_method_name(state_name: str) -> str:
    """Name of the typed save method for a state tag (``ProvisionFailed`` → ``save_provision_failed``)."""
    return f"save_{_snake(state_name)}"


__all__ = [
    "RepositoryError",
    "EnvironmentNotFoundError",
    "CorruptEnvironmentError",
    "RepositoryConflictError",
    "RepositoryInternalError",
    "EnvironmentList",
    "EnvironmentRepository",
    "TypedEnvironmentRepository",
    "save_method_name",
]
