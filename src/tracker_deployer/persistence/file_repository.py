"""File-backed environment repository.

Layout under the data directory::

    data/
      <name>/
        environment.json       # current snapshot
        environment.json.lock  # present only while a read or write runs
        command.lock           # present only while a mutating command runs
        traces/<trace_id>.json
"""

from __future__ import annotations

import shutil
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from tracker_deployer.domain.repository import (
    CorruptEnvironmentError,
    EnvironmentList,
    EnvironmentNotFoundError,
    RepositoryConflictError,
    RepositoryInternalError,
)
from tracker_deployer.domain.state import AnyEnvironmentState, StateDecodeError
from tracker_deployer.domain.values import EnvironmentName, EnvironmentNameError
from tracker_deployer.persistence.file_lock import (
    DEFAULT_LOCK_TIMEOUT,
    FileLock,
    FileLockError,
    LockAcquisitionTimeout,
)
from tracker_deployer.persistence.json_file import (
    JsonDecodeFailedError,
    JsonFileNotFoundError,
    JsonFileStore,
)
from tracker_deployer.utils.logging import get_logger

STATE_FILE_NAME = "environment.json"
COMMAND_LOCK_NAME = "command"
TRACES_DIR_NAME = "traces"


class FileEnvironmentRepository:
    """EnvironmentRepository storing one JSON snapshot per environment."""

    def __init__(self, data_dir: Path, lock_timeout: float = DEFAULT_LOCK_TIMEOUT):
        self.data_dir = data_dir
        self.lock_timeout = lock_timeout
        self.store = JsonFileStore(lock_timeout=lock_timeout)
        self.logger = get_logger("persistence.repository")

    # ==================== PATHS ====================

    def environment_dir(self, name: str) -> Path:
        return self.data_dir / name

    def state_file(self, name: str) -> Path:
        return self.environment_dir(name) / STATE_FILE_NAME

    def traces_dir(self, name: str) -> Path:
        return self.environment_dir(name) / TRACES_DIR_NAME

    # ==================== OPERATIONS ====================

    def save(self, snapshot: AnyEnvironmentState) -> None:
        path = self.state_file(snapshot.name)
        try:
            self.store.write(path, snapshot.to_dict())
        except LockAcquisitionTimeout as exc:
            raise RepositoryConflictError(snapshot.name, str(exc)) from exc
        except (FileLockError, OSError) as exc:
            raise RepositoryInternalError(f"Failed to save environment '{snapshot.name}': {exc}") from exc
        self.logger.debug("repository.saved", environment=snapshot.name, state=snapshot.state_name)

    def load(self, name: EnvironmentName) -> AnyEnvironmentState:
        path = self.state_file(name)
        try:
            data = self.store.read(path)
        except JsonFileNotFoundError as exc:
            raise EnvironmentNotFoundError(name) from exc
        except JsonDecodeFailedError as exc:
            raise CorruptEnvironmentError(name, path, exc.reason) from exc
        except LockAcquisitionTimeout as exc:
            raise RepositoryConflictError(name, str(exc)) from exc
        except (FileLockError, OSError) as exc:
            raise RepositoryInternalError(f"Failed to load environment '{name}': {exc}") from exc
        try:
            snapshot = AnyEnvironmentState.from_dict(data)
        except StateDecodeError as exc:
            raise CorruptEnvironmentError(name, path, str(exc)) from exc
        if snapshot.name != name:
            raise CorruptEnvironmentError(
                name, path, f"snapshot belongs to environment '{snapshot.name}'"
            )
        return snapshot

    def exists(self, name: EnvironmentName) -> bool:
        return self.state_file(name).is_file()

    def delete(self, name: EnvironmentName) -> None:
        """Remove the environment's data directory (snapshot and traces)."""
        env_dir = self.environment_dir(name)
        if not env_dir.exists():
            raise EnvironmentNotFoundError(name)
        try:
            shutil.rmtree(env_dir)
        except OSError as exc:
            raise RepositoryInternalError(f"Failed to delete environment '{name}': {exc}") from exc
        self.logger.debug("repository.deleted", environment=name)

    def list(self) -> EnvironmentList:
        result = EnvironmentList(data_directory=self.data_dir)
        if not self.data_dir.is_dir():
            return result
        for entry in sorted(self.data_dir.iterdir()):
            if not entry.is_dir() or not (entry / STATE_FILE_NAME).is_file():
                continue
            try:
                name = EnvironmentName(entry.name)
                result.environments.append(self.load(name))
            except (EnvironmentNameError, CorruptEnvironmentError, RepositoryConflictError,
                    RepositoryInternalError) as exc:
                self.logger.warning("repository.list_entry_failed", directory=entry.name, error=str(exc))
                result.failed_environments.append((entry.name, str(exc)))
        return result

    @contextmanager
    def lock(self, name: EnvironmentName) -> Iterator[None]:
        """Hold the environment's command lock for a whole load/transition/save run."""
        lock = FileLock(self.environment_dir(name) / COMMAND_LOCK_NAME, timeout=self.lock_timeout)
        try:
            lock.acquire()
        except LockAcquisitionTimeout as exc:
            raise RepositoryConflictError(
                name, f"another command is running (process {exc.holder_pid})"
            ) from exc
        except (FileLockError, OSError) as exc:
            raise RepositoryInternalError(f"Failed to lock environment '{name}': {exc}") from exc
        try:
            yield
        finally:
            lock.release()


__all__ = [
    "FileEnvironmentRepository",
    "STATE_FILE_NAME",
    "TRACES_DIR_NAME",
]
