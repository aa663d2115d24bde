"""Cross-process advisory lock based on exclusive lock-file creation.

The lock for ``path`` is the sibling file ``<path>.lock`` containing the PID
of the holder. The PID is written to a private temporary file first and the
lock is created by hard-linking that file into place, so a lock file never
exists without its content.

A lock whose holder process no longer exists is reclaimed at once. A lock
whose content is not a PID (left behind by another tool or a crashed
writer) is waited on like a live lock and reclaimed once the timeout has
passed.
"""

from __future__ import annotations

import os
import tempfile
import time
import uuid
from pathlib import Path
from types import TracebackType

import psutil

from tracker_deployer.domain.errors import ErrorKind, Traceable
from tracker_deployer.utils.logging import get_logger

LOCK_RETRY_INTERVAL = 0.1
DEFAULT_LOCK_TIMEOUT = 10.0


class FileLockError(Traceable, Exception):
    kind = ErrorKind.FILE_SYSTEM


class LockAcquisitionTimeout(FileLockError):
    """The lock stayed held by a live process for the whole timeout."""

    kind = ErrorKind.TIMEOUT

    def __init__(self, path: Path, holder_pid: int | None, timeout: float):
        self.path = path
        self.holder_pid = holder_pid
        self.timeout = timeout
        super().__init__(
            f"Failed to acquire lock {path} within {timeout:.1f}s (held by process {holder_pid})"
        )


def lock_path_for(path: Path) -> Path:
    """``environment.json`` → ``environment.json.lock``."""
    return path.with_name(path.name + ".lock")


def _parse_pid(content: str) -> int | None:
    try:
        return int(content.strip())
    except ValueError:
        return None


class FileLock:
    """Exclusive lock on a file path, usable as a context manager.

    Example:
        >>> with FileLock(state_file, timeout=5.0):
        ...     state_file.write_text("...")
    """

    def __init__(self, path: Path, timeout: float = DEFAULT_LOCK_TIMEOUT):
        self.path = path
        self.lock_file = lock_path_for(path)
        self.timeout = timeout
        self.acquired = False
        self.logger = get_logger("persistence.lock")

    def acquire(self) -> FileLock:
        pid = os.getpid()
        deadline = time.monotonic() + self.timeout
        reclaimed_unreadable = False
        while True:
            if self._try_create(pid):
                self.acquired = True
                return self
            content = self._read_content()
            if content is None:
                # Released between our create attempt and the read.
                continue
            holder = _parse_pid(content)
            if holder is not None and not psutil.pid_exists(holder):
                self.logger.warning("lock.stale_reclaimed", lock_file=self.lock_file, holder_pid=holder)
                self._reclaim(content)
                continue
            if time.monotonic() >= deadline:
                if holder is None and not reclaimed_unreadable:
                    self.logger.warning(
                        "lock.unreadable_reclaimed", lock_file=self.lock_file, content=content
                    )
                    reclaimed_unreadable = True
                    self._reclaim(content)
                    continue
                raise LockAcquisitionTimeout(self.lock_file, holder, self.timeout)
            time.sleep(LOCK_RETRY_INTERVAL)

    def release(self) -> None:
        if self.acquired:
            self.acquired = False
            try:
                self.lock_file.unlink()
            except FileNotFoundError:
                self.logger.debug("lock.already_removed", lock_file=self.lock_file)

    # ==================== LOCK FILE ====================

    def _try_create(self, pid: int) -> bool:
        """Link a PID-stamped temporary file into place as the lock."""
        self.lock_file.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(
            prefix=f".{self.lock_file.name}.", suffix=".tmp", dir=self.lock_file.parent
        )
        temp_file = Path(temp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(str(pid))
                handle.flush()
                os.fsync(handle.fileno())
            os.link(temp_file, self.lock_file)
        except FileExistsError:
            return False
        finally:
            temp_file.unlink(missing_ok=True)
        return True

    def _read_content(self) -> str | None:
        try:
            return self.lock_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _reclaim(self, observed: str) -> None:
        """Remove a lock file whose content was ``observed``.

        The lock is first renamed to a private name, so of two processes
        reclaiming the same lock only one removes it. If the renamed file is
        not the one observed, another process took the lock in between and
        it is linked back.
        """
        claimed = self.lock_file.with_name(f".{self.lock_file.name}.{uuid.uuid4().hex}.reclaim")
        try:
            self.lock_file.rename(claimed)
        except FileNotFoundError:
            return
        try:
            if claimed.read_text(encoding="utf-8") != observed:
                try:
                    os.link(claimed, self.lock_file)
                except FileExistsError:
                    self.logger.warning("lock.restore_conflict", lock_file=self.lock_file)
        finally:
            claimed.unlink(missing_ok=True)

    def __enter__(self) -> FileLock:
        return self.acquire()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()


__all__ = [
    "FileLock",
    "FileLockError",
    "LockAcquisitionTimeout",
    "lock_path_for",
    "LOCK_RETRY_INTERVAL",
    "DEFAULT_LOCK_TIMEOUT",
]
