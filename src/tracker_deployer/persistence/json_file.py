"""Atomic JSON document storage guarded by :class:`FileLock`."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from tracker_deployer.domain.errors import ErrorKind, Traceable
from tracker_deployer.persistence.file_lock import DEFAULT_LOCK_TIMEOUT, FileLock
from tracker_deployer.utils.logging import get_logger


class JsonFileError(Traceable, Exception):
    kind = ErrorKind.FILE_SYSTEM

    def __init__(self, path: Path, message: str):
        self.path = path
        super().__init__(f"{message}: {path}")


class JsonFileNotFoundError(JsonFileError):
    def __init__(self, path: Path):
        super().__init__(path, "File not found")


class JsonDecodeFailedError(JsonFileError):
    kind = ErrorKind.STATE_PERSISTENCE

    def __init__(self, path: Path, reason: str):
        self.reason = reason
        super().__init__(path, f"Invalid JSON ({reason})")


class JsonFileStore:
    """Reads and writes whole JSON documents.

    Writes go to a temporary file in the destination directory which is
    flushed, fsynced and renamed over the target, so readers only ever see
    the previous or the new document.
    """

    def __init__(self, lock_timeout: float = DEFAULT_LOCK_TIMEOUT):
        self.lock_timeout = lock_timeout
        self.logger = get_logger("persistence.json")

    def write(self, path: Path, data: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with FileLock(path, timeout=self.lock_timeout):
            fd, temp_name = tempfile.mkstemp(
                prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
            )
            temp_file = Path(temp_name)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(data, handle, indent=2, sort_keys=False)
                    handle.write("\n")
                    handle.flush()
                    os.fsync(handle.fileno())
                temp_file.replace(path)
            except BaseException:
                temp_file.unlink(missing_ok=True)
                raise
        self.logger.debug("json.written", path=path)

    def read(self, path: Path) -> Any:
        if not path.is_file():
            raise JsonFileNotFoundError(path)
        with FileLock(path, timeout=self.lock_timeout):
            raw = path.read_bytes()
        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise JsonDecodeFailedError(path, str(exc)) from exc

    def delete(self, path: Path) -> bool:
        with FileLock(path, timeout=self.lock_timeout):
            try:
                path.unlink()
            except FileNotFoundError:
                return False
        return True


__all__ = [
    "JsonFileError",
    "JsonFileNotFoundError",
    "JsonDecodeFailedError",
    "JsonFileStore",
]
