"""Trace files describing a command failure.

One file is written per failure at ``data/<env>/traces/<trace_id>.json``. The
``error_chain`` lists every level of the exception chain from the outermost
handler error down to the root cause.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from tracker_deployer.domain.environment import FailureContext
from tracker_deployer.domain.errors import ErrorKind, Traceable, TraceId, iter_error_chain
from tracker_deployer.persistence.file_lock import FileLockError
from tracker_deployer.persistence.json_file import JsonFileStore
from tracker_deployer.utils.logging import get_logger


class TraceWriteError(Traceable, Exception):
    kind = ErrorKind.FILE_SYSTEM


@dataclass(frozen=True)
class TraceRecord:
    trace_id: TraceId
    environment: str
    command: str
    phase: str
    error_kind: ErrorKind
    summary: str
    created_at: datetime
    failed_step: str
    execution_started_at: datetime
    error_chain: list[dict[str, Any]]

    def to_dict(self) -> dict[str, Any]:
        return {
            "trace_id": str(self.trace_id),
            "environment": self.environment,
            "command": self.command,
            "phase": self.phase,
            "error_kind": self.error_kind.value,
            "summary": self.summary,
            "created_at": self.created_at.isoformat(),
            "failed_step": self.failed_step,
            "execution_started_at": self.execution_started_at.isoformat(),
            "execution_duration_seconds": round(
                (self.created_at - self.execution_started_at).total_seconds(), 3
            ),
            "error_chain": self.error_chain,
        }


class TraceWriter:
    """Writes trace files for one environment's traces directory."""

    def __init__(self, traces_dir: Path, store: JsonFileStore | None = None):
        self.traces_dir = traces_dir
        self.store = store or JsonFileStore()
        self.logger = get_logger("trace.writer")

    def path_for(self, trace_id: TraceId) -> Path:
        return self.traces_dir / f"{trace_id}.json"

    def build(
        self,
        *,
        environment: str,
        command: str,
        phase: str,
        failure: FailureContext,
        error: BaseException,
    ) -> TraceRecord:
        return TraceRecord(
            trace_id=failure.trace_id,
            environment=environment,
            command=command,
            phase=phase,
            error_kind=failure.error_kind,
            summary=failure.summary,
            created_at=failure.failed_at,
            failed_step=failure.failed_step,
            execution_started_at=failure.execution_started_at,
            error_chain=[link.to_dict() for link in iter_error_chain(error)],
        )

    def write(self, record: TraceRecord) -> Path:
        path = self.path_for(record.trace_id)
        if path.exists():
            raise TraceWriteError(f"Trace file already exists: {path}")
        try:
            self.store.write(path, record.to_dict())
        except (OSError, FileLockError) as exc:
            raise TraceWriteError(f"Failed to write trace file {path}: {exc}") from exc
        self.logger.info("trace.written", trace_id=record.trace_id, path=path)
        return path


__all__ = [
    "TraceRecord",
    "TraceWriteError",
    "TraceWriter",
]
