"""Logging setup and configuration using structlog."""

from __future__ import annotations

import functools
import json
import logging
import sys
import time
from datetime import datetime
from enum import Enum
from ipaddress import IPv4Address, IPv6Address
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from tracker_deployer.config.settings import DeployerSettings

_LEVEL_MAP = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}

MAX_STRING_LENGTH = 10000


def _json_serializer(obj: Any, **kwargs: Any) -> str:
    """JSON serializer for log output that understands domain value types.

    Handles:
    - datetime objects -> ISO format strings
    - Path objects -> string paths
    - Enum values -> their value
    - IP addresses -> dotted strings
    - sets -> sorted lists
    """
    return json.dumps(obj, default=_json_default, **kwargs)


def _json_default(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (IPv4Address, IPv6Address)):
        return str(obj)
    if isinstance(obj, bytes):
        try:
            return obj.decode("utf-8")
        except UnicodeDecodeError:
            return obj.hex()
    if isinstance(obj, set):
        return sorted(obj, key=str)
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    return str(obj)


def _sanitize_event_dict(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Make event values JSON friendly and truncate very long command output."""

    def sanitize_value(value: Any, depth: int = 0) -> Any:
        if depth > 10:
            return "<max depth exceeded>"
        if value is None or isinstance(value, (bool, int, float)):
            return value
        if isinstance(value, str):
            if len(value) > MAX_STRING_LENGTH:
                return value[:MAX_STRING_LENGTH] + "...<truncated>"
            return value
        if isinstance(value, (list, tuple)):
            return [sanitize_value(v, depth + 1) for v in value[:100]]
        if isinstance(value, dict):
            return {str(k): sanitize_value(v, depth + 1) for k, v in list(value.items())[:50]}
        if isinstance(value, BaseException):
            return value
        return _json_default(value)

    return {k: sanitize_value(v) for k, v in event_dict.items()}


def _resolve_level(level: str) -> int:
    return _LEVEL_MAP.get(level.lower(), logging.INFO)


def configure_logging(
    *,
    level: str = "info",
    output_format: str = "text",
    color: bool = True,
    log_file: Path | None = None,
) -> None:
    """Configure structlog + stdlib logging.

    Parameters
    ----------
    level: str
            Minimum level (debug, info, warning, error, critical).
    output_format: str
            "text" for console-friendly rendering, "json" for machine parsing.
    color: bool
            Enable colored console output when using text mode.
    log_file: Optional[Path]
            If provided, also write logs to this file.
    """

    log_level = _resolve_level(level)
    is_json = output_format.lower() == "json"

    if is_json:
        renderer: Any = structlog.processors.JSONRenderer(
            serializer=_json_serializer,
            sort_keys=True,
        )
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=color)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            _sanitize_event_dict,  # type: ignore[list-item]
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Command results go to stdout; diagnostics go to stderr.
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    root = logging.getLogger()
    root.handlers = []
    root.setLevel(log_level)
    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)

    logging.getLogger("transitions").setLevel(logging.WARNING)


def configure_from_settings(
    settings: DeployerSettings, *, log_file: Path | None = None, color: bool = True
) -> None:
    """Configure logging using DeployerSettings values."""

    configure_logging(
        level=settings.log_level,
        output_format=settings.log_format,
        color=color,
        log_file=log_file or settings.log_file,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a configured structlog logger."""

    return structlog.get_logger(name) if name else structlog.get_logger()


class timed_operation:
    """Context manager for timing operations and logging duration_ms.

    Usage:
        with timed_operation("provision.step", logger=log, step="OpenTofuApply"):
            ...
        # Logs: {"event": "provision.step", "duration_ms": 1234.56, "status": "completed", ...}

    Can also be used as a decorator:
        @timed_operation("render")
        def render():
            ...
    """

    def __init__(
        self,
        operation_name: str,
        logger: structlog.stdlib.BoundLogger | None = None,
        log_level: str = "info",
        **extra_context: Any,
    ) -> None:
        self.operation_name = operation_name
        self.logger = logger or get_logger()
        self.log_level = log_level
        self.extra_context = extra_context
        self._start_time: float = 0.0

    def __enter__(self) -> timed_operation:
        self._start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        duration_ms = (time.perf_counter() - self._start_time) * 1000
        status = "failed" if exc_type else "completed"
        log_method = getattr(self.logger, "warning" if exc_type else self.log_level)
        log_method(
            self.operation_name,
            duration_ms=round(duration_ms, 2),
            status=status,
            **self.extra_context,
        )

    def __call__(self, func: Any) -> Any:
        """Allow usage as a decorator."""

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            with self:
                return func(*args, **kwargs)

        return wrapper

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._start_time) * 1000
