"""Error classification and causal-chain tracing.

Provides:
- ErrorKind: coarse, closed classification of failures
- Traceable: mixin for errors that can describe themselves in a trace file
- TraceId: identifier minted once per failure
- iter_error_chain: walks an error down to its root cause
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic_core import core_schema


class ErrorKind(str, Enum):
    """Coarse category of a failure.

    Used for filtering and for choosing user-facing guidance. Never used to
    drive automatic retries.
    """

    TEMPLATE_RENDERING = "TemplateRendering"
    INFRASTRUCTURE_OPERATION = "InfrastructureOperation"
    NETWORK_CONNECTIVITY = "NetworkConnectivity"
    COMMAND_EXECUTION = "CommandExecution"
    TIMEOUT = "Timeout"
    FILE_SYSTEM = "FileSystem"
    CONFIGURATION = "Configuration"
    STATE_PERSISTENCE = "StatePersistence"


class Traceable:
    """Mixin for exceptions that take part in a trace error chain.

    Subclasses set ``kind`` (or override :meth:`error_kind`) and may override
    :meth:`trace_format` for a richer one-line description.
    """

    kind: ErrorKind = ErrorKind.COMMAND_EXECUTION

    def trace_format(self) -> str:
        """One-line human readable description of this error."""
        return f"{type(self).__name__}: {self}"

    def trace_source(self) -> BaseException | None:
        """The underlying cause, which may or may not be Traceable."""
        return getattr(self, "__cause__", None)

    def error_kind(self) -> ErrorKind:
        return self.kind


class TraceId(str):
    """Globally unique failure identifier (canonical UUID4 text)."""

    def __new__(cls, value: str) -> TraceId:
        try:
            canonical = str(uuid.UUID(str(value)))
        except ValueError as exc:
            raise ValueError(f"Invalid trace id: {value!r}") from exc
        return super().__new__(cls, canonical)

    @classmethod
    def new(cls) -> TraceId:
        return cls(str(uuid.uuid4()))

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> core_schema.CoreSchema:
        return core_schema.no_info_after_validator_function(cls, core_schema.str_schema())


@dataclass(frozen=True)
class ChainLink:
    """One level of an error chain, outermost first."""

    level: int
    description: str
    error_kind: ErrorKind | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "description": self.description,
            "error_kind": self.error_kind.value if self.error_kind else None,
        }


def describe_error(error: BaseException) -> str:
    """Describe any exception, preferring its Traceable format."""
    if isinstance(error, Traceable):
        return error.trace_format()
    return f"{type(error).__name__}: {error}"


def iter_error_chain(error: BaseException, max_depth: int = 32) -> Iterator[ChainLink]:
    """Walk an error from the outermost level to its root cause.

    Traceable errors are followed through :meth:`Traceable.trace_source`;
    plain exceptions through ``__cause__`` (falling back to ``__context__``).
    Non-traceable links inherit no kind.
    """
    seen: set[int] = set()
    current: BaseException | None = error
    level = 0
    while current is not None and level < max_depth and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, Traceable):
            yield ChainLink(level, current.trace_format(), current.error_kind())
            current = current.trace_source()
        else:
            yield ChainLink(level, describe_error(current), None)
            current = current.__cause__ or (
                None if current.__suppress_context__ else current.__context__
            )
        level += 1


def classify(error: BaseException) -> ErrorKind:
    """Return the kind of the outermost Traceable error in the chain."""
    for link in iter_error_chain(error):
        if link.error_kind is not None:
            return link.error_kind
    if isinstance(error, TimeoutError):
        return ErrorKind.TIMEOUT
    if isinstance(error, OSError):
        return ErrorKind.FILE_SYSTEM
    return ErrorKind.COMMAND_EXECUTION


__all__ = [
    "ErrorKind",
    "Traceable",
    "TraceId",
    "ChainLink",
    "describe_error",
    "iter_error_chain",
    "classify",
]
