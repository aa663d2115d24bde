"""Type-erased envelope around a concrete lifecycle state.

``AnyEnvironmentState`` is what the repository persists and what read-only
handlers inspect. It is serialized as a single-key object whose key is the
state tag::

    {"Provisioned": {"name": "dev", "instance_ip": "10.0.0.5", ...}}
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, TypeVar

from pydantic import ValidationError

from tracker_deployer.domain.environment import (
    STATE_CLASSES,
    Environment,
    FailureContext,
)
from tracker_deployer.domain.values import EnvironmentName, Provider

E = TypeVar("E", bound=Environment)


class StateTypeError(TypeError):
    """The wrapped state is not one of the requested classes."""

    def __init__(self, actual: str, expected: tuple[str, ...]):
        self.actual = actual
        self.expected = expected
        super().__init__(f"Environment is in state {actual}, expected one of: {', '.join(expected)}")


class StateDecodeError(ValueError):
    """A persisted document does not describe a valid environment state."""


@dataclass(frozen=True)
class AnyEnvironmentState:
    """A single environment snapshot of any state."""

    environment: Environment

    # ==================== ACCESSORS ====================

    @property
    def state_name(self) -> str:
        return self.environment.state_name()

    @property
    def name(self) -> EnvironmentName:
        return self.environment.name

    @property
    def created_at(self) -> datetime:
        return self.environment.created_at

    @property
    def provider(self) -> Provider:
        return self.environment.provider

    @property
    def instance_ip(self) -> Any | None:
        return getattr(self.environment, "instance_ip", None)

    @property
    def failure(self) -> FailureContext | None:
        return getattr(self.environment, "failure", None)

    @property
    def is_error_state(self) -> bool:
        return self.environment.is_error_state

    @property
    def is_in_progress(self) -> bool:
        return self.environment.is_in_progress

    def is_state(self, *classes: type[Environment]) -> bool:
        return type(self.environment) in classes

    def try_into(self, *classes: type[E]) -> E:
        """Narrow to one of ``classes`` or raise :class:`StateTypeError`."""
        if type(self.environment) in classes:
            return self.environment  # type: ignore[return-value]
        raise StateTypeError(self.state_name, tuple(cls.state_name() for cls in classes))

    # ==================== SERIALIZATION ====================

    def to_dict(self) -> dict[str, Any]:
        return {self.state_name: self.environment.model_dump(mode="json")}

    @classmethod
    def from_dict(cls, data: Any) -> AnyEnvironmentState:
        if not isinstance(data, dict) or len(data) != 1:
            raise StateDecodeError("expected an object with exactly one state tag")
        (tag, payload), = data.items()
        state_cls = STATE_CLASSES.get(tag)
        if state_cls is None:
            raise StateDecodeError(f"unknown state tag '{tag}'")
        try:
            return cls(state_cls.model_validate(payload))
        except ValidationError as exc:
            raise StateDecodeError(f"invalid {tag} payload: {exc}") from exc


__all__ = [
    "StateTypeError",
    "StateDecodeError",
    "AnyEnvironmentState",
]
