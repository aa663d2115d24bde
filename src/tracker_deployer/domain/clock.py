"""Time source abstraction so handlers can be tested with fixed timestamps."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:  # pragma: no cover - interface
        ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock that returns a fixed instant, optionally advancing on each call."""

    def __init__(self, instant: datetime, step: timedelta | None = None):
        self._instant = instant
        self._step = step

    def now(self) -> datetime:
        current = self._instant
        if self._step is not None:
            self._instant = self._instant + self._step
        return current

    def advance(self, delta: timedelta) -> None:
        self._instant = self._instant + delta
