"""Clock used for date defaults and day counts."""

from datetime import date
from typing import Protocol


class Clock(Protocol):
    """Source of the current date."""

    def today(self) -> date: ...


class SystemClock:
    """Clock backed by the local wall clock."""

    def today(self) -> date:
        return date.today()


class FixedClock:
    """Clock that always returns the same date."""

    def __init__(self, current: date) -> None:
        self.current = current

    def today(self) -> date:
        return self.current

    def __repr__(self) -> str:
        return f"FixedClock({self.current.isoformat()})"
