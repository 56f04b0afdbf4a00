"""Clock port - source of "now" for the stateful parts of the engine."""

from datetime import UTC, datetime
from typing import Protocol


class Clock(Protocol):
    """Callable returning the current aware datetime."""

    def __call__(self) -> datetime: ...


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(UTC)
