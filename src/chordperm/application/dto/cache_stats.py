"""Cache statistics DTO."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CacheStats:
    """Entry counts of a permission cache at one point in time."""

    total_entries: int
    valid_entries: int
    expired_entries: int
