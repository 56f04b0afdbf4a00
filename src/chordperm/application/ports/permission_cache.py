"""Permission cache port - per-subject resolved permission sets."""

from collections.abc import Iterable
from datetime import timedelta
from typing import Protocol

from chordperm.application.dto.cache_stats import CacheStats
from chordperm.domain.entities import ResolvedPermission

# (clear epoch, per-subject invalidation counter)
Generation = tuple[int, int]


class PermissionCache(Protocol):
    """Port for a time-boxed, versioned cache keyed by subject id.

    Every invalidation (and ``clear``) moves the subject's generation. A
    writer that read the generation before computing passes it to ``set``,
    which stores nothing if the generation has moved since.

    Implementations raise CacheUnavailable when their backend cannot be
    reached; callers treat that as a miss.
    """

    async def get(self, subject_id: str) -> list[ResolvedPermission] | None: ...

    async def generation(self, subject_id: str) -> Generation: ...

    async def set(
        self,
        subject_id: str,
        permissions: Iterable[ResolvedPermission],
        ttl: timedelta | None = None,
        generation: Generation | None = None,
    ) -> bool: ...

    async def invalidate(self, subject_id: str) -> bool: ...

    async def invalidate_many(self, subject_ids: Iterable[str]) -> int: ...

    async def sweep_expired(self) -> int: ...

    async def extend_ttl(self, subject_id: str, extra: timedelta) -> bool: ...

    async def remaining_ttl(self, subject_id: str) -> timedelta: ...

    async def clear(self) -> None: ...

    async def stats(self) -> CacheStats: ...
