"""In-process permission cache."""

import threading
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

import structlog

from chordperm.application.dto.cache_stats import CacheStats
from chordperm.application.ports import Clock, Generation, utc_now
from chordperm.domain.entities import ResolvedPermission
from chordperm.domain.exceptions import StaleCacheVersion

logger = structlog.get_logger(__name__)

DEFAULT_TTL = timedelta(minutes=5)
_LOCK_STRIPES = 64


@dataclass(frozen=True)
class CacheEntry:
    """Immutable cache entry; updates replace the whole entry."""

    subject_id: str
    permissions: tuple[ResolvedPermission, ...]
    stored_at: datetime
    expires_at: datetime
    version: int

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class InMemoryPermissionCache:
    """Per-subject cache of resolved permissions with TTL and schema version.

    Readers never take a lock: entries are immutable and swapped in with a
    single dict assignment. Operations that must observe-then-modify an entry
    (eviction, TTL extension, generation-checked writes, invalidation) take
    the lock of the key's stripe, so the expiry sweep can run alongside reads
    and writes without a global lock.
    """

    def __init__(
        self,
        *,
        default_ttl: timedelta = DEFAULT_TTL,
        schema_version: int = 1,
        clock: Clock = utc_now,
    ) -> None:
        self._default_ttl = default_ttl
        self._schema_version = schema_version
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._generations: dict[str, int] = {}
        self._epoch = 0
        self._stripes = tuple(threading.Lock() for _ in range(_LOCK_STRIPES))
        self._version_lock = threading.Lock()

    @property
    def schema_version(self) -> int:
        return self._schema_version

    def bump_schema_version(self) -> int:
        """Invalidate every entry at once by moving to a new version."""
        with self._version_lock:
            self._schema_version += 1
            version = self._schema_version
        logger.info("permission_cache_version_bumped", version=version)
        return version

    def _lock_for(self, subject_id: str) -> threading.Lock:
        return self._stripes[hash(subject_id) % _LOCK_STRIPES]

    def _check_version(self, entry: CacheEntry) -> None:
        if entry.version != self._schema_version:
            raise StaleCacheVersion(entry.subject_id, entry.version, self._schema_version)

    def _evict(self, subject_id: str, entry: CacheEntry) -> bool:
        """Remove the entry only if it has not been replaced meanwhile."""
        with self._lock_for(subject_id):
            if self._entries.get(subject_id) is entry:
                del self._entries[subject_id]
                return True
        return False

    async def get(self, subject_id: str) -> list[ResolvedPermission] | None:
        """Cached permissions, or None if missing, expired or stale."""
        entry = self._entries.get(subject_id)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            self._evict(subject_id, entry)
            return None
        try:
            self._check_version(entry)
        except StaleCacheVersion as exc:
            logger.debug("permission_cache_stale", subject_id=subject_id, error=str(exc))
            self._evict(subject_id, entry)
            return None
        return list(entry.permissions)

    async def generation(self, subject_id: str) -> Generation:
        """Token that changes whenever the subject is invalidated or the cache cleared."""
        return self._epoch, self._generations.get(subject_id, 0)

    async def set(
        self,
        subject_id: str,
        permissions: Iterable[ResolvedPermission],
        ttl: timedelta | None = None,
        generation: Generation | None = None,
    ) -> bool:
        """Store a copy of the permissions, valid for ttl.

        With a generation, the write is dropped (False) if the subject was
        invalidated since that generation was read.
        """
        now = self._clock()
        entry = CacheEntry(
            subject_id=subject_id,
            permissions=tuple(permissions),
            stored_at=now,
            expires_at=now + (ttl if ttl is not None else self._default_ttl),
            version=self._schema_version,
        )
        with self._lock_for(subject_id):
            if generation is not None and generation != (
                self._epoch,
                self._generations.get(subject_id, 0),
            ):
                logger.debug("permission_cache_write_superseded", subject_id=subject_id)
                return False
            self._entries[subject_id] = entry
        return True

    async def invalidate(self, subject_id: str) -> bool:
        """Drop a subject's entry. True if one was present."""
        with self._lock_for(subject_id):
            self._generations[subject_id] = self._generations.get(subject_id, 0) + 1
            return self._entries.pop(subject_id, None) is not None

    async def invalidate_many(self, subject_ids: Iterable[str]) -> int:
        """Drop several entries, returning how many were present."""
        removed = 0
        for subject_id in subject_ids:
            if await self.invalidate(subject_id):
                removed += 1
        return removed

    async def sweep_expired(self) -> int:
        """Remove expired and stale entries, returning the count removed."""
        now = self._clock()
        removed = 0
        for subject_id, entry in list(self._entries.items()):
            if entry.expires_at < now or entry.version != self._schema_version:
                if self._evict(subject_id, entry):
                    removed += 1
        if removed:
            logger.debug("permission_cache_swept", removed=removed)
        return removed

    async def extend_ttl(self, subject_id: str, extra: timedelta) -> bool:
        """Push back expiry of a live entry. False if missing or expired."""
        with self._lock_for(subject_id):
            entry = self._entries.get(subject_id)
            if (
                entry is None
                or entry.is_expired(self._clock())
                or entry.version != self._schema_version
            ):
                return False
            self._entries[subject_id] = replace(entry, expires_at=entry.expires_at + extra)
        return True

    async def remaining_ttl(self, subject_id: str) -> timedelta:
        """Time left before the entry expires; zero when absent or stale."""
        entry = self._entries.get(subject_id)
        if entry is None or entry.version != self._schema_version:
            return timedelta(0)
        return max(timedelta(0), entry.expires_at - self._clock())

    async def clear(self) -> None:
        """Drop every entry."""
        for stripe in self._stripes:
            stripe.acquire()
        try:
            self._entries.clear()
            self._generations.clear()
            self._epoch += 1
        finally:
            for stripe in reversed(self._stripes):
                stripe.release()

    async def stats(self) -> CacheStats:
        """Counts of valid and expired entries."""
        now = self._clock()
        entries = list(self._entries.values())
        expired = sum(
            1 for e in entries if e.is_expired(now) or e.version != self._schema_version
        )
        return CacheStats(
            total_entries=len(entries),
            valid_entries=len(entries) - expired,
            expired_entries=expired,
        )
