"""Redis-backed permission cache (shared between processes)."""

import json
from collections.abc import AsyncIterator, Iterable
from datetime import datetime, timedelta
from uuid import UUID

import structlog
from redis import asyncio as aioredis
from redis.exceptions import RedisError, WatchError

from chordperm.application.dto.cache_stats import CacheStats
from chordperm.application.ports import Clock, Generation, utc_now
from chordperm.domain.entities import ResolvedPermission
from chordperm.domain.exceptions import CacheUnavailable
from chordperm.domain.value_objects import (
    PermissionAction,
    PermissionEffect,
    PermissionScope,
    PermissionSource,
    ResourceType,
)
from chordperm.infrastructure.cache.memory_cache import DEFAULT_TTL, CacheEntry

logger = structlog.get_logger(__name__)

DEFAULT_KEY_PREFIX = "chordperm:perm:"
_SCAN_COUNT = 200
# Generation counters outlive any load they guard by a wide margin.
_GENERATION_TTL = timedelta(days=1)


def encode_entry(entry: CacheEntry) -> str:
    """Serialize a cache entry to JSON."""
    return json.dumps(
        {
            "subject_id": entry.subject_id,
            "stored_at": entry.stored_at.isoformat(),
            "expires_at": entry.expires_at.isoformat(),
            "version": entry.version,
            "permissions": [
                {
                    "resource": str(p.resource),
                    "action": str(p.action),
                    "effect": str(p.effect),
                    "scope": str(p.scope),
                    "source": str(p.source),
                    "priority": p.priority,
                    "resource_id": p.resource_id,
                    "source_id": str(p.source_id) if p.source_id else None,
                }
                for p in entry.permissions
            ],
        }
    )


def decode_entry(raw: str | bytes) -> CacheEntry:
    """Parse a cache entry. Raises ValueError on malformed payloads."""
    try:
        data = json.loads(raw)
        permissions = tuple(
            ResolvedPermission(
                resource=ResourceType(p["resource"]),
                action=PermissionAction(p["action"]),
                effect=PermissionEffect(p["effect"]),
                scope=PermissionScope(p["scope"]),
                source=PermissionSource(p["source"]),
                priority=int(p["priority"]),
                resource_id=p.get("resource_id"),
                source_id=UUID(p["source_id"]) if p.get("source_id") else None,
            )
            for p in data["permissions"]
        )
        return CacheEntry(
            subject_id=data["subject_id"],
            permissions=permissions,
            stored_at=datetime.fromisoformat(data["stored_at"]),
            expires_at=datetime.fromisoformat(data["expires_at"]),
            version=int(data["version"]),
        )
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Malformed cache entry: {exc}") from exc


def _milliseconds(delta: timedelta) -> int:
    return max(1, int(delta.total_seconds() * 1000))


def _generation(values: list) -> Generation:
    epoch, counter = (int(v) if v is not None else 0 for v in values)
    return epoch, counter


class RedisPermissionCache:
    """Permission cache stored in Redis, one JSON value per subject.

    Validity is decided from the payload (``expires_at`` against the injected
    clock, ``version`` against the schema version); the Redis key TTL only
    reclaims memory. Check-then-modify operations run under WATCH so a
    concurrent writer's entry is never removed or extended by mistake.
    Invalidation bumps a per-subject counter and ``clear`` bumps a shared
    epoch, both stored outside the entry prefix so scans never see them.
    Backend failures are raised as CacheUnavailable.
    """

    def __init__(
        self,
        client: aioredis.Redis,
        *,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        default_ttl: timedelta = DEFAULT_TTL,
        schema_version: int = 1,
        clock: Clock = utc_now,
    ) -> None:
        self._client = client
        self._prefix = key_prefix
        base = key_prefix.rstrip(":")
        self._generation_prefix = f"{base}-gen:"
        self._epoch_key = f"{base}-epoch"
        self._default_ttl = default_ttl
        self._schema_version = schema_version
        self._clock = clock

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisPermissionCache":
        """Create cache with a client connected to url."""
        return cls(aioredis.from_url(url, decode_responses=True), **kwargs)

    @property
    def schema_version(self) -> int:
        return self._schema_version

    def bump_schema_version(self) -> int:
        """Treat every stored entry as stale from now on."""
        self._schema_version += 1
        logger.info("permission_cache_version_bumped", version=self._schema_version)
        return self._schema_version

    def _key(self, subject_id: str) -> str:
        return f"{self._prefix}{subject_id}"

    def _generation_key(self, subject_id: str) -> str:
        return f"{self._generation_prefix}{subject_id}"

    def _is_live(self, entry: CacheEntry, now: datetime) -> bool:
        if entry.version != self._schema_version:
            logger.debug(
                "permission_cache_stale",
                subject_id=entry.subject_id,
                found=entry.version,
                expected=self._schema_version,
            )
            return False
        return not entry.is_expired(now)

    async def _keys(self) -> AsyncIterator[str]:
        async for key in self._client.scan_iter(match=f"{self._prefix}*", count=_SCAN_COUNT):
            yield key

    async def _delete_if_dead(self, key: str) -> bool:
        """Delete the key if its entry is expired, stale or unreadable."""
        async with self._client.pipeline(transaction=True) as pipe:
            await pipe.watch(key)
            raw = await pipe.get(key)
            if raw is None:
                return False
            try:
                entry = decode_entry(raw)
            except ValueError:
                logger.warning("permission_cache_corrupt_entry", key=key)
                entry = None
            if entry is not None and self._is_live(entry, self._clock()):
                return False
            pipe.multi()
            pipe.delete(key)
            try:
                await pipe.execute()
            except WatchError:
                return False
        return True

    async def get(self, subject_id: str) -> list[ResolvedPermission] | None:
        """Cached permissions, or None if missing, expired or stale."""
        key = self._key(subject_id)
        try:
            raw = await self._client.get(key)
            if raw is None:
                return None
            try:
                entry = decode_entry(raw)
            except ValueError:
                logger.warning("permission_cache_corrupt_entry", key=key)
                await self._delete_if_dead(key)
                return None
            if not self._is_live(entry, self._clock()):
                await self._delete_if_dead(key)
                return None
        except RedisError as exc:
            raise CacheUnavailable(f"Redis get failed: {exc}") from exc
        return list(entry.permissions)

    async def generation(self, subject_id: str) -> Generation:
        """Token that changes whenever the subject is invalidated or the cache cleared."""
        try:
            values = await self._client.mget(self._epoch_key, self._generation_key(subject_id))
        except RedisError as exc:
            raise CacheUnavailable(f"Redis generation read failed: {exc}") from exc
        return _generation(values)

    async def set(
        self,
        subject_id: str,
        permissions: Iterable[ResolvedPermission],
        ttl: timedelta | None = None,
        generation: Generation | None = None,
    ) -> bool:
        """Store permissions for subject, valid for ttl.

        With a generation, the write runs under WATCH of the generation keys
        and is dropped (False) if the subject was invalidated since.
        """
        ttl = ttl if ttl is not None else self._default_ttl
        now = self._clock()
        entry = CacheEntry(
            subject_id=subject_id,
            permissions=tuple(permissions),
            stored_at=now,
            expires_at=now + ttl,
            version=self._schema_version,
        )
        key, payload = self._key(subject_id), encode_entry(entry)
        try:
            if generation is None:
                await self._client.set(key, payload, px=_milliseconds(ttl))
                return True
            generation_key = self._generation_key(subject_id)
            async with self._client.pipeline(transaction=True) as pipe:
                await pipe.watch(self._epoch_key, generation_key)
                current = _generation(await pipe.mget(self._epoch_key, generation_key))
                if current != generation:
                    logger.debug("permission_cache_write_superseded", subject_id=subject_id)
                    return False
                pipe.multi()
                pipe.set(key, payload, px=_milliseconds(ttl))
                try:
                    await pipe.execute()
                except WatchError:
                    logger.debug("permission_cache_write_superseded", subject_id=subject_id)
                    return False
        except RedisError as exc:
            raise CacheUnavailable(f"Redis set failed: {exc}") from exc
        return True

    async def invalidate(self, subject_id: str) -> bool:
        """Drop a subject's entry and move its generation."""
        return bool(await self.invalidate_many([subject_id]))

    async def invalidate_many(self, subject_ids: Iterable[str]) -> int:
        """Drop several entries and move their generations in one transaction."""
        subjects = list(dict.fromkeys(subject_ids))
        if not subjects:
            return 0
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.delete(*(self._key(s) for s in subjects))
                for subject_id in subjects:
                    generation_key = self._generation_key(subject_id)
                    pipe.incr(generation_key)
                    pipe.pexpire(generation_key, _milliseconds(_GENERATION_TTL))
                results = await pipe.execute()
        except RedisError as exc:
            raise CacheUnavailable(f"Redis delete failed: {exc}") from exc
        return int(results[0])

    async def sweep_expired(self) -> int:
        """Remove expired, stale and corrupt entries."""
        removed = 0
        try:
            async for key in self._keys():
                if await self._delete_if_dead(key):
                    removed += 1
        except RedisError as exc:
            raise CacheUnavailable(f"Redis sweep failed: {exc}") from exc
        if removed:
            logger.debug("permission_cache_swept", removed=removed)
        return removed

    async def extend_ttl(self, subject_id: str, extra: timedelta) -> bool:
        """Push back expiry of a live entry. False if missing, expired or stale."""
        key = self._key(subject_id)
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                await pipe.watch(key)
                raw = await pipe.get(key)
                if raw is None:
                    return False
                try:
                    entry = decode_entry(raw)
                except ValueError:
                    return False
                now = self._clock()
                if not self._is_live(entry, now):
                    return False
                expires_at = entry.expires_at + extra
                extended = CacheEntry(
                    subject_id=entry.subject_id,
                    permissions=entry.permissions,
                    stored_at=entry.stored_at,
                    expires_at=expires_at,
                    version=entry.version,
                )
                pipe.multi()
                pipe.set(key, encode_entry(extended), px=_milliseconds(expires_at - now))
                try:
                    await pipe.execute()
                except WatchError:
                    return False
        except RedisError as exc:
            raise CacheUnavailable(f"Redis extend failed: {exc}") from exc
        return True

    async def remaining_ttl(self, subject_id: str) -> timedelta:
        """Time left before the entry expires; zero when absent or stale."""
        try:
            raw = await self._client.get(self._key(subject_id))
        except RedisError as exc:
            raise CacheUnavailable(f"Redis get failed: {exc}") from exc
        if raw is None:
            return timedelta(0)
        try:
            entry = decode_entry(raw)
        except ValueError:
            return timedelta(0)
        if entry.version != self._schema_version:
            return timedelta(0)
        return max(timedelta(0), entry.expires_at - self._clock())

    async def clear(self) -> None:
        """Drop every entry under the key prefix."""
        try:
            await self._client.incr(self._epoch_key)
            batch: list[str] = []
            async for key in self._keys():
                batch.append(key)
                if len(batch) >= _SCAN_COUNT:
                    await self._client.delete(*batch)
                    batch = []
            if batch:
                await self._client.delete(*batch)
        except RedisError as exc:
            raise CacheUnavailable(f"Redis clear failed: {exc}") from exc

    async def stats(self) -> CacheStats:
        """Counts of valid and expired entries."""
        total = valid = 0
        now = self._clock()
        try:
            async for key in self._keys():
                raw = await self._client.get(key)
                if raw is None:
                    continue
                total += 1
                try:
                    if self._is_live(decode_entry(raw), now):
                        valid += 1
                except ValueError:
                    continue
        except RedisError as exc:
            raise CacheUnavailable(f"Redis stats failed: {exc}") from exc
        return CacheStats(total_entries=total, valid_entries=valid, expired_entries=total - valid)

    async def close(self) -> None:
        """Release the client's connections."""
        await self._client.aclose()
