"""Cache invalidation shared by mutation use cases."""

from collections.abc import Iterable

import structlog

from chordperm.application.ports import PermissionCache
from chordperm.domain.exceptions import CacheUnavailable

logger = structlog.get_logger(__name__)


async def invalidate_subjects(cache: PermissionCache | None, subject_ids: Iterable[str]) -> int:
    """Drop cached permissions of subjects. Backend failures are logged, not raised.

    Entries that survive a failed invalidation still expire with their TTL.
    """
    subject_ids = list(dict.fromkeys(subject_ids))
    if cache is None or not subject_ids:
        return 0
    try:
        removed = await cache.invalidate_many(subject_ids)
    except CacheUnavailable as exc:
        logger.error(
            "permission_cache_invalidation_failed",
            subjects=len(subject_ids),
            error=str(exc),
        )
        return 0
    logger.debug("permission_cache_invalidated", subjects=len(subject_ids), removed=removed)
    return removed
