"""Application entry point and composition root."""

from dataclasses import dataclass
from datetime import timedelta

import structlog
from psycopg_pool import AsyncConnectionPool

from chordperm import __version__
from chordperm.application.ports import PermissionCache
from chordperm.application.use_cases.permission.assign_permission import AssignPermissionUseCase
from chordperm.application.use_cases.permission.check_permission import CheckPermissionUseCase
from chordperm.application.use_cases.permission.resolve_permissions import (
    ResolvePermissionsUseCase,
)
from chordperm.application.use_cases.permission.revoke_permission import RevokePermissionUseCase
from chordperm.application.use_cases.role.assign_role import AssignRoleUseCase
from chordperm.application.use_cases.role.create_role import CreateRoleUseCase
from chordperm.application.use_cases.role.delete_role import DeleteRoleUseCase
from chordperm.application.use_cases.role.revoke_role import RevokeRoleUseCase
from chordperm.application.use_cases.role.update_role import UpdateRoleUseCase
from chordperm.config import Settings, get_settings
from chordperm.infrastructure.cache.memory_cache import InMemoryPermissionCache
from chordperm.infrastructure.cache.redis_cache import RedisPermissionCache
from chordperm.infrastructure.cache.sweeper import CacheSweeper
from chordperm.infrastructure.permission.catalog import InMemoryPermissionCatalog
from chordperm.infrastructure.permission.engine import PermissionEngine
from chordperm.infrastructure.permission.permission_checker import EnginePermissionChecker
from chordperm.infrastructure.persistence.postgres.connection import create_pool
from chordperm.infrastructure.persistence.postgres.unit_of_work import create_uow_factory
from chordperm.logging_config import configure_logging

logger = structlog.get_logger(__name__)


@dataclass
class ChordPermServices:
    """Everything an embedding application needs, wired together."""

    pool: AsyncConnectionPool
    engine: PermissionEngine
    cache: PermissionCache
    sweeper: CacheSweeper
    resolve_permissions: ResolvePermissionsUseCase
    check_permission: CheckPermissionUseCase
    permission_checker: EnginePermissionChecker
    assign_permission: AssignPermissionUseCase
    revoke_permission: RevokePermissionUseCase
    create_role: CreateRoleUseCase
    update_role: UpdateRoleUseCase
    delete_role: DeleteRoleUseCase
    assign_role: AssignRoleUseCase
    revoke_role: RevokeRoleUseCase

    async def close(self) -> None:
        """Stop the sweeper and release connections."""
        await self.sweeper.stop()
        if isinstance(self.cache, RedisPermissionCache):
            await self.cache.close()
        await self.pool.close()


def create_cache(settings: Settings) -> PermissionCache:
    """Cache backend selected by settings."""
    ttl = timedelta(seconds=settings.cache_ttl_seconds)
    if settings.cache_backend == "redis":
        return RedisPermissionCache.from_url(
            settings.redis_url,
            key_prefix=settings.cache_key_prefix,
            default_ttl=ttl,
            schema_version=settings.cache_schema_version,
        )
    return InMemoryPermissionCache(default_ttl=ttl, schema_version=settings.cache_schema_version)


async def create_chordperm_services(settings: Settings | None = None) -> ChordPermServices:
    """Composition root - open the pool, load the catalog and build use cases."""
    settings = settings or get_settings()
    configure_logging(settings)

    pool = create_pool(settings.database_url)
    await pool.open()
    uow_factory = create_uow_factory(pool)

    async with uow_factory() as uow:
        catalog = await InMemoryPermissionCatalog.load(uow.permissions)
    engine = PermissionEngine(catalog)

    cache = create_cache(settings)
    sweeper = CacheSweeper(
        cache,
        interval=timedelta(seconds=settings.cache_sweep_interval_seconds),
        min_interval=timedelta(seconds=settings.cache_min_sweep_interval_seconds),
    )
    sweeper.start()

    resolve_permissions = ResolvePermissionsUseCase(
        unit_of_work_factory=uow_factory,
        engine=engine,
        cache=cache,
        cache_ttl=timedelta(seconds=settings.cache_ttl_seconds),
    )
    check_permission = CheckPermissionUseCase(resolve_permissions, engine)
    permission_checker = EnginePermissionChecker(check_permission)

    services = ChordPermServices(
        pool=pool,
        engine=engine,
        cache=cache,
        sweeper=sweeper,
        resolve_permissions=resolve_permissions,
        check_permission=check_permission,
        permission_checker=permission_checker,
        assign_permission=AssignPermissionUseCase(
            unit_of_work_factory=uow_factory,
            permission_checker=permission_checker,
            catalog=catalog,
            cache=cache,
        ),
        revoke_permission=RevokePermissionUseCase(
            unit_of_work_factory=uow_factory,
            permission_checker=permission_checker,
            cache=cache,
        ),
        create_role=CreateRoleUseCase(
            unit_of_work_factory=uow_factory,
            permission_checker=permission_checker,
            engine=engine,
        ),
        update_role=UpdateRoleUseCase(
            unit_of_work_factory=uow_factory,
            permission_checker=permission_checker,
            engine=engine,
            cache=cache,
        ),
        delete_role=DeleteRoleUseCase(
            unit_of_work_factory=uow_factory,
            permission_checker=permission_checker,
            engine=engine,
            cache=cache,
        ),
        assign_role=AssignRoleUseCase(
            unit_of_work_factory=uow_factory,
            permission_checker=permission_checker,
            cache=cache,
        ),
        revoke_role=RevokeRoleUseCase(
            unit_of_work_factory=uow_factory,
            permission_checker=permission_checker,
            cache=cache,
        ),
    )
    logger.info(
        "chordperm_started",
        version=__version__,
        permissions=len(catalog),
        cache_backend=settings.cache_backend,
    )
    return services


def main() -> None:
    """CLI entry point."""
    print(f"chordperm v{__version__}")
