"""Application ports - interfaces for external adapters."""

from chordperm.application.ports.clock import Clock, utc_now
from chordperm.application.ports.permission_cache import Generation, PermissionCache
from chordperm.application.ports.permission_catalog import PermissionCatalog
from chordperm.application.ports.permission_checker import PermissionChecker
from chordperm.application.ports.unit_of_work import UnitOfWork, UnitOfWorkFactory

__all__ = [
    "Clock",
    "Generation",
    "PermissionCache",
    "PermissionCatalog",
    "PermissionChecker",
    "UnitOfWork",
    "UnitOfWorkFactory",
    "utc_now",
]
