"""Resource types that permissions apply to."""

from enum import StrEnum


class ResourceType(StrEnum):
    """Kinds of resources guarded by the engine."""

    SONG = "song"
    ARRANGEMENT = "arrangement"
    SETLIST = "setlist"
    USER = "user"
    ROLE = "role"
    SYSTEM = "system"
