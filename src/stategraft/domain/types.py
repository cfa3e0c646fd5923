"""Resource modes and engine policy enums."""

from __future__ import annotations

from enum import StrEnum


class ResourceMode(StrEnum):
    """Whether a record tracks a managed resource or a data source."""

    MANAGED = "managed"
    DATA = "data"


class AmbiguityPolicy(StrEnum):
    """What dependency inference does with a multi-valued source attribute."""

    STRICT = "strict"  # abort the whole pass, graph untouched
    SKIP = "skip"  # drop the offending spec for that resource and continue


class Fate(StrEnum):
    """Outcome of the remap phase for a single resource."""

    KEPT = "kept"
    MOVED = "moved"
    DELETED = "deleted"
    SUPERSEDED = "superseded"
