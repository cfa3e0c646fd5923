"""Domain error taxonomy.

Every error raised by the engines derives from :class:`StateGraphError`
and carries a stable ``code``. The service layer turns these into
``ServiceError`` payloads; the domain never formats output itself.

INVARIANT: an error raised by ``StateTransform.apply`` or a strict
``DepMap.infer`` pass leaves the graph exactly as it was.
"""

from __future__ import annotations

from typing import Any, ClassVar


class StateGraphError(Exception):
    """Base class for all state graph errors."""

    code: ClassVar[str] = "STATE_ERROR"

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class KeyParseError(StateGraphError, ValueError):
    """A module-local state key could not be decoded."""

    code = "KEY_PARSE"


class AddressParseError(KeyParseError):
    """A resource address could not be decoded."""

    code = "ADDRESS_PARSE"


class IncompleteAddressError(StateGraphError, ValueError):
    """An address names a module but no resource type or name."""

    code = "INCOMPLETE_ADDRESS"


class AddressCollisionError(StateGraphError):
    """Two explicitly mapped resources target the same address."""

    code = "ADDRESS_COLLISION"


class AttributePathError(StateGraphError):
    """An attribute path does not match the shape of the attribute tree."""

    code = "ATTRIBUTE_PATH"


class AmbiguousSourceError(StateGraphError):
    """A dependency source attribute yielded more than one value."""

    code = "AMBIGUOUS_SOURCE"


class DuplicateRuleError(StateGraphError):
    """Two rule tables define dependency specs for the same resource type."""

    code = "DUPLICATE_RULE"


class StateInvariantError(StateGraphError):
    """The input graph is corrupted (duplicate addresses or keys)."""

    code = "STATE_INVARIANT"


class DocumentError(StateGraphError):
    """A state, diff, or rule document could not be read or validated."""

    code = "INVALID_DOCUMENT"


class ResourceNotFoundError(StateGraphError):
    """An operation names a resource the state does not hold."""

    code = "NOT_FOUND"
