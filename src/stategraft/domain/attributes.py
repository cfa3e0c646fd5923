"""Attribute trees — the set variant and dotted-path flattening.

A record's attributes form a tree of string-keyed maps, lists,
:class:`AttrSet` sets, and scalars (str, int, float, bool, None).
Documents persist a set as ``{"__set__": [members...]}``.

INVARIANT: set members are visited in canonical order, never in
insertion order, so inference results do not depend on how a set
happened to be serialized.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from stategraft.domain.errors import AttributePathError

SET_MARKER = "__set__"


def _encode_default(value: Any) -> Any:
    if isinstance(value, AttrSet):
        return {SET_MARKER: list(value)}
    msg = f"Unsupported attribute value type: {type(value).__name__}"
    raise TypeError(msg)


def canonical_json(value: Any) -> str:
    """Stable JSON text for an attribute value (sorted keys, compact)."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=_encode_default)


class AttrSet:
    """Unordered, deduplicated collection of attribute values.

    Members are compared by their canonical JSON form, so sets of maps
    work the same as sets of strings.
    """

    def __init__(self, members: Iterable[Any] = ()) -> None:
        unique: dict[str, Any] = {}
        for member in members:
            unique.setdefault(canonical_json(member), member)
        self._keys = tuple(sorted(unique))
        self._members = tuple(unique[k] for k in self._keys)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._members)

    def __len__(self) -> int:
        return len(self._members)

    def __contains__(self, item: object) -> bool:
        try:
            return canonical_json(item) in self._keys
        except TypeError:
            return False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AttrSet):
            return NotImplemented
        return self._keys == other._keys

    def __hash__(self) -> int:
        return hash(self._keys)

    def __repr__(self) -> str:
        return f"AttrSet({list(self._members)!r})"


# ---------------------------------------------------------------------------
# Document encoding
# ---------------------------------------------------------------------------


def encode_value(value: Any) -> Any:
    """Convert an attribute tree into JSON-compatible data."""
    if isinstance(value, AttrSet):
        return {SET_MARKER: [encode_value(v) for v in value]}
    if isinstance(value, Mapping):
        return {str(k): encode_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    return value


def decode_value(value: Any) -> Any:
    """Inverse of :func:`encode_value`: rebuild :class:`AttrSet` members."""
    if isinstance(value, Mapping):
        if set(value) == {SET_MARKER}:
            return AttrSet(decode_value(v) for v in value[SET_MARKER])
        return {k: decode_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [decode_value(v) for v in value]
    return value


# ---------------------------------------------------------------------------
# Flattening
# ---------------------------------------------------------------------------


def split_attr(path: str) -> tuple[str, str]:
    """Split ``"a.b.c"`` into ``("a", "b.c")``."""
    head, _, tail = path.partition(".")
    return head, tail


def flatten(attributes: Mapping[str, Any], path: str) -> list[str]:
    """Return all non-empty leaf values found at dotted *path*.

    Lists and sets are walked element by element with the same remaining
    path; a map consumes one path segment, or yields all of its values
    (sorted by key) when the path is exhausted. Missing keys yield nothing.

    Raises:
        AttributePathError: if the path continues past a scalar, or the
            tree holds a value of an unsupported type.
    """
    values: list[str] = []
    _collect(attributes, path, path, values)
    return values


def _collect(value: Any, rest: str, path: str, out: list[str]) -> None:
    match value:
        case None:
            return
        case bool() | int() | float() | str():
            if rest:
                msg = f"Attribute path {path!r} continues past a scalar at {rest!r}"
                raise AttributePathError(msg, path=path, remaining=rest)
            text = _render_scalar(value)
            if text:
                out.append(text)
        case AttrSet() | list() | tuple():
            for element in value:
                _collect(element, rest, path, out)
        case Mapping():
            if not rest:
                for key in sorted(value):
                    _collect(value[key], "", path, out)
            else:
                head, tail = split_attr(rest)
                _collect(value.get(head), tail, path, out)
        case _:
            msg = f"Unexpected value type {type(value).__name__} at attribute path {path!r}"
            raise AttributePathError(msg, path=path)


def _render_scalar(value: bool | int | float | str) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
