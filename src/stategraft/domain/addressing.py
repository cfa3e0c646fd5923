"""Identity and addressing — state keys and canonical resource addresses.

Two encodings of the same identity ``(module path, mode, type, name, index)``:

- State key (module-local): ``[data.]TYPE.NAME[.INDEX]``
- Address (canonical): ``[module.M1.module.M2.][data.]TYPE.NAME[[INDEX]]``

Root-module addresses carry no module qualification. The legacy root
prefix ``module.root.`` is accepted on input and dropped on output.

INVARIANT: ``to_key(to_address(path, key)) == (normalize_path(path), key)``
for every well-formed identity.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from stategraft.domain.errors import AddressParseError, IncompleteAddressError, KeyParseError
from stategraft.domain.types import ResourceMode

ROOT_MODULE = "root"
ROOT_PATH: tuple[str, ...] = (ROOT_MODULE,)

# Type, name, and module segments: no dots, brackets, or whitespace.
_SEGMENT = re.compile(r"[^.\[\]\s]+")
_INDEX_SUFFIX = re.compile(r"\[([0-9]+)\]$")

type ModulePath = tuple[str, ...]


@dataclass(frozen=True)
class ResourceKey:
    """Decoded module-local state key."""

    mode: ResourceMode
    type: str
    name: str
    index: int = -1  # -1 means the resource has no count

    def __str__(self) -> str:
        return format_state_key(self)


@dataclass(frozen=True)
class ResourceAddress:
    """Decoded resource address. ``type`` and ``name`` may be empty."""

    path: ModulePath
    mode: ResourceMode
    type: str
    name: str
    index: int = -1

    @property
    def is_complete(self) -> bool:
        return bool(self.type and self.name)

    def state_key(self) -> str:
        return format_state_key(ResourceKey(self.mode, self.type, self.name, self.index))

    def __str__(self) -> str:
        parts: list[str] = []
        for module in self.path[1:]:
            parts.extend(("module", module))
        if self.mode is ResourceMode.DATA:
            parts.append("data")
        if self.type:
            parts.append(self.type)
        if self.name:
            parts.append(self.name)
        text = ".".join(parts)
        if self.index >= 0:
            text += f"[{self.index}]"
        return text


# ---------------------------------------------------------------------------
# Module paths
# ---------------------------------------------------------------------------


def normalize_path(path: Sequence[str] | None) -> ModulePath:
    """Return *path* as a tuple rooted at ``"root"``.

    An empty path is the root module; a path missing the leading
    ``"root"`` element gets one prepended.
    """
    if not path:
        return ROOT_PATH
    result = tuple(path)
    if result[0] != ROOT_MODULE:
        result = (ROOT_MODULE, *result)
    return result


def is_root_module(path: Sequence[str]) -> bool:
    """True if *path* names the root module."""
    return normalize_path(path) == ROOT_PATH


def module_sort_key(path: Sequence[str]) -> tuple[bool, ModulePath]:
    """Sort key placing the root module first, then children by path."""
    norm = normalize_path(path)
    return (norm != ROOT_PATH, norm)


# ---------------------------------------------------------------------------
# State keys
# ---------------------------------------------------------------------------


def parse_state_key(key: str) -> ResourceKey:
    """Decode a state key such as ``aws_instance.web.2`` or ``data.x.y``.

    Raises:
        KeyParseError: if *key* is not a well-formed state key.
    """
    parts = key.split(".")
    mode = ResourceMode.MANAGED
    if parts[0] == "data":
        mode = ResourceMode.DATA
        parts = parts[1:]
    if len(parts) not in (2, 3) or not all(_SEGMENT.fullmatch(p) for p in parts):
        msg = f"Malformed resource state key: {key!r}"
        raise KeyParseError(msg, key=key)
    if parts[0] == "module":
        # Would render as a module path, not a resource address.
        msg = f"Resource type must not be 'module': {key!r}"
        raise KeyParseError(msg, key=key)
    index = -1
    if len(parts) == 3:
        if not (parts[2].isascii() and parts[2].isdigit()):
            msg = f"Malformed index in resource state key: {key!r}"
            raise KeyParseError(msg, key=key)
        index = int(parts[2])
    return ResourceKey(mode=mode, type=parts[0], name=parts[1], index=index)


def format_state_key(key: ResourceKey) -> str:
    """Encode a :class:`ResourceKey` as a module-local state key."""
    text = f"{key.type}.{key.name}"
    if key.mode is ResourceMode.DATA:
        text = f"data.{text}"
    if key.index >= 0:
        text += f".{key.index}"
    return text


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------


def parse_address(address: str) -> ResourceAddress:
    """Decode a resource address. Type and name may come back empty.

    Raises:
        AddressParseError: if *address* is syntactically malformed.
    """
    rest = address
    index = -1
    if match := _INDEX_SUFFIX.search(rest):
        index = int(match.group(1))
        rest = rest[: match.start()]

    parts = rest.split(".") if rest else []
    modules: list[str] = []
    while len(parts) >= 2 and parts[0] == "module":
        modules.append(parts[1])
        parts = parts[2:]
    # Legacy addresses spell out the root module explicitly.
    if modules and modules[0] == ROOT_MODULE:
        modules = modules[1:]

    mode = ResourceMode.MANAGED
    if parts and parts[0] == "data":
        mode = ResourceMode.DATA
        parts = parts[1:]

    if len(parts) > 2 or parts == ["module"]:
        msg = f"Malformed resource address: {address!r}"
        raise AddressParseError(msg, address=address)
    for segment in (*modules, *parts):
        if not _SEGMENT.fullmatch(segment):
            msg = f"Malformed resource address: {address!r}"
            raise AddressParseError(msg, address=address)

    return ResourceAddress(
        path=(ROOT_MODULE, *modules),
        mode=mode,
        type=parts[0] if parts else "",
        name=parts[1] if len(parts) > 1 else "",
        index=index,
    )


def to_address(path: Sequence[str] | None, key: str) -> str:
    """Combine a module path and state key into a canonical address.

    Raises:
        KeyParseError: if *key* is malformed.
    """
    rk = parse_state_key(key)
    addr = ResourceAddress(
        path=normalize_path(path),
        mode=rk.mode,
        type=rk.type,
        name=rk.name,
        index=rk.index,
    )
    return str(addr)


def to_key(address: str) -> tuple[ModulePath, str]:
    """Split a resource address into ``(module path, state key)``.

    Raises:
        AddressParseError: if *address* is malformed.
        IncompleteAddressError: if *address* has no type or name.
    """
    addr = parse_address(address)
    if not addr.is_complete:
        msg = f"Incomplete resource address: {address!r}"
        raise IncompleteAddressError(msg, address=address)
    return addr.path, addr.state_key()


def canonical_address(address: str) -> str:
    """Re-render *address* canonically. ``""`` (deletion) passes through."""
    if address == "":
        return ""
    path, key = to_key(address)
    return to_address(path, key)
