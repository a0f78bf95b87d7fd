"""
Field projector: copy only allowlisted keys from an untrusted payload.

Guards every place where client-supplied objects are merged into internal
records (mass-assignment / over-posting). Rules:
- Only keys named in the allowlist can appear in the result
- Only *own* keys of the payload are read; fallback layers
  (ChainMap parents, defaultdict factories, overridden dict lookups) are inert
- Values are carried through as-is (no copy, no validation)
- Malformed payloads or allowlists yield an empty result; never raises

Pure function: no state, no I/O, safe for concurrent use.
"""
from collections import ChainMap
from collections.abc import Mapping
from enum import Enum
from typing import Any, Hashable


class RecordKind(str, Enum):
    """Kind tag for an untrusted payload."""
    MAPPING = "mapping"
    LAYERED = "layered"
    GENERIC = "generic"
    OPAQUE = "opaque"


_EMPTY: dict = {}


def classify_record(record: Any) -> RecordKind:
    """
    Tag a payload by how its own keys must be read.

    Returns:
        MAPPING for dict and dict subclasses, LAYERED for ChainMap,
        GENERIC for any other Mapping, OPAQUE for everything else
    """
    if isinstance(record, dict):
        return RecordKind.MAPPING
    if isinstance(record, ChainMap):
        return RecordKind.LAYERED
    if isinstance(record, Mapping):
        return RecordKind.GENERIC
    return RecordKind.OPAQUE


def _own_layer(record: Any) -> Any:
    """
    Reduce a ChainMap to its first (writable) layer; parents are inherited.

    A tampered ``maps`` attribute (not a non-empty list) or a layer cycle
    reduces to an empty mapping.
    """
    seen: set[int] = set()
    while isinstance(record, ChainMap):
        if id(record) in seen:
            return _EMPTY
        seen.add(id(record))
        maps = getattr(record, "maps", None)
        if type(maps) is not list or not maps:
            return _EMPTY
        record = maps[0]
    return record


def normalize_allowlist(allowlist: Any) -> tuple[str, ...]:
    """
    Return the allowlist as a tuple of string keys.

    Only list and tuple are accepted. Sets are unordered, and str/bytes would
    otherwise be iterated character by character. Non-string entries are
    skipped.
    """
    if not isinstance(allowlist, (list, tuple)):
        return ()
    return tuple(key for key in allowlist if isinstance(key, str))


def _project_dict(source: dict, keys: tuple[str, ...]) -> dict:
    # Read through dict's own slots so subclass overrides and __missing__
    # cannot supply values that are not stored on the instance.
    result: dict = {}
    for key in keys:
        if dict.__contains__(source, key):
            result[key] = dict.__getitem__(source, key)
    return result


def _project_mapping(source: Mapping, keys: tuple[str, ...]) -> dict:
    result: dict = {}
    for key in keys:
        if key in source:
            result[key] = source[key]
    return result


def project(record: Any, allowlist: Any) -> dict:
    """
    Project an untrusted payload onto an allowlist of field names.

    Args:
        record: Untrusted payload (any value; non-mappings count as empty)
        allowlist: Ordered list/tuple of permitted keys (anything else
            counts as empty)

    Returns:
        New dict holding each allowlisted key that the payload defines as
        an own key, mapped to the payload's original value object.

    Note:
        Does NOT modify either argument. Never raises: a mapping whose
        lookups fail while being read yields an empty result.
    """
    keys = normalize_allowlist(allowlist)
    if not keys:
        return {}

    kind = classify_record(record)
    if kind is RecordKind.OPAQUE:
        return {}

    try:
        source = _own_layer(record) if kind is RecordKind.LAYERED else record
        if isinstance(source, dict):
            return _project_dict(source, keys)
        if isinstance(source, Mapping):
            return _project_mapping(source, keys)
    except Exception:
        # Hostile or broken mapping: fail closed.
        return {}
    return {}


def dropped_keys(record: Any, allowlist: Any) -> list[Hashable]:
    """
    List the payload's own keys that a projection would discard.

    Intended for counting only; callers must not log the key names, they are
    client-controlled.
    """
    kind = classify_record(record)
    if kind is RecordKind.OPAQUE:
        return []
    allowed = set(normalize_allowlist(allowlist))
    try:
        source = _own_layer(record) if kind is RecordKind.LAYERED else record
        own = dict.keys(source) if isinstance(source, dict) else source.keys()
        return [key for key in own if key not in allowed]
    except Exception:
        return []
