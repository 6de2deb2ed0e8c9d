"""
Canonical JSON serialization and content hashing for hashtab documents.

Provides a single canonical JSON policy and SHA-256 helpers that give every row, table,
and store document a stable content hash. This module is zero-IO and uses only the
Python standard library.

Notes:
    - Canonical JSON:
        - sort_keys=True
        - separators=(",", ":")
        - ensure_ascii=False
    - Hashing is performed over the UTF-8 encoded canonical JSON string.
    - The reserved HASH_KEY is never part of the hashed content, so re-hashing an
      already hashed value yields the same digest.
    - A nested object contributes {HASH_KEY: <its digest>} to its parent's content.
      Parents therefore change whenever any descendant changes, and hashes computed for
      children are reused rather than re-serialized.
    - Floats with integral values hash like the equal int (1.0 like 1), matching JSON
      number equality.

Examples:
    >>> from hashtab.core.hashing import hash_row
    >>> hash_row({"a": 1, "b": 2}) == hash_row({"b": 2, "a": 1})
    True
    >>> hash_row({"a": 1}) == hash_row({"a": 1, "_hash": "anything"})
    True
"""

from __future__ import annotations

import copy
import hashlib
import json
from collections.abc import Mapping
from typing import Any

from .constants import HASH_KEY
from .errors import HashMismatch

__all__ = [
    "json_dumps_canonical",
    "hash_value",
    "hash_row",
    "hash_document",
    "hash_in_place",
]


def json_dumps_canonical(obj: Any) -> str:
    """
    Serialize an object to a canonical JSON string.

    Args:
        obj (Any): JSON-serializable object.

    Returns:
        str: Canonical JSON string with sort_keys=True, compact separators,
        and ensure_ascii=False.

    Notes:
        This function assumes the input is JSON-serializable and does not perform
        coercion of unsupported types.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _sha256_hexdigest(s: str) -> str:
    """Compute SHA-256 hex digest of a UTF-8 string."""
    h = hashlib.sha256()
    h.update(s.encode("utf-8"))
    return h.hexdigest()


def _content_view(value: Any) -> Any:
    """Hashable view of a value: nested objects collapse to {HASH_KEY: digest}."""
    if isinstance(value, Mapping):
        return {HASH_KEY: _object_digest(value)}
    if isinstance(value, (list, tuple)):
        return [_content_view(v) for v in value]
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _object_digest(obj: Mapping[str, Any]) -> str:
    content = {str(k): _content_view(v) for k, v in obj.items() if k != HASH_KEY}
    return _sha256_hexdigest(json_dumps_canonical(content))


def hash_value(value: Any) -> str:
    """
    Compute the content hash of any JSON-like value.

    Args:
        value (Any): Object, array, or scalar.

    Returns:
        str: SHA-256 hex digest. For objects, HASH_KEY entries at any depth are ignored.
    """
    if isinstance(value, Mapping):
        return _object_digest(value)
    return _sha256_hexdigest(json_dumps_canonical(_content_view(value)))


def hash_row(row: Mapping[str, Any]) -> str:
    """
    Compute a stable hash for a row-like mapping.

    Args:
        row (Mapping[str, Any]): Row mapping; an existing HASH_KEY entry is ignored.

    Returns:
        str: SHA-256 hex digest over the canonical content of the row.

    Notes:
        Re-ordering keys in the mapping does not change the result.
    """
    return _object_digest(row)


def hash_in_place(
    value: Any,
    *,
    update_existing: bool = True,
    throw_if_wrong: bool = False,
) -> Any:
    """
    Write HASH_KEY into every object nested in value, in place.

    Args:
        value (Any): JSON-like structure (objects are mutated).
        update_existing (bool): Overwrite hashes that are already present. When False,
            existing hashes are kept (they still do not influence parent digests, which
            are always computed from content).
        throw_if_wrong (bool): Raise when an existing hash differs from the computed one.

    Returns:
        Any: The same value, for chaining.

    Raises:
        HashMismatch: If throw_if_wrong is set and a present hash is wrong.

    Notes:
        Objects missing a hash, or carrying an empty one, always receive the computed
        digest, so partially hashed structures never cause a failure.
    """
    _hash_node(value, update_existing=update_existing, throw_if_wrong=throw_if_wrong)
    return value


def _hash_node(value: Any, *, update_existing: bool, throw_if_wrong: bool) -> None:
    if isinstance(value, dict):
        for key, child in value.items():
            if key != HASH_KEY:
                _hash_node(child, update_existing=update_existing, throw_if_wrong=throw_if_wrong)
        computed = _object_digest(value)
        existing = value.get(HASH_KEY)
        if existing and existing != computed:
            if throw_if_wrong:
                raise HashMismatch(f'Hash "{existing}" does not match "{computed}"')
            if update_existing:
                value[HASH_KEY] = computed
        elif not existing:
            value[HASH_KEY] = computed
    elif isinstance(value, list):
        for child in value:
            _hash_node(child, update_existing=update_existing, throw_if_wrong=throw_if_wrong)


def hash_document(value: Any, *, throw_if_wrong: bool = False) -> Any:
    """
    Return a deep copy of value with hashes written into every nested object.

    Args:
        value (Any): JSON-like structure; left untouched.
        throw_if_wrong (bool): Raise HashMismatch when a supplied hash is wrong instead
            of replacing it.

    Returns:
        Any: Hashed copy.
    """
    return hash_in_place(copy.deepcopy(value), update_existing=True, throw_if_wrong=throw_if_wrong)
