"""
JSON value equality and row predicates for filtered scans.

Python's `==` treats True == 1 as equal. JSON equality here is stricter and structural:

- booleans equal only booleans;
- numbers compare by value across int/float (1 == 1.0), never against booleans;
- objects compare key-by-key (order-insensitive, HASH_KEY entries ignored), arrays
  element-by-element in order;
- null equals only null.

Examples:
    >>> from hashtab.core.compare import json_equals, row_matches
    >>> json_equals(1, True)
    False
    >>> json_equals({"a": [1, 2]}, {"a": [1.0, 2]})
    True
    >>> row_matches({"k": 1, "v": "x"}, {"v": "x"})
    True
    >>> row_matches({"k": 1}, {"v": None})
    False
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .constants import HASH_KEY

__all__ = [
    "json_equals",
    "row_matches",
]

_MISSING = object()


def json_equals(a: Any, b: Any) -> bool:
    """
    Deep structural equality over JSON values.

    Args:
        a (Any): First value.
        b (Any): Second value.

    Returns:
        bool: True when both values denote the same JSON value.
    """
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a is b
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return a == b
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        keys = a.keys() - {HASH_KEY}
        if keys != b.keys() - {HASH_KEY}:
            return False
        return all(json_equals(a[k], b[k]) for k in keys)
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(json_equals(x, y) for x, y in zip(a, b))
    if a is None or b is None:
        return a is None and b is None
    if type(a) is not type(b):
        return False
    return a == b


def row_matches(row: Mapping[str, Any], where: Mapping[str, Any]) -> bool:
    """
    Check a row against an equality predicate (AND over all keys).

    Args:
        row (Mapping[str, Any]): Row to test.
        where (Mapping[str, Any]): Field name -> expected JSON value. Empty matches all.

    Returns:
        bool: True if, for every key, the row has that field and its value equals the
        expected value. An absent field never matches, not even an expected null.
    """
    for key, expected in where.items():
        actual = row.get(key, _MISSING)
        if actual is _MISSING or not json_equals(actual, expected):
            return False
    return True
