"""
Lightweight JSON serialization/deserialization utilities.

Provides `json_loads` as a thin wrapper around the stdlib `json` module, `json_clone` for
snapshot copies handed out by stores, and re-exports `json_dumps_canonical` from
`hashtab.core.hashing` to keep a single canonical JSON policy across the codebase. This
module is zero-IO.

Notes:
    - Use `json_dumps_canonical` for deterministic JSON strings prior to hashing or
      persistence.
    - No side effects; stdlib-only.
"""

from __future__ import annotations

import copy
import json
from typing import Any

# Re-export canonical dumps to keep a single canonicalization policy.
from .hashing import json_dumps_canonical  # noqa: F401

__all__ = [
    "json_loads",
    "json_dumps_canonical",
    "json_clone",
]


def json_loads(s: str) -> Any:
    """
    Deserialize a JSON string to Python objects using the stdlib json module.

    Args:
        s (str): JSON string to parse.

    Returns:
        Any: Decoded Python object (dict, list, str, int, float, bool, or None).
    """
    return json.loads(s)


def json_clone(value: Any) -> Any:
    """
    Deep-copy a JSON-like value so the copy shares no mutable containers with the input.

    Args:
        value (Any): JSON-like structure.

    Returns:
        Any: Independent copy.
    """
    return copy.deepcopy(value)
