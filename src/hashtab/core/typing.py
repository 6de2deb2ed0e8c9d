"""
Lightweight typing aliases used across hashtab.

This module contains no runtime logic and is zero-IO.

Examples:
    >>> from hashtab.core.typing import Document
    >>> doc: Document = {"_hash": "abc"}
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "Document",
]

# Interchange document: table name -> {"_type", "_data", "_hash"} plus reserved keys.
Document = dict[str, Any]
