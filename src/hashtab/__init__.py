"""
hashtab — content-addressed table stores.

Every row is identified by a deterministic content hash, tables are typed, and writes are
idempotent merges. Backends (hashtab.io) share one contract whose semantics live in
hashtab.core; hashtab.testing verifies any backend against that contract.
"""

from __future__ import annotations

__version__ = "0.1.0"
