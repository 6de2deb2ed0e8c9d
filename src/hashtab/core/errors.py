"""
Core exception types raised by the store contract, grammar checks, and hashing.

Provides typed exceptions for core-domain failures:
- StoreError and its subclasses for contract violations observable by store callers
  (TypeMismatch, TableNotFound, TableMissing, RowNotFound).
- SchemaError for malformed interchange documents.
- GrammarError for invalid table names, reserved keys, and unknown enum values.
- HashMismatch for supplied hashes that disagree with the recomputed content hash.
- VersionMismatch for persisted artifacts written by an incompatible format version.

Notes:
    - Message texts of StoreError subclasses are part of the contract; the conformance
      suite asserts them verbatim.
    - This module uses only the Python standard library and has no side effects.

Examples:
    >>> from hashtab.core.errors import TableNotFound
    >>> try:
    ...     raise TableNotFound.for_table("missing")
    ... except TableNotFound as e:
    ...     msg = str(e)
    >>> msg
    'Table missing not found'
"""

from __future__ import annotations

__all__ = [
    "StoreError",
    "TypeMismatch",
    "TableNotFound",
    "TableMissing",
    "RowNotFound",
    "SchemaError",
    "GrammarError",
    "HashMismatch",
    "VersionMismatch",
]


class StoreError(Exception):
    """Base class for failures of a store operation."""


class TypeMismatch(StoreError):
    """A table exists with a content type other than the requested or incoming one."""

    @classmethod
    def on_create(cls, table: str, existing: str, requested: str) -> TypeMismatch:
        return cls(
            f'Table {table} already exists with different type: "{existing}" vs "{requested}"'
        )

    @classmethod
    def on_write(cls, table: str, existing: str, incoming: str) -> TypeMismatch:
        return cls(f'Table {table} has different types: "{existing}" vs "{incoming}"')


class TableNotFound(StoreError):
    """A read addressed a table the store does not know."""

    @classmethod
    def for_table(cls, table: str) -> TableNotFound:
        return cls(f"Table {table} not found")


class TableMissing(TableNotFound):
    """A write addressed a table that does not exist under the strict write policy."""

    @classmethod
    def for_table(cls, table: str) -> TableMissing:
        return cls(f"Table {table} does not exist")


class RowNotFound(StoreError):
    """A point lookup found no row with the requested hash."""

    @classmethod
    def for_hash(cls, table: str, row_hash: str) -> RowNotFound:
        return cls(f'Row "{row_hash}" not found in table {table}')


class SchemaError(ValueError):
    """Interchange document failed shape validation."""


class GrammarError(ValueError):
    """Invalid table name, reserved key misuse, or unknown enum value."""


class HashMismatch(ValueError):
    """A supplied content hash differs from the recomputed one."""


class VersionMismatch(RuntimeError):
    """Incompatible or unexpected format version encountered."""
