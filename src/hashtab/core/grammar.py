"""
Canonical hashtab grammar and helpers.

Defines content types, write policies, and the classification of document keys into
table entries and metadata entries. Includes zero-IO validators used by the store
algorithms and by every backend.

Responsibilities
- Define enums whose serialized values appear in documents and settings.
- Classify document keys once at the boundary (EntryKind) so that internal state never
  sniffs prefixes again.
- Validate table names so every backend, including file-backed ones, can represent them.

Design principles
-----------------
1) One naming standard:
   - Enum classes: PascalCase
   - Enum member names: UPPER_SNAKE (Python constants)
   - Enum serialized values (documents/settings/parquet metadata): lower_snake

2) Reserved namespace:
   - Any top-level document key starting with RESERVED_PREFIX is metadata.
   - Table names never start with the marker; create/write reject such names.

Examples
--------
>>> from hashtab.core.grammar import classify_key, EntryKind, content_type_from_value
>>> classify_key("_hash") is EntryKind.METADATA
True
>>> classify_key("ingredients") is EntryKind.TABLE
True
>>> content_type_from_value("components")
<ContentType.COMPONENTS: 'components'>
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Final

from .constants import RESERVED_PREFIX
from .errors import GrammarError

__all__ = [
    "ContentType",
    "WritePolicy",
    "EntryKind",
    "is_lower_snake",
    "assert_lower_snake",
    "is_reserved_key",
    "classify_key",
    "is_valid_table_name",
    "assert_table_name",
    "content_type_from_value",
    "write_policy_from_value",
]


class ContentType(Enum):
    """
    Kinds of content a table can hold. A table's type is fixed once it exists.
    """

    BUFFETS = "buffets"
    CAKES = "cakes"
    COMPONENTS = "components"
    LAYERS = "layers"
    REVISIONS = "revisions"
    SLICE_IDS = "slice_ids"
    TABLE_CFGS = "table_cfgs"


class WritePolicy(Enum):
    """
    Behavior of write() for a table that does not exist yet.

    AUTO_CREATE creates the table with the incoming content type.
    STRICT rejects the whole write with TableMissing.
    """

    AUTO_CREATE = "auto_create"
    STRICT = "strict"


class EntryKind(Enum):
    """Top-level document entry kinds."""

    TABLE = "table"
    METADATA = "metadata"


# ============================================================================
# Helpers & Validators (zero I/O)
# ============================================================================

_LOWER_SNAKE_RE: Final[re.Pattern[str]] = re.compile(r"^[a-z0-9]+(?:_[a-z0-9]+)*$")
_TABLE_NAME_RE: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


def is_lower_snake(value: str) -> bool:
    """
    Check whether a string is lower_snake.

    Examples:
      >>> is_lower_snake("slice_ids")
      True
      >>> is_lower_snake("sliceIds")
      False
    """
    return isinstance(value, str) and bool(_LOWER_SNAKE_RE.match(value))


def assert_lower_snake(value: str, what: str = "value") -> None:
    """
    Validate that a string is lower_snake.

    Raises:
      GrammarError: If value is not lower_snake.
    """
    if not is_lower_snake(value):
        raise GrammarError(f"{what} must be lower_snake (got: {value!r})")


def is_reserved_key(key: str) -> bool:
    """Return True for keys in the reserved metadata namespace."""
    return key.startswith(RESERVED_PREFIX)


def classify_key(key: str) -> EntryKind:
    """
    Classify a top-level document key.

    Args:
      key (str): Document key.

    Returns:
      EntryKind: METADATA for reserved keys, TABLE otherwise.
    """
    return EntryKind.METADATA if is_reserved_key(key) else EntryKind.TABLE


def is_valid_table_name(name: str) -> bool:
    """
    Check whether a string can be used as a table name.

    Table names start with a letter or digit (never the reserved marker) and contain only
    letters, digits, '_', '.', and '-', so file-backed stores can use them as file names.

    Examples:
      >>> is_valid_table_name("ingredientsComponents")
      True
      >>> is_valid_table_name("_hash")
      False
      >>> is_valid_table_name("a/b")
      False
    """
    return isinstance(name, str) and bool(_TABLE_NAME_RE.match(name))


def assert_table_name(name: str) -> str:
    """
    Validate a table name.

    Returns:
      str: The same name if valid.

    Raises:
      GrammarError: If the name is reserved or contains disallowed characters.
    """
    if not is_valid_table_name(name):
        raise GrammarError(
            f"invalid table name {name!r}; allowed pattern is [A-Za-z0-9][A-Za-z0-9_.-]*"
        )
    return name


def content_type_from_value(s: str | ContentType) -> ContentType:
    """
    Parse a lower_snake content type string into a ContentType.

    Raises:
      GrammarError: If s is not lower_snake or is not a known content type.
    """
    if isinstance(s, ContentType):
        return s
    assert_lower_snake(s, "content type")
    try:
        return ContentType(s)
    except ValueError as exc:
        raise GrammarError(f"unknown content type {s!r}") from exc


def write_policy_from_value(s: str | WritePolicy) -> WritePolicy:
    """
    Parse a write policy from its serialized value.

    Raises:
      GrammarError: If s is not a known write policy.
    """
    if isinstance(s, WritePolicy):
        return s
    try:
        return WritePolicy(s.strip().lower())
    except ValueError as exc:
        raise GrammarError(f"unknown write policy {s!r}") from exc
