"""
Pydantic v2 models for incoming table payloads and the typed in-memory store state.

Responsibilities
- Validate the shape of write() payloads (TableIn) and normalize content types.
- Split an interchange document into table entries and metadata entries exactly once,
  at the boundary (parse_document).
- Hold store state in typed containers (Table, StoreState) where the aggregate hash
  lives in its own field rather than inside the table map.
- Render state back into the interchange document (to_document) and build read
  fragments (table_fragment).

Style
- Zero-IO (stdlib + pydantic only).
- Google-style docstrings with sections such as Attributes, Args, Returns, Raises.

Interchange document
--------------------
{
  "<table>": {"_type": "components", "_data": [{"a": "a2", "_hash": "..."}], "_hash": "..."},
  "_hash": "..."
}
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .constants import DATA_KEY, HASH_KEY, TYPE_KEY
from .errors import SchemaError
from .grammar import ContentType, EntryKind, assert_table_name, classify_key, content_type_from_value
from .serde import json_clone
from .typing import Document

__all__ = [
    "TableIn",
    "Table",
    "StoreState",
    "parse_document",
    "to_document",
    "table_fragment",
]


class TableIn(BaseModel):
    """
    One table entry of a write() payload.

    Attributes:
        content_type (ContentType): Declared content type (document key "_type").
        rows (list[dict[str, Any]]): Rows in write order (document key "_data").
        table_hash (str | None): Optional supplied table hash (document key "_hash");
            always recomputed by the store.

    Raises:
        pydantic.ValidationError: On unknown content types, non-object rows, or extra keys.

    Examples:
        >>> from hashtab.core.schema import TableIn
        >>> t = TableIn.model_validate({"_type": "components", "_data": [{"a": 1}]})
        >>> t.content_type.value, t.rows
        ('components', [{'a': 1}])
    """

    model_config = ConfigDict(extra="forbid")

    content_type: ContentType = Field(alias=TYPE_KEY)
    rows: list[dict[str, Any]] = Field(default_factory=list, alias=DATA_KEY)
    table_hash: str | None = Field(default=None, alias=HASH_KEY)

    @field_validator("content_type", mode="before")
    @classmethod
    def _normalize_content_type(cls, v: Any) -> ContentType:
        return content_type_from_value(v)


@dataclass(slots=True)
class Table:
    """
    A typed, ordered collection of hashed rows.

    Attributes:
        content_type (ContentType): Fixed once the table exists.
        rows (list[dict[str, Any]]): Rows in insertion order, each carrying HASH_KEY.
        hash (str): Content hash of the table, refreshed after every mutation.
    """

    content_type: ContentType
    rows: list[dict[str, Any]] = field(default_factory=list)
    hash: str = ""

    def row_hashes(self) -> set[str]:
        return {row[HASH_KEY] for row in self.rows}

    def to_json_obj(self) -> dict[str, Any]:
        return {
            TYPE_KEY: self.content_type.value,
            DATA_KEY: json_clone(self.rows),
            HASH_KEY: self.hash,
        }


@dataclass(slots=True)
class StoreState:
    """
    Complete state of one store instance.

    Attributes:
        tables (dict[str, Table]): Table name -> table, in creation order.
        hash (str): Aggregate hash over all tables.
    """

    tables: dict[str, Table] = field(default_factory=dict)
    hash: str = ""

    def copy(self) -> StoreState:
        """Return a deep copy sharing no mutable containers with self."""
        return StoreState(
            tables={
                name: Table(t.content_type, json_clone(t.rows), t.hash)
                for name, t in self.tables.items()
            },
            hash=self.hash,
        )


def parse_document(data: Mapping[str, Any]) -> list[tuple[str, TableIn]]:
    """
    Validate a write() payload and return its table entries in document order.

    Args:
        data (Mapping[str, Any]): Interchange document.

    Returns:
        list[tuple[str, TableIn]]: (table name, validated entry); metadata entries are skipped.

    Raises:
        SchemaError: If the payload or one of its table entries is malformed.
        GrammarError: If a table key is not a valid table name.
    """
    if not isinstance(data, Mapping):
        raise SchemaError(f"document must be a mapping, got {type(data).__name__}")
    out: list[tuple[str, TableIn]] = []
    for key, value in data.items():
        if classify_key(key) is EntryKind.METADATA:
            continue
        assert_table_name(key)
        try:
            out.append((key, TableIn.model_validate(value)))
        except ValidationError as exc:
            raise SchemaError(f"invalid table {key!r}: {exc}") from exc
    return out


def to_document(state: StoreState) -> Document:
    """
    Render store state as an independent interchange document.

    Args:
        state (StoreState): State to render.

    Returns:
        Document: {"<table>": {"_type", "_data", "_hash"}, ..., "_hash": aggregate}.
    """
    doc: Document = {name: table.to_json_obj() for name, table in state.tables.items()}
    doc[HASH_KEY] = state.hash
    return doc


def table_fragment(table: str, rows: list[dict[str, Any]]) -> Document:
    """Build a read fragment {table: {"_data": rows}} from copies of rows."""
    return {table: {DATA_KEY: json_clone(rows)}}
