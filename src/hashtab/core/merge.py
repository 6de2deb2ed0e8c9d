"""
Write, merge, and query algorithms over StoreState.

These functions hold all store semantics; backends only decide where state lives and
how it is persisted. Everything here is synchronous and zero-IO.

Write path
----------
1. parse_document validates the payload and drops metadata entries.
2. prepare_write hashes the incoming rows and checks every table against the current
   state (write policy, content type) without mutating anything. The result is a
   WritePlan listing, per table, only the rows that are new.
3. apply_write appends the planned rows, creates planned tables, and refreshes table
   and aggregate hashes.

Because every check happens in step 2, a failing write leaves the state untouched, even
when the payload spans several tables.

Query path
----------
find_row and select_rows read a table by hash or by equality predicate and return
fragments built from copies.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .compare import row_matches
from .constants import HASH_KEY
from .errors import RowNotFound, TableMissing, TableNotFound, TypeMismatch
from .grammar import ContentType, WritePolicy, assert_table_name, content_type_from_value
from .hashing import hash_document, hash_value
from .schema import StoreState, Table, parse_document, table_fragment
from .typing import Document

__all__ = [
    "TablePlan",
    "WritePlan",
    "create_table",
    "prepare_write",
    "apply_write",
    "refresh_hashes",
    "find_row",
    "select_rows",
]

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TablePlan:
    """
    Planned change for one table.

    Attributes:
        name (str): Table name.
        content_type (ContentType): Incoming content type (equal to the stored one).
        create (bool): True when the table does not exist yet and will be created.
        new_rows (list[dict[str, Any]]): Hashed rows not yet present, in incoming order.
        skipped (int): Incoming rows dropped because their hash is already known.
    """

    name: str
    content_type: ContentType
    create: bool
    new_rows: list[dict[str, Any]] = field(default_factory=list)
    skipped: int = 0


@dataclass(slots=True)
class WritePlan:
    """Validated, not yet applied write."""

    tables: list[TablePlan] = field(default_factory=list)

    @property
    def touched(self) -> list[str]:
        """Names of tables whose content changes when the plan is applied."""
        return [p.name for p in self.tables if p.create or p.new_rows]

    @property
    def is_noop(self) -> bool:
        return not self.touched


def create_table(state: StoreState, name: str, content_type: ContentType | str) -> bool:
    """
    Create a table with zero rows unless it already exists with the same type.

    Args:
        state (StoreState): State to mutate.
        name (str): Table name.
        content_type (ContentType | str): Requested content type.

    Returns:
        bool: True if a table was created, False if it already existed.

    Raises:
        GrammarError: If the name or content type is invalid.
        TypeMismatch: If the table exists with a different content type (state unchanged).
    """
    assert_table_name(name)
    ctype = content_type_from_value(content_type)
    existing = state.tables.get(name)
    if existing is not None:
        if existing.content_type is not ctype:
            raise TypeMismatch.on_create(name, existing.content_type.value, ctype.value)
        return False
    state.tables[name] = Table(content_type=ctype)
    refresh_hashes(state, [name])
    return True


def prepare_write(
    state: StoreState,
    data: Mapping[str, Any],
    *,
    policy: WritePolicy,
    validate_hashes: bool = False,
) -> WritePlan:
    """
    Validate a write payload against the current state and compute the merge.

    Args:
        state (StoreState): Current state; not mutated.
        data (Mapping[str, Any]): Interchange document to merge.
        policy (WritePolicy): What to do with tables that do not exist yet.
        validate_hashes (bool): Reject rows whose supplied HASH_KEY is wrong instead of
            silently recomputing it.

    Returns:
        WritePlan: Per-table new rows, in payload order.

    Raises:
        SchemaError / GrammarError: Malformed payload.
        HashMismatch: validate_hashes is set and a supplied row hash is wrong.
        TableMissing: policy is STRICT and a table does not exist.
        TypeMismatch: An existing table has a different content type.
    """
    plan = WritePlan()
    for name, incoming in parse_document(data):
        rows = hash_document(incoming.rows, throw_if_wrong=validate_hashes)
        existing = state.tables.get(name)
        if existing is None:
            if policy is WritePolicy.STRICT:
                raise TableMissing.for_table(name)
            known: set[str] = set()
        else:
            if existing.content_type is not incoming.content_type:
                raise TypeMismatch.on_write(
                    name, existing.content_type.value, incoming.content_type.value
                )
            known = existing.row_hashes()

        tplan = TablePlan(name=name, content_type=incoming.content_type, create=existing is None)
        for row in rows:
            row_hash = row[HASH_KEY]
            if row_hash in known:
                tplan.skipped += 1
                continue
            known.add(row_hash)
            tplan.new_rows.append(row)
        plan.tables.append(tplan)
    return plan


def apply_write(state: StoreState, plan: WritePlan) -> None:
    """
    Apply a plan produced by prepare_write against the same state.

    Args:
        state (StoreState): State to mutate.
        plan (WritePlan): Validated plan.
    """
    for tplan in plan.tables:
        if tplan.create:
            state.tables[tplan.name] = Table(content_type=tplan.content_type)
        state.tables[tplan.name].rows.extend(tplan.new_rows)
        logger.debug(
            "merged %d new rows into table %r (%d duplicates skipped)",
            len(tplan.new_rows),
            tplan.name,
            tplan.skipped,
        )
    refresh_hashes(state, plan.touched)


def refresh_hashes(state: StoreState, tables: list[str] | None = None) -> None:
    """
    Recompute table hashes (all, or only the named ones) and the aggregate store hash.

    Rows already carry their hashes; table and store digests are derived from content,
    so stale or missing hashes anywhere never make this fail.
    """
    names = list(state.tables) if tables is None else tables
    for name in names:
        table = state.tables[name]
        table.hash = hash_value(table.to_json_obj())
    state.hash = hash_value({name: t.to_json_obj() for name, t in state.tables.items()})


def _require_table(state: StoreState, table: str) -> Table:
    found = state.tables.get(table)
    if found is None:
        raise TableNotFound.for_table(table)
    return found


def find_row(state: StoreState, table: str, row_hash: str) -> Document:
    """
    Point lookup by content hash.

    Returns:
        Document: {table: {"_data": [row]}}.

    Raises:
        TableNotFound: If the table does not exist.
        RowNotFound: If no row in the table carries row_hash.
    """
    found = _require_table(state, table)
    for row in found.rows:
        if row[HASH_KEY] == row_hash:
            return table_fragment(table, [row])
    raise RowNotFound.for_hash(table, row_hash)


def select_rows(state: StoreState, table: str, where: Mapping[str, Any] | None = None) -> Document:
    """
    Predicate scan with AND semantics over strict JSON equality.

    Returns:
        Document: {table: {"_data": [rows...]}}, possibly with an empty row list.

    Raises:
        TableNotFound: If the table does not exist.
    """
    found = _require_table(state, table)
    predicate = dict(where or {})
    return table_fragment(table, [row for row in found.rows if row_matches(row, predicate)])
