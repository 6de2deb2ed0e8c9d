"""
Store contract and the shared backend implementation.

ContentStore is the capability set every backend offers:
{is_ready, tables, create_table, write, read_row, read_rows, dump}. BaseStore
implements it once on top of hashtab.core.merge and leaves two hooks to backends:

- _load(): bring persisted state into memory (called by is_ready()).
- _persist(state, touched): make a new state durable before it becomes visible.

Mutations are computed on a copy of the current state, persisted, and only then swapped
in, so a failure anywhere (validation or persistence) leaves the visible state as it
was. Mutating operations are serialized per instance with an asyncio.Lock; callers
sharing one instance across tasks get single-writer semantics, while separate processes
writing the same directory are not coordinated.

Every value handed to callers (dump, read fragments) is a deep copy.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from hashtab.core import merge
from hashtab.core.grammar import ContentType, WritePolicy
from hashtab.core.schema import StoreState, to_document
from hashtab.core.typing import Document

from .config import StoreSettings

logger = logging.getLogger(__name__)


@runtime_checkable
class ContentStore(Protocol):
    """Content-addressed table store contract."""

    @property
    def write_policy(self) -> WritePolicy: ...

    async def is_ready(self) -> None: ...

    async def tables(self) -> list[str]: ...

    async def create_table(self, name: str, content_type: ContentType | str) -> None: ...

    async def write(self, data: Mapping[str, Any]) -> None: ...

    async def read_row(self, table: str, row_hash: str) -> Document: ...

    async def read_rows(self, table: str, where: Mapping[str, Any] | None = None) -> Document: ...

    async def dump(self) -> Document: ...


class BaseStore:
    """
    Shared implementation of ContentStore over an in-memory StoreState.

    Subclasses override _load and _persist; the default hooks keep everything in memory.
    """

    def __init__(self, settings: StoreSettings | None = None) -> None:
        self.settings = settings or StoreSettings()
        self._state = StoreState()
        merge.refresh_hashes(self._state)
        self._lock = asyncio.Lock()

    @property
    def write_policy(self) -> WritePolicy:
        return self.settings.write_policy

    # ---------------------------------------------------------------------
    # General
    # ---------------------------------------------------------------------
    async def is_ready(self) -> None:
        """Resolve once the backend accepts requests."""
        async with self._lock:
            await self._load()

    # ---------------------------------------------------------------------
    # Table management
    # ---------------------------------------------------------------------
    async def tables(self) -> list[str]:
        """Names of all tables, in creation order."""
        self._check_ready()
        return list(self._state.tables)

    async def create_table(self, name: str, content_type: ContentType | str) -> None:
        """
        Create an empty table, or do nothing if it exists with the same type.

        Raises:
            TypeMismatch: If the table exists with a different content type.
            GrammarError: If the name or content type is invalid.
        """
        self._check_ready()
        async with self._lock:
            draft = self._state.copy()
            if not merge.create_table(draft, name, content_type):
                return
            await self._persist(draft, [name])
            self._state = draft
        logger.info("created table %r (%s)", name, draft.tables[name].content_type.value)

    # ---------------------------------------------------------------------
    # Read and write data
    # ---------------------------------------------------------------------
    async def write(self, data: Mapping[str, Any]) -> None:
        """
        Merge an interchange document into the store, all tables or none.

        Raises:
            TypeMismatch: An existing table has a different content type.
            TableMissing: A table does not exist and the write policy is STRICT.
            SchemaError / GrammarError / HashMismatch: Malformed payload.
        """
        self._check_ready()
        async with self._lock:
            plan = merge.prepare_write(
                self._state,
                data,
                policy=self.settings.write_policy,
                validate_hashes=self.settings.validate_hashes,
            )
            if plan.is_noop:
                return
            draft = self._state.copy()
            merge.apply_write(draft, plan)
            await self._persist(draft, plan.touched)
            self._state = draft

    async def read_row(self, table: str, row_hash: str) -> Document:
        """
        Return {table: {"_data": [row]}} for the row carrying row_hash.

        Raises:
            TableNotFound: If the table does not exist.
            RowNotFound: If no row carries row_hash.
        """
        self._check_ready()
        return merge.find_row(self._state, table, row_hash)

    async def read_rows(self, table: str, where: Mapping[str, Any] | None = None) -> Document:
        """
        Return {table: {"_data": [rows...]}} for rows equal to where on every key.

        Raises:
            TableNotFound: If the table does not exist.
        """
        self._check_ready()
        return merge.select_rows(self._state, table, where)

    async def dump(self) -> Document:
        """Full snapshot as an independent interchange document."""
        self._check_ready()
        return to_document(self._state)

    # ---------------------------------------------------------------------
    # Backend hooks
    # ---------------------------------------------------------------------
    def _check_ready(self) -> None:
        """Raise if the backend needs is_ready() and it has not completed."""

    async def _load(self) -> None:
        """Load persisted state; in-memory backends have nothing to load."""

    async def _persist(self, state: StoreState, touched: list[str]) -> None:
        """Make state durable; touched lists the tables whose content changed."""
