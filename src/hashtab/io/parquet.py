"""
Parquet-on-disk backend.

Layout
- <root>/manifest.json: table order, content types, row counts, hashes (see manifest.py).
- <root>/tables/<name>.<generation>.parquet: one live file per table with Utf8 columns
    - "hash": the row's content hash
    - "row":  canonical JSON of the row without its hash
  and key-value metadata hashtab_format_version / hashtab_table_name / hashtab_content_type.

Commit discipline
- A commit gets the next generation number. Every touched table is written to a new
  file named after that generation: tmp parquet -> fsync -> os.replace(tmp, final).
  Live files are never overwritten.
- The manifest is written last with the same tmp -> fsync -> rename path. That rename is
  the single commit point: before it, the previous manifest still names the previous
  files; after it, the new files are live.
- If anything fails before the commit point, the files written so far are removed and
  the store on disk is exactly as it was. After a commit, files no longer referenced
  by the manifest are removed.
- The in-memory state is swapped only after the commit succeeds (see BaseStore).

Reads are served from memory; is_ready() loads the persisted state once and verifies
every row hash and the aggregate hash recorded in the manifest.

Notes
- Single writer per directory; no inter-process locking.
- Blocking file IO runs in asyncio.to_thread, inside the store's lock.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import replace

import polars as pl
import pyarrow.parquet as pq

from hashtab.core.constants import HASH_KEY
from hashtab.core.grammar import content_type_from_value
from hashtab.core.hashing import hash_row, json_dumps_canonical
from hashtab.core.merge import refresh_hashes
from hashtab.core.schema import StoreState, Table
from hashtab.core.serde import json_loads
from hashtab.core.versioning import FORMAT_V

from .base import BaseStore
from .config import StoreSettings
from .errors import IoManifestError, IoNotReadyError, IoWriteError
from .fs import fsync_path, list_files, makedirs, remove_quietly, rename_atomic
from .manifest import (
    META_CONTENT_TYPE,
    META_FORMAT_VERSION,
    META_TABLE_NAME,
    StoreManifest,
    TableEntry,
    load_manifest,
    new_manifest,
    rebuild_manifest_from_fs,
    stale_files,
    write_manifest,
)
from .paths import TABLE_SUFFIX, staged, table_file_name, table_path, tables_root

logger = logging.getLogger(__name__)

_SCHEMA = {"hash": pl.Utf8, "row": pl.Utf8}


class ParquetStore(BaseStore):
    """ContentStore persisted as one parquet file per table under settings.root_dir."""

    def __init__(self, settings: StoreSettings | None = None) -> None:
        super().__init__(settings)
        self._manifest: StoreManifest | None = None
        self._ready = False

    @classmethod
    def example(cls, root_dir: str | os.PathLike[str], settings: StoreSettings | None = None) -> ParquetStore:
        """Return a store rooted at root_dir (created by is_ready() if missing)."""
        base = settings or StoreSettings()
        return cls(replace(base, backend="parquet", root_dir=str(root_dir)))

    # ---------------------------------------------------------------------
    # Recovery
    # ---------------------------------------------------------------------
    async def rebuild_manifest(self) -> StoreManifest:
        """
        Rebuild manifest.json from the table files and reload the store from it.

        Returns:
            StoreManifest: Newly written manifest (tables sorted by name, fresh hashes).

        Notes:
            Use when manifest.json is missing, unreadable, or disagrees with the table
            files. For each table the file with the highest generation is kept, which
            includes files of a commit that crashed before its manifest rename.
        """
        async with self._lock:
            self._ready = False
            manifest = await asyncio.to_thread(self._rebuild_sync)
            await self._load()
        return manifest

    def _rebuild_sync(self) -> StoreManifest:
        manifest = rebuild_manifest_from_fs(self.settings)
        state = self._read_state(manifest)
        self._fill_entries(manifest, state, {e.name: e.path for e in manifest.tables})
        try:
            write_manifest(self.settings, manifest)
        except OSError as exc:
            raise IoManifestError(f"failed to write rebuilt manifest: {exc}") from exc
        self._remove_stale(manifest)
        logger.info("rebuilt manifest for %s with %d tables", self.settings.root_dir, len(manifest.tables))
        return manifest

    # ---------------------------------------------------------------------
    # Backend hooks
    # ---------------------------------------------------------------------
    def _check_ready(self) -> None:
        if not self._ready:
            raise IoNotReadyError(
                f"store at {self.settings.root_dir!r} is not ready; await is_ready() first"
            )

    async def _load(self) -> None:
        if self._ready:
            return
        self._state, self._manifest = await asyncio.to_thread(self._load_sync)
        self._ready = True

    def _load_sync(self) -> tuple[StoreState, StoreManifest]:
        makedirs(tables_root(self.settings), exist_ok=True)
        manifest = load_manifest(self.settings)
        if manifest is None:
            if list_files(tables_root(self.settings), TABLE_SUFFIX):
                raise IoManifestError(
                    f"manifest missing for store {self.settings.root_dir!r} with existing table "
                    "files; call ParquetStore.rebuild_manifest()"
                )
            manifest = new_manifest()
        state = self._read_state(manifest)
        if manifest.hash and manifest.hash != state.hash:
            raise IoManifestError(
                f"store {self.settings.root_dir!r} does not match its manifest hash; "
                "call ParquetStore.rebuild_manifest()"
            )
        logger.info("loaded %d tables from %s", len(state.tables), self.settings.root_dir)
        return state, manifest

    def _read_state(self, manifest: StoreManifest) -> StoreState:
        state = StoreState()
        for entry in manifest.tables:
            state.tables[entry.name] = self._read_table(entry)
        refresh_hashes(state)
        return state

    def _read_table(self, entry: TableEntry) -> Table:
        path = os.path.join(tables_root(self.settings), entry.path)
        try:
            arrow_table = pq.read_table(path)
        except (OSError, ValueError) as exc:
            raise IoManifestError(f"failed to read table file {path!r}: {exc}") from exc
        meta = dict(arrow_table.schema.metadata or {})
        if meta.get(META_TABLE_NAME, b"").decode("utf-8") != entry.name:
            raise IoManifestError(f"table file {path!r} does not hold table {entry.name!r}")
        if meta.get(META_CONTENT_TYPE, b"").decode("utf-8") != entry.content_type:
            raise IoManifestError(
                f"table file {path!r} content type differs from manifest ({entry.content_type!r})"
            )

        rows = []
        for row_hash, payload in pl.from_arrow(arrow_table).select(["hash", "row"]).iter_rows():
            row = json_loads(payload)
            if hash_row(row) != row_hash:
                raise IoManifestError(f'row "{row_hash}" in {path!r} does not match its content')
            row[HASH_KEY] = row_hash
            rows.append(row)
        return Table(content_type=content_type_from_value(entry.content_type), rows=rows)

    async def _persist(self, state: StoreState, touched: list[str]) -> None:
        await asyncio.to_thread(self._persist_sync, state, touched)

    def _persist_sync(self, state: StoreState, touched: list[str]) -> None:
        previous = self._manifest or new_manifest()
        generation = previous.generation + 1
        files = {e.name: e.path for e in previous.tables}
        written: list[str] = []
        try:
            for name in touched:
                file_name = table_file_name(name, generation)
                self._write_table_file(name, state.tables[name], file_name)
                written.append(file_name)
                files[name] = file_name

            manifest = StoreManifest(
                version=FORMAT_V.label(),
                created_at=previous.created_at,
                updated_at=previous.updated_at,
                generation=generation,
            )
            self._fill_entries(manifest, state, files)
            try:
                write_manifest(self.settings, manifest)
            except OSError as exc:
                raise IoManifestError(f"failed to write manifest: {exc}") from exc
        except Exception:
            for file_name in written:
                remove_quietly(table_path(self.settings, file_name))
            raise

        self._manifest = manifest
        self._remove_stale(manifest)
        logger.info(
            "committed generation %d (%d tables) to %s", generation, len(touched), self.settings.root_dir
        )

    def _remove_stale(self, manifest: StoreManifest) -> None:
        for file_name in stale_files(self.settings, manifest):
            remove_quietly(table_path(self.settings, file_name))
            logger.debug("removed stale table file %s", file_name)

    @staticmethod
    def _fill_entries(manifest: StoreManifest, state: StoreState, files: dict[str, str]) -> None:
        manifest.tables = [
            TableEntry(
                name=name,
                content_type=table.content_type.value,
                hash=table.hash,
                rows=len(table.rows),
                path=files[name],
            )
            for name, table in state.tables.items()
        ]
        manifest.hash = state.hash

    def _write_table_file(self, name: str, table: Table, file_name: str) -> None:
        """
        Write one table file atomically under a name no live manifest references.

        Raises:
            IoWriteError: If the parquet write, fsync, or rename fails.
        """
        paths = staged(table_path(self.settings, file_name))
        df = pl.DataFrame(
            {
                "hash": [row[HASH_KEY] for row in table.rows],
                "row": [
                    json_dumps_canonical({k: v for k, v in row.items() if k != HASH_KEY})
                    for row in table.rows
                ],
            },
            schema=_SCHEMA,
        )
        try:
            arrow_table = df.to_arrow()
            meta = dict(arrow_table.schema.metadata or {})
            meta.update(
                {
                    META_FORMAT_VERSION: FORMAT_V.label().encode("utf-8"),
                    META_TABLE_NAME: name.encode("utf-8"),
                    META_CONTENT_TYPE: table.content_type.value.encode("utf-8"),
                }
            )
            arrow_table = arrow_table.replace_schema_metadata(meta)
            pq.write_table(
                arrow_table,
                paths.tmp_path,
                compression=self.settings.compression,
                row_group_size=self.settings.row_group_size,
            )
            fsync_path(paths.tmp_path)
            rename_atomic(paths.tmp_path, paths.final_path)
        except Exception as exc:
            remove_quietly(paths.tmp_path)
            raise IoWriteError(f"failed to write table file for {name!r}: {exc}") from exc
