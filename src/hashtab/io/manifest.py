"""
Store manifest data structures and helpers for the parquet backend.

Manifest layout (JSON at <root>/manifest.json):
{
  "version": "0.1@2025-06-01",
  "created_at": "ISO-8601",
  "updated_at": "ISO-8601",
  "hash": "<aggregate store hash>",
  "generation": 3,
  "tables": [
    {
      "name": "ingredients",
      "content_type": "components",
      "hash": "<table hash>",
      "rows": 2,
      "path": "ingredients.000003.parquet"
    }
  ]
}

Notes:
- The tables list is ordered; it is the source of truth for tables() ordering.
- Table paths are relative to <root>/tables to keep the store relocatable.
- The manifest is written last on every commit, so it only ever references table
  files that were fully written.
- generation counts commits. Table files are named after the commit that wrote them, so a
  commit never overwrites a live file and renaming manifest.json is its single commit point.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

import pyarrow.parquet as pq

from hashtab.core.versioning import FORMAT_V, ensure_compatible

from .config import StoreSettings
from .errors import IoManifestError
from .fs import exists, fsync_file, list_files, makedirs, open_write, remove_quietly, rename_atomic
from .paths import TABLE_SUFFIX, TMP_SUFFIX, manifest_path, parse_table_file, staged, tables_root

# Parquet key-value metadata written on every table file.
META_FORMAT_VERSION = b"hashtab_format_version"
META_TABLE_NAME = b"hashtab_table_name"
META_CONTENT_TYPE = b"hashtab_content_type"


def _utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


@dataclass(slots=True)
class TableEntry:
    """
    Per-table metadata recorded in the store manifest.

    Attributes:
        name (str): Table name.
        content_type (str): Serialized ContentType value.
        hash (str): Table content hash at the last commit.
        rows (int): Row count at the last commit.
        path (str): File name relative to <root>/tables.
    """

    name: str
    content_type: str
    hash: str
    rows: int
    path: str


@dataclass(slots=True)
class StoreManifest:
    """
    Manifest model persisted at <root>/manifest.json.

    Attributes:
        version (str): FormatVersion label of the writer.
        created_at (str): ISO-8601 creation timestamp.
        updated_at (str): ISO-8601 timestamp of the last commit.
        hash (str): Aggregate store hash at the last commit.
        generation (int): Number of the last commit; names the table files it wrote.
        tables (list[TableEntry]): Tables in creation order.
    """

    version: str
    created_at: str
    updated_at: str
    hash: str = ""
    generation: int = 0
    tables: list[TableEntry] = field(default_factory=list)

    def to_json_obj(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "hash": self.hash,
            "generation": self.generation,
            "tables": [asdict(e) for e in self.tables],
        }

    @classmethod
    def from_json_obj(cls, obj: dict[str, Any]) -> StoreManifest:
        return cls(
            version=obj.get("version") or FORMAT_V.label(),
            created_at=obj.get("created_at") or _utc_now_iso(),
            updated_at=obj.get("updated_at") or _utc_now_iso(),
            hash=obj.get("hash", ""),
            generation=int(obj.get("generation", 0)),
            tables=[TableEntry(**e) for e in (obj.get("tables") or [])],
        )


def new_manifest() -> StoreManifest:
    """Create a fresh manifest with no tables and timestamps set to now."""
    now = _utc_now_iso()
    return StoreManifest(version=FORMAT_V.label(), created_at=now, updated_at=now)


def load_manifest(settings: StoreSettings) -> StoreManifest | None:
    """
    Load manifest.json if present.

    Returns:
        StoreManifest | None: The manifest, or None when the store has none yet.

    Raises:
        IoManifestError: If the file is unreadable, corrupt, or of an incompatible version.
    """
    path = manifest_path(settings)
    if not exists(path):
        return None
    try:
        with open(path, encoding="utf-8") as fh:
            obj = json.load(fh)
        manifest = StoreManifest.from_json_obj(obj)
        ensure_compatible(manifest.version)
    except Exception as exc:
        raise IoManifestError(f"failed to load manifest {path!r}: {exc}") from exc
    return manifest


def write_manifest(settings: StoreSettings, manifest: StoreManifest) -> None:
    """
    Persist manifest.json atomically.

    The write path is: serialize JSON -> write to "<final>.tmp" -> fsync ->
    atomic rename to final path using os.replace (same filesystem).

    Raises:
        OSError: If filesystem operations fail (caller wraps in IoManifestError).
    """
    makedirs(os.path.dirname(manifest_path(settings)) or ".", exist_ok=True)
    paths = staged(manifest_path(settings))
    manifest.updated_at = _utc_now_iso()
    payload = json.dumps(manifest.to_json_obj(), indent=2, sort_keys=False).encode("utf-8")
    try:
        with open_write(paths.tmp_path) as fh:
            fh.write(payload)
            fsync_file(fh)
        rename_atomic(paths.tmp_path, paths.final_path)
    except OSError:
        remove_quietly(paths.tmp_path)
        raise


def read_table_metadata(path: str) -> dict[bytes, bytes]:
    """Return the key-value metadata of a parquet table file."""
    return dict(pq.read_schema(path).metadata or {})


def stale_files(settings: StoreSettings, manifest: StoreManifest) -> list[str]:
    """
    List files under <root>/tables that the manifest does not reference.

    These are table files superseded by a later commit and leftovers of commits that
    never reached the manifest (including "*.tmp" files).
    """
    live = {e.path for e in manifest.tables}
    tdir = tables_root(settings)
    candidates = list_files(tdir, TABLE_SUFFIX) + list_files(tdir, TMP_SUFFIX)
    return sorted(fn for fn in candidates if fn not in live)


def rebuild_manifest_from_fs(settings: StoreSettings) -> StoreManifest:
    """
    Rebuild a manifest by scanning every table file under <root>/tables.

    Table names and content types come from the parquet key-value metadata; row counts
    from the parquet footer. When a table has files from several commits, the highest
    generation wins. Table order is lost on disk, so rebuilt manifests list tables
    sorted by name, and hashes are left empty for the store to recompute on load.

    Raises:
        IoManifestError: If a table file is misnamed, lacks hashtab metadata, or was
            written by an incompatible version.
    """
    latest: dict[str, tuple[int, str]] = {}
    tdir = tables_root(settings)
    for fn in list_files(tdir, TABLE_SUFFIX):
        try:
            name, generation = parse_table_file(fn)
        except ValueError as exc:
            raise IoManifestError(f"unexpected file {fn!r} in {tdir!r}") from exc
        if name not in latest or latest[name][0] < generation:
            latest[name] = (generation, fn)

    m = new_manifest()
    for name in sorted(latest):
        generation, fn = latest[name]
        fpath = os.path.join(tdir, fn)
        try:
            meta = read_table_metadata(fpath)
            ensure_compatible(meta[META_FORMAT_VERSION].decode("utf-8"))
            stored_name = meta[META_TABLE_NAME].decode("utf-8")
            content_type = meta[META_CONTENT_TYPE].decode("utf-8")
        except Exception as exc:
            raise IoManifestError(f"table file {fpath!r} has missing or invalid metadata: {exc}") from exc
        if stored_name != name:
            raise IoManifestError(f"table file {fpath!r} holds table {stored_name!r}")
        rows = pq.read_metadata(fpath).num_rows
        m.tables.append(TableEntry(name=name, content_type=content_type, hash="", rows=rows, path=fn))
        m.generation = max(m.generation, generation)
    return m
