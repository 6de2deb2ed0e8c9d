"""
Path and layout helpers for the parquet backend.

Overview (file protocol baseline)
- <root>/manifest.json
- <root>/tables/<table_name>.<generation>.parquet

Notes
- Table names are validated by hashtab.core.grammar.assert_table_name before they reach
  this module, so they are safe file names.
- Every commit writes touched tables under a new generation number; files are never
  overwritten in place, so only the manifest decides which file is live.
- Temporary files sit next to their final path (same filesystem) for atomic renames.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final

from .config import StoreSettings

_MANIFEST_NAME: Final[str] = "manifest.json"
_TABLES_DIR: Final[str] = "tables"
TABLE_SUFFIX: Final[str] = ".parquet"
TMP_SUFFIX: Final[str] = ".tmp"


def store_root(settings: StoreSettings) -> str:
    """Root directory of the store: "<root>"."""
    return settings.root_dir


def tables_root(settings: StoreSettings) -> str:
    """Directory holding table files: "<root>/tables"."""
    return os.path.join(store_root(settings), _TABLES_DIR)


def manifest_path(settings: StoreSettings) -> str:
    """Path "<root>/manifest.json"."""
    return os.path.join(store_root(settings), _MANIFEST_NAME)


def table_file_name(table_name: str, generation: int) -> str:
    """File name of a table relative to tables_root: "<table_name>.<generation>.parquet"."""
    return f"{table_name}.{generation:06d}{TABLE_SUFFIX}"


def parse_table_file(file_name: str) -> tuple[str, int]:
    """
    Inverse of table_file_name.

    Raises:
        ValueError: If file_name does not follow the "<table_name>.<generation>.parquet" form.
    """
    if not file_name.endswith(TABLE_SUFFIX):
        raise ValueError(f"not a table file: {file_name!r}")
    name, _, generation = file_name[: -len(TABLE_SUFFIX)].rpartition(".")
    if not name or not generation.isdigit():
        raise ValueError(f"not a table file: {file_name!r}")
    return name, int(generation)


def table_path(settings: StoreSettings, file_name: str) -> str:
    """Path "<root>/tables/<file_name>"."""
    return os.path.join(tables_root(settings), file_name)


@dataclass(slots=True, frozen=True)
class StagedPaths:
    """
    Temporary and final file paths of one atomic write.

    Attributes:
        tmp_path (str): Temporary file path used for the initial write ("*.tmp").
        final_path (str): Final file path after the atomic rename.
    """

    tmp_path: str
    final_path: str


def staged(final_path: str) -> StagedPaths:
    """Pair a final path with its temporary sibling."""
    return StagedPaths(tmp_path=final_path + TMP_SUFFIX, final_path=final_path)
