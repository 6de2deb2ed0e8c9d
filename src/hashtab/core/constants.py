"""
Reserved keys and IO-facing defaults for hashtab documents and backends.

Defines the reserved marker and key names used by the interchange document, and the
defaults consumed by hashtab.io settings. This module is zero-IO and uses only the
Python standard library.

Notes:
    - Keys beginning with RESERVED_PREFIX are metadata, never table names.
    - Changes to the reserved key names change the interchange format and every stored hash.
"""

from __future__ import annotations

__all__ = [
    "RESERVED_PREFIX",
    "HASH_KEY",
    "TYPE_KEY",
    "DATA_KEY",
    "ROW_GROUP_SIZE",
    "COMPRESSION",
]

# Marker distinguishing metadata keys from table names and row fields.
RESERVED_PREFIX: str = "_"

# Content hash of a row, a table, or the whole store.
HASH_KEY: str = "_hash"

# Content type of a table inside the interchange document.
TYPE_KEY: str = "_type"

# Ordered rows of a table inside the interchange document.
DATA_KEY: str = "_data"

# Target row group size for the parquet backend.
ROW_GROUP_SIZE: int = 128 * 1024

# Default compression codec for parquet table files.
COMPRESSION: str = "zstd"
