"""
hashtab.io — Store backends for hashtab.

## Responsibilities
- Define the ContentStore contract and implement it once (BaseStore) on top of the
  algorithms in hashtab.core.merge.
- Provide an in-memory backend (MemoryStore) and a parquet-on-disk backend
  (ParquetStore) with atomic tmp->ready renames and a store manifest.
- Load runtime configuration (StoreSettings) from env/TOML.

## Public API
- StoreSettings — configuration (backend, root_dir, write_policy, ...).
- ContentStore — the contract every backend satisfies.
- MemoryStore, ParquetStore — backends.
- open_store — build the backend named by StoreSettings.backend.

## Import DAG discipline
- Depends only on stdlib, polars/pyarrow, and hashtab.core.*.
- MUST NOT import hashtab.testing.

## Examples
```python
import asyncio
from hashtab.io import StoreSettings, open_store

async def main():
    store = open_store(StoreSettings(backend="parquet", root_dir="out/store"))
    await store.is_ready()
    await store.write({"ingredients": {"_type": "components", "_data": [{"k": 1}]}})
    print(await store.tables())

asyncio.run(main())  # doctest: +SKIP
```
"""

from __future__ import annotations

from .base import BaseStore, ContentStore
from .config import StoreSettings
from .memory import MemoryStore
from .parquet import ParquetStore

__all__ = [
    "StoreSettings",
    "ContentStore",
    "BaseStore",
    "MemoryStore",
    "ParquetStore",
    "open_store",
]


def open_store(settings: StoreSettings | None = None) -> BaseStore:
    """
    Build the backend selected by settings.backend.

    Args:
        settings (StoreSettings | None): Settings; StoreSettings.load() when omitted.

    Returns:
        BaseStore: A store that still needs `await store.is_ready()`.
    """
    s = settings or StoreSettings.load()
    if s.backend == "parquet":
        return ParquetStore(s)
    return MemoryStore(s)
