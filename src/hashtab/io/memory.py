"""
In-memory backend.

State lives in the instance only; nothing is shared between instances and nothing is
persisted. is_ready() resolves immediately.

Examples:
    >>> import asyncio
    >>> from hashtab.io.memory import MemoryStore
    >>> async def demo():
    ...     store = MemoryStore.example()
    ...     await store.is_ready()
    ...     await store.write({"t": {"_type": "components", "_data": [{"a": 1}]}})
    ...     return await store.tables()
    >>> asyncio.run(demo())
    ['t']
"""

from __future__ import annotations

from .base import BaseStore
from .config import StoreSettings


class MemoryStore(BaseStore):
    """ContentStore kept entirely in process memory."""

    @classmethod
    def example(cls, settings: StoreSettings | None = None) -> MemoryStore:
        """Return a fresh, empty store."""
        return cls(settings)
