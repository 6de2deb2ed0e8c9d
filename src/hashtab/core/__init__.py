"""
Core package aggregator for hashtab contracts (grammar, hashing/serde, models, merge, errors).

## Contracts (single source of truth)
- Grammar: content types, write policies, document key classification, table names.
- Hashing/Serde: canonical JSON and content hashes for rows, tables, and stores.
- Compare: strict JSON equality and row predicates.
- Schema: pydantic payload models and the typed store state.
- Merge: create/write/read algorithms every backend delegates to.
- Errors/Versioning: contract exceptions and persisted format version.

## Notes
- Zero-IO policy: stdlib + pydantic only; no file/network IO.
- Backends in hashtab.io own where state lives; semantics live here.

## Examples
```python
from hashtab.core.grammar import WritePolicy
from hashtab.core.merge import apply_write, prepare_write, select_rows
from hashtab.core.schema import StoreState

state = StoreState()
plan = prepare_write(
    state,
    {"ingredients": {"_type": "components", "_data": [{"k": 1, "v": "x"}]}},
    policy=WritePolicy.AUTO_CREATE,
)
apply_write(state, plan)
select_rows(state, "ingredients", {"v": "x"})["ingredients"]["_data"][0]["k"]  # 1
```
"""

from .errors import (
    GrammarError,
    HashMismatch,
    RowNotFound,
    SchemaError,
    StoreError,
    TableMissing,
    TableNotFound,
    TypeMismatch,
)
from .grammar import ContentType, EntryKind, WritePolicy

__all__ = [
    "ContentType",
    "EntryKind",
    "WritePolicy",
    "StoreError",
    "TypeMismatch",
    "TableNotFound",
    "TableMissing",
    "RowNotFound",
    "SchemaError",
    "GrammarError",
    "HashMismatch",
]
