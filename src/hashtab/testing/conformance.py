"""
Backend-agnostic conformance suite for ContentStore implementations.

The suite treats a store as a black box. It is given a zero-argument factory, builds a
fresh store for every scenario, awaits is_ready(), drives the public operations, and
asserts exact equality on returned fragments, snapshots, and error messages.

Scenarios walk the store lifecycle: table absent -> created -> row absent -> row present
-> duplicate write -> type-conflict write, plus point lookups, predicate scans, snapshot
isolation, aggregate hashing, and instance isolation. Behavior that depends on the write
policy is asserted against the policy the store reports.

Usage
-----
>>> from hashtab.io import MemoryStore
>>> from hashtab.testing import ConformanceSuite
>>> report = ConformanceSuite.run(MemoryStore.example)
>>> report.passed
True

With pytest, parametrize over ConformanceSuite.scenario_names() and call
asyncio.run(suite.run_scenario(name)) to get one test per scenario.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from hashtab.core.constants import DATA_KEY, HASH_KEY, TYPE_KEY
from hashtab.core.errors import RowNotFound, TableMissing, TableNotFound, TypeMismatch
from hashtab.core.grammar import ContentType, EntryKind, WritePolicy, classify_key
from hashtab.core.hashing import hash_document, hash_row, hash_value
from hashtab.io.base import ContentStore

__all__ = [
    "ConformanceFailure",
    "ScenarioResult",
    "ConformanceReport",
    "ConformanceSuite",
    "scenario",
]

StoreFactory = Callable[[], ContentStore]
_F = TypeVar("_F", bound=Callable[..., Awaitable[None]])

_TABLE = "table"
_COMPONENTS = ContentType.COMPONENTS
_CAKES = ContentType.CAKES


class ConformanceFailure(AssertionError):
    """A store diverged from the contract."""


def scenario(fn: _F) -> _F:
    """Mark a ConformanceSuite coroutine method as a scenario."""
    fn.__conformance_scenario__ = True  # type: ignore[attr-defined]
    return fn


@dataclass(slots=True)
class ScenarioResult:
    name: str
    passed: bool
    error: str | None = None


@dataclass(slots=True)
class ConformanceReport:
    """Outcome of running every scenario against one factory."""

    results: list[ScenarioResult] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(r.passed for r in self.results)

    @property
    def failures(self) -> list[ScenarioResult]:
        return [r for r in self.results if not r.passed]

    def raise_for_failures(self) -> None:
        """Raise ConformanceFailure summarizing every failed scenario."""
        if self.failures:
            lines = [f"{r.name}: {r.error}" for r in self.failures]
            raise ConformanceFailure("conformance scenarios failed:\n" + "\n".join(lines))


def _row(**fields: Any) -> dict[str, Any]:
    """Expected stored form of a row: its fields with content hashes on every object."""
    return hash_document(fields)


def _payload(table: str, content_type: ContentType, *rows: dict[str, Any]) -> dict[str, Any]:
    return {table: {TYPE_KEY: content_type.value, DATA_KEY: list(rows)}}


def _table_names(doc: dict[str, Any]) -> list[str]:
    return [k for k in doc if classify_key(k) is EntryKind.TABLE]


class ConformanceSuite:
    """
    Scenario runner parameterized over a store factory.

    Args:
        new_store (Callable[[], ContentStore]): Returns a fresh, empty store on every call.
            Stores must not share state (a persistent backend needs a new location per call).
    """

    def __init__(self, new_store: StoreFactory) -> None:
        self.new_store = new_store

    @classmethod
    def run(cls, new_store: StoreFactory) -> ConformanceReport:
        """Run all scenarios synchronously and return the report."""
        return asyncio.run(cls(new_store).run_all())

    @classmethod
    def scenario_names(cls) -> list[str]:
        """Scenario names in definition order."""
        names: list[str] = []
        for klass in reversed(cls.__mro__):
            for name, member in vars(klass).items():
                if getattr(member, "__conformance_scenario__", False) and name not in names:
                    names.append(name)
        return names

    async def run_scenario(self, name: str) -> None:
        """
        Run one scenario against a fresh store.

        Raises:
            KeyError: If no scenario has that name.
            ConformanceFailure: If the store diverges from the contract.
        """
        if name not in self.scenario_names():
            raise KeyError(f"unknown conformance scenario {name!r}")
        store = self.new_store()
        await store.is_ready()
        await getattr(self, name)(store)

    async def run_all(self) -> ConformanceReport:
        """Run every scenario; failures and unexpected errors are recorded per scenario."""
        report = ConformanceReport()
        for name in self.scenario_names():
            try:
                await self.run_scenario(name)
            except Exception as exc:
                report.results.append(ScenarioResult(name, False, f"{type(exc).__name__}: {exc}"))
            else:
                report.results.append(ScenarioResult(name, True))
        return report

    # ---------------------------------------------------------------------
    # Assertions
    # ---------------------------------------------------------------------
    @staticmethod
    def expect_equal(actual: Any, expected: Any, what: str) -> None:
        if actual != expected:
            raise ConformanceFailure(f"{what}: expected {expected!r}, got {actual!r}")

    @staticmethod
    async def expect_error(
        operation: Awaitable[Any], error_type: type[Exception], message: str, what: str
    ) -> None:
        try:
            await operation
        except error_type as exc:
            if str(exc) != message:
                raise ConformanceFailure(
                    f"{what}: expected message {message!r}, got {str(exc)!r}"
                ) from exc
        else:
            raise ConformanceFailure(f"{what}: expected {error_type.__name__}, nothing raised")

    async def _rows(self, store: ContentStore, table: str = _TABLE) -> list[dict[str, Any]]:
        return (await store.dump())[table][DATA_KEY]

    # ---------------------------------------------------------------------
    # Table lifecycle
    # ---------------------------------------------------------------------
    @scenario
    async def empty_store_has_no_tables(self, store: ContentStore) -> None:
        self.expect_equal(await store.tables(), [], "tables() of a new store")
        self.expect_equal(_table_names(await store.dump()), [], "tables in dump() of a new store")

    @scenario
    async def create_table_adds_empty_table(self, store: ContentStore) -> None:
        await store.create_table(_TABLE, _COMPONENTS)
        self.expect_equal(await store.tables(), [_TABLE], "tables() after create_table")
        entry = (await store.dump())[_TABLE]
        self.expect_equal(entry[TYPE_KEY], _COMPONENTS.value, "type of created table")
        self.expect_equal(entry[DATA_KEY], [], "rows of created table")

    @scenario
    async def create_table_is_idempotent(self, store: ContentStore) -> None:
        await store.create_table(_TABLE, _COMPONENTS)
        before = await store.dump()
        await store.create_table(_TABLE, _COMPONENTS)
        self.expect_equal(await store.tables(), [_TABLE], "tables() after repeated create_table")
        self.expect_equal(await store.dump(), before, "dump() after repeated create_table")

    @scenario
    async def create_table_rejects_other_type(self, store: ContentStore) -> None:
        await store.create_table(_TABLE, _COMPONENTS)
        before = await store.dump()
        await self.expect_error(
            store.create_table(_TABLE, _CAKES),
            TypeMismatch,
            f'Table {_TABLE} already exists with different type: "components" vs "cakes"',
            "create_table with another type",
        )
        self.expect_equal(await store.tables(), [_TABLE], "tables() after rejected create_table")
        self.expect_equal(await store.dump(), before, "dump() after rejected create_table")

    @scenario
    async def tables_keep_creation_order(self, store: ContentStore) -> None:
        for name in ("zeta", "alpha", "mid"):
            await store.create_table(name, _COMPONENTS)
        self.expect_equal(await store.tables(), ["zeta", "alpha", "mid"], "tables() order")

    # ---------------------------------------------------------------------
    # Writes
    # ---------------------------------------------------------------------
    @scenario
    async def write_to_missing_table_follows_policy(self, store: ContentStore) -> None:
        before = await store.dump()
        operation = store.write(_payload(_TABLE, _COMPONENTS, {"a": "a2"}))
        if store.write_policy is WritePolicy.STRICT:
            await self.expect_error(
                operation, TableMissing, f"Table {_TABLE} does not exist", "strict write"
            )
            self.expect_equal(await store.tables(), [], "tables() after rejected write")
            self.expect_equal(await store.dump(), before, "dump() after rejected write")
        else:
            await operation
            self.expect_equal(await store.tables(), [_TABLE], "tables() after auto-create")
            entry = (await store.dump())[_TABLE]
            self.expect_equal(entry[TYPE_KEY], _COMPONENTS.value, "type of auto-created table")
            self.expect_equal(entry[DATA_KEY], [_row(a="a2")], "rows of auto-created table")

    @scenario
    async def write_preserves_order(self, store: ContentStore) -> None:
        await store.create_table(_TABLE, _COMPONENTS)
        await store.write(_payload(_TABLE, _COMPONENTS, {"a": "a2"}))
        await store.write(_payload(_TABLE, _COMPONENTS, {"b": "b2"}))
        await store.write(_payload(_TABLE, _COMPONENTS, {"c": 3}, {"d": [1, {"e": None}]}))
        rows = await self._rows(store)
        expected = [_row(a="a2"), _row(b="b2"), _row(c=3), _row(d=[1, {"e": None}])]
        self.expect_equal(rows, expected, "rows after successive writes")
        self.expect_equal(
            len({r[HASH_KEY] for r in rows}), len(rows), "distinct content hashes"
        )

    @scenario
    async def write_is_idempotent(self, store: ContentStore) -> None:
        await store.create_table(_TABLE, _COMPONENTS)
        await store.write(_payload(_TABLE, _COMPONENTS, {"a": "a2"}))
        before = await store.dump()
        await store.write(_payload(_TABLE, _COMPONENTS, {"a": "a2"}))
        self.expect_equal(await store.dump(), before, "dump() after rewriting identical row")
        await store.write(_payload(_TABLE, _COMPONENTS, {"b": "b2"}, {"b": "b2"}, {"a": "a2"}))
        self.expect_equal(
            await self._rows(store), [_row(a="a2"), _row(b="b2")], "rows after duplicate batch"
        )

    @scenario
    async def write_ignores_supplied_row_order_and_hash_key(self, store: ContentStore) -> None:
        await store.create_table(_TABLE, _COMPONENTS)
        await store.write(_payload(_TABLE, _COMPONENTS, {"x": 1, "y": 2}))
        await store.write(_payload(_TABLE, _COMPONENTS, {"y": 2, "x": 1, HASH_KEY: hash_row({"x": 1, "y": 2})}))
        self.expect_equal(await self._rows(store), [_row(x=1, y=2)], "rows after reordered rewrite")

    @scenario
    async def write_rejects_other_type(self, store: ContentStore) -> None:
        await store.create_table(_TABLE, _COMPONENTS)
        await store.write(_payload(_TABLE, _COMPONENTS, {"a": "a2"}))
        before = await store.dump()
        await self.expect_error(
            store.write(_payload(_TABLE, _CAKES, {"b": "b2"})),
            TypeMismatch,
            f'Table {_TABLE} has different types: "components" vs "cakes"',
            "write with another type",
        )
        self.expect_equal(await store.dump(), before, "dump() after rejected write")

    @scenario
    async def write_is_all_or_nothing(self, store: ContentStore) -> None:
        await store.create_table("first", _COMPONENTS)
        await store.create_table("second", _COMPONENTS)
        before = await store.dump()
        payload = {
            **_payload("first", _COMPONENTS, {"x": 1}),
            **_payload("second", _CAKES, {"y": 2}),
        }
        await self.expect_error(
            store.write(payload),
            TypeMismatch,
            'Table second has different types: "components" vs "cakes"',
            "multi-table write with one conflicting table",
        )
        self.expect_equal(await store.dump(), before, "dump() after rejected multi-table write")

    @scenario
    async def write_skips_reserved_keys(self, store: ContentStore) -> None:
        await store.create_table(_TABLE, _COMPONENTS)
        payload = {HASH_KEY: "not-a-table", **_payload(_TABLE, _COMPONENTS, {"a": "a2"})}
        await store.write(payload)
        self.expect_equal(await store.tables(), [_TABLE], "tables() after write with reserved key")
        doc = await store.dump()
        if doc[HASH_KEY] == "not-a-table":
            raise ConformanceFailure("aggregate hash taken from the payload")

    # ---------------------------------------------------------------------
    # Reads
    # ---------------------------------------------------------------------
    @scenario
    async def read_row_returns_single_row(self, store: ContentStore) -> None:
        await store.create_table(_TABLE, _COMPONENTS)
        await store.write(_payload(_TABLE, _COMPONENTS, {"a": "a2"}, {"b": "b2"}))
        wanted = _row(b="b2")
        self.expect_equal(
            await store.read_row(_TABLE, wanted[HASH_KEY]),
            {_TABLE: {DATA_KEY: [wanted]}},
            "read_row() of an existing hash",
        )

    @scenario
    async def read_row_rejects_unknown_hash(self, store: ContentStore) -> None:
        await store.create_table(_TABLE, _COMPONENTS)
        await store.write(_payload(_TABLE, _COMPONENTS, {"a": "a2"}))
        await self.expect_error(
            store.read_row(_TABLE, "unknownHash"),
            RowNotFound,
            f'Row "unknownHash" not found in table {_TABLE}',
            "read_row() of an unknown hash",
        )

    @scenario
    async def read_row_rejects_missing_table(self, store: ContentStore) -> None:
        await self.expect_error(
            store.read_row("missing", "anyHash"),
            TableNotFound,
            "Table missing not found",
            "read_row() of a missing table",
        )

    @scenario
    async def read_rows_filters_by_equality(self, store: ContentStore) -> None:
        await store.create_table(_TABLE, _COMPONENTS)
        await store.write(
            _payload(
                _TABLE,
                _COMPONENTS,
                {"k": 1, "v": "x"},
                {"k": 2, "v": "x"},
                {"k": 3, "d": [1, {"e": None}]},
            )
        )
        first, second, third = _row(k=1, v="x"), _row(k=2, v="x"), _row(k=3, d=[1, {"e": None}])
        cases = [
            ({"v": "x"}, [first, second]),
            ({"k": 1, "v": "x"}, [first]),
            ({"v": "z"}, []),
            ({"k": True}, []),
            ({"k": 1.0}, [first]),
            ({"d": [1, {"e": None}]}, [third]),
            ({"d": [1, {"e": None, HASH_KEY: "stale"}]}, [third]),
            ({"d": [1, {"e": 0}]}, []),
            ({"d": [1]}, []),
            ({}, [first, second, third]),
        ]
        for where, rows in cases:
            self.expect_equal(
                await store.read_rows(_TABLE, where), {_TABLE: {DATA_KEY: rows}}, f"read_rows({where!r})"
            )

    @scenario
    async def read_rows_rejects_missing_table(self, store: ContentStore) -> None:
        await self.expect_error(
            store.read_rows("missing", {"v": "x"}),
            TableNotFound,
            "Table missing not found",
            "read_rows() of a missing table",
        )

    # ---------------------------------------------------------------------
    # Snapshots and hashes
    # ---------------------------------------------------------------------
    @scenario
    async def dump_is_a_snapshot(self, store: ContentStore) -> None:
        await store.create_table(_TABLE, _COMPONENTS)
        await store.write(_payload(_TABLE, _COMPONENTS, {"a": "a2"}))
        before = await store.dump()

        leaked = await store.dump()
        leaked[_TABLE][DATA_KEY].append({"evil": True})
        leaked[_TABLE][DATA_KEY][0]["a"] = "changed"
        leaked[_TABLE][TYPE_KEY] = _CAKES.value
        leaked["other"] = {TYPE_KEY: _CAKES.value, DATA_KEY: []}
        fragment = await store.read_row(_TABLE, _row(a="a2")[HASH_KEY])
        fragment[_TABLE][DATA_KEY][0]["a"] = "changed"

        self.expect_equal(await store.dump(), before, "dump() after mutating returned values")
        self.expect_equal(await store.tables(), [_TABLE], "tables() after mutating dump()")

    @scenario
    async def dump_hashes_are_consistent(self, store: ContentStore) -> None:
        await store.create_table(_TABLE, _COMPONENTS)
        empty = await store.dump()
        await store.write(_payload(_TABLE, _COMPONENTS, {"a": "a2"}))
        written = await store.dump()
        await store.write(_payload(_TABLE, _COMPONENTS, {"a": "a2"}))
        rewritten = await store.dump()

        if written[HASH_KEY] == empty[HASH_KEY]:
            raise ConformanceFailure("aggregate hash unchanged after adding a row")
        self.expect_equal(rewritten[HASH_KEY], written[HASH_KEY], "aggregate hash after no-op write")
        self.expect_equal(written[HASH_KEY], hash_value(written), "aggregate hash of dump()")
        self.expect_equal(written[_TABLE][HASH_KEY], hash_value(written[_TABLE]), "table hash")
        for row in written[_TABLE][DATA_KEY]:
            self.expect_equal(row[HASH_KEY], hash_row(row), "row hash")

    @scenario
    async def instances_do_not_share_state(self, store: ContentStore) -> None:
        other = self.new_store()
        await other.is_ready()
        await store.create_table(_TABLE, _COMPONENTS)
        self.expect_equal(await other.tables(), [], "tables() of a second instance")
