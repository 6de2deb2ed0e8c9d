"""
hashtab.testing — Conformance tooling for store backends.

## Public API
- ConformanceSuite — runs every contract scenario against a store factory.
- ConformanceReport / ScenarioResult — per-scenario outcomes.
- ConformanceFailure — raised when a store diverges from the contract.

## Import DAG discipline
- Depends on hashtab.core and the ContentStore protocol in hashtab.io.base; never on a
  concrete backend, so third-party backends can run the same suite.
"""

from __future__ import annotations

from .conformance import (
    ConformanceFailure,
    ConformanceReport,
    ConformanceSuite,
    ScenarioResult,
    scenario,
)

__all__ = [
    "ConformanceSuite",
    "ConformanceReport",
    "ConformanceFailure",
    "ScenarioResult",
    "scenario",
]
