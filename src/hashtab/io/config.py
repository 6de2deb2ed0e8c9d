"""
Configuration for the hashtab.io module.

Defines StoreSettings, a frozen dataclass carrying runtime configuration for store
backends. Defaults are sourced from hashtab.core.constants (the single source of truth).

Source of truth
- hashtab.core.constants.ROW_GROUP_SIZE, COMPRESSION
- Write policies and their serialized values from hashtab.core.grammar.WritePolicy

Precedence
- environment (HASHTAB_*) > TOML (hashtab.toml or [tool.hashtab.store]) > defaults.

Notes
- write_policy is the explicit answer to "what does write() do for a table that does
  not exist yet": AUTO_CREATE creates it, STRICT rejects the write with TableMissing.
- Compression and row group size apply only to the parquet backend.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Literal

from hashtab.core.constants import COMPRESSION as CORE_COMPRESSION
from hashtab.core.constants import ROW_GROUP_SIZE as CORE_ROW_GROUP_SIZE
from hashtab.core.errors import GrammarError
from hashtab.core.grammar import WritePolicy, write_policy_from_value

from .errors import IoConfigError

Backend = Literal["memory", "parquet"]
Compression = Literal["zstd", "lz4", "snappy"]

_BACKENDS: frozenset[str] = frozenset({"memory", "parquet"})
_COMPRESSIONS: frozenset[str] = frozenset({"zstd", "lz4", "snappy"})


def _bool(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return bool(v)
    if isinstance(v, str):
        return v.strip().lower() in {"1", "true", "t", "yes", "y", "on"}
    return False


@dataclass(frozen=True)
class StoreSettings:
    """
    Runtime settings for hashtab stores.

    Attributes:
        backend (Literal["memory","parquet"]): Backend built by hashtab.io.open_store.
        root_dir (str): Directory of the parquet backend (ignored by the memory backend).
        write_policy (WritePolicy): Behavior of write() for tables that do not exist yet.
        validate_hashes (bool): Reject incoming rows whose supplied "_hash" is wrong instead
            of recomputing it.
        compression (Literal["zstd","lz4","snappy"]): Parquet compression codec.
        row_group_size (int): Parquet row group size.

    Examples:
        >>> from hashtab.io import StoreSettings
        >>> from hashtab.core.grammar import WritePolicy
        >>> StoreSettings(write_policy=WritePolicy.STRICT).write_policy.value
        'strict'
    """

    backend: Backend = "memory"
    root_dir: str = "store"
    write_policy: WritePolicy = WritePolicy.AUTO_CREATE
    validate_hashes: bool = False
    compression: Compression = CORE_COMPRESSION  # type: ignore[assignment]
    row_group_size: int = CORE_ROW_GROUP_SIZE

    def __post_init__(self) -> None:
        if self.backend not in _BACKENDS:
            raise IoConfigError(f"unknown backend {self.backend!r}; expected one of {sorted(_BACKENDS)}")
        if self.compression not in _COMPRESSIONS:
            raise IoConfigError(f"unsupported compression {self.compression!r}")
        if self.row_group_size < 1:
            raise IoConfigError("row_group_size must be >= 1")
        if not isinstance(self.write_policy, WritePolicy):
            raise IoConfigError(f"write_policy must be a WritePolicy, got {self.write_policy!r}")

    # Configuration loaders (env/TOML) with precedence: env > TOML > defaults.

    @classmethod
    def _apply_mapping(cls, base: StoreSettings, cfg: dict[str, Any] | None) -> StoreSettings:
        """
        Apply a loose config mapping onto StoreSettings, returning a new instance.

        Raises:
            IoConfigError: If a recognized key carries an invalid value.
        """
        if not isinstance(cfg, dict):
            return base

        s = base

        if "backend" in cfg and isinstance(cfg["backend"], str):
            s = replace(s, backend=cfg["backend"].strip().lower())  # type: ignore[arg-type]

        if "root_dir" in cfg and isinstance(cfg["root_dir"], str):
            s = replace(s, root_dir=cfg["root_dir"])

        if "write_policy" in cfg:
            try:
                s = replace(s, write_policy=write_policy_from_value(cfg["write_policy"]))
            except (GrammarError, AttributeError) as exc:
                raise IoConfigError(f"invalid write_policy {cfg['write_policy']!r}") from exc

        if "validate_hashes" in cfg:
            s = replace(s, validate_hashes=_bool(cfg["validate_hashes"]))

        if "compression" in cfg and isinstance(cfg["compression"], str):
            s = replace(s, compression=cfg["compression"].strip().lower())  # type: ignore[arg-type]

        if "row_group_size" in cfg:
            try:
                s = replace(s, row_group_size=int(cfg["row_group_size"]))
            except (TypeError, ValueError) as exc:
                raise IoConfigError(f"invalid row_group_size {cfg['row_group_size']!r}") from exc

        return s

    @classmethod
    def from_env(cls, base: StoreSettings | None = None, prefix: str = "HASHTAB_") -> StoreSettings:
        """
        Build StoreSettings from environment variables. Precedence is env > base > defaults.

        Recognized variables:
            - HASHTAB_BACKEND ("memory" | "parquet")
            - HASHTAB_ROOT_DIR
            - HASHTAB_WRITE_POLICY ("auto_create" | "strict")
            - HASHTAB_VALIDATE_HASHES (1/0/true/false/yes/no/on/off)
            - HASHTAB_COMPRESSION ("zstd" | "lz4" | "snappy")
            - HASHTAB_ROW_GROUP_SIZE
        """
        s = base or cls()
        mapping: dict[str, Any] = {}
        for key in (
            "backend",
            "root_dir",
            "write_policy",
            "validate_hashes",
            "compression",
            "row_group_size",
        ):
            v = os.getenv(prefix + key.upper())
            if v:
                mapping[key] = v
        return cls._apply_mapping(s, mapping)

    @classmethod
    def from_toml(cls, path: str | os.PathLike[str] | None = None) -> StoreSettings:
        """
        Build StoreSettings from a TOML file.

        Search order when `path` is None:
            1) ./hashtab.toml (with either a [store] table or top-level keys)
            2) ./pyproject.toml under [tool.hashtab.store]

        Returns defaults if no file is present.

        Raises:
            IoConfigError: If the file exists but is not valid TOML.
        """
        s = cls()

        cand: list[Path] = []
        if path is not None:
            cand.append(Path(path))
        else:
            cand.append(Path.cwd() / "hashtab.toml")
            cand.append(Path.cwd() / "pyproject.toml")

        cfg: dict[str, Any] | None = None
        for p in cand:
            if not p.exists():
                continue
            try:
                with p.open("rb") as fh:
                    data = tomllib.load(fh)
            except tomllib.TOMLDecodeError as exc:
                raise IoConfigError(f"invalid TOML in {p}: {exc}") from exc
            if p.name == "pyproject.toml":
                tool = data.get("tool", {})
                cfg = tool.get("hashtab", {}).get("store") if isinstance(tool, dict) else None
            elif isinstance(data.get("store"), dict):
                cfg = data["store"]
            else:
                cfg = data
            if cfg:
                break

        return cls._apply_mapping(s, cfg)

    @classmethod
    def load(cls, path: str | os.PathLike[str] | None = None) -> StoreSettings:
        """
        Load StoreSettings applying precedence: environment > TOML > defaults.

        Args:
            path: Optional explicit TOML path. If None, search defaults
                (hashtab.toml, pyproject.toml).
        """
        s = cls.from_toml(path)
        s = cls.from_env(base=s)
        return s
