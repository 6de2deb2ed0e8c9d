"""
Custom exceptions for the hashtab.io module.

Purpose
- Provide IO-layer specific error types for backend concerns.
- Keep hashtab.core as the source of truth for contract errors (TypeMismatch,
  TableNotFound, TableMissing, RowNotFound) raised identically by every backend.

Boundaries
- hashtab.io raises Io* errors for configuration, readiness, and persistence failures:
  - IoConfigError: invalid or unsupported configuration.
  - IoNotReadyError: an operation ran before is_ready() completed.
  - IoWriteError: atomic write path failed (tmp write/fsync/rename).
  - IoManifestError: store manifest load/write/rebuild errors.
"""

from __future__ import annotations


class IoError(Exception):
    """
    Base class for IO-related errors in hashtab.io.

    Notes:
        Distinct from hashtab.core.errors.StoreError, which signals contract violations.
    """


class IoConfigError(IoError):
    """
    Raised when store configuration is invalid or unsupported.

    Examples:
        - Unknown backend name
        - Non-positive row group size
    """


class IoNotReadyError(IoError):
    """Raised when a backend that needs initialization is used before is_ready()."""


class IoWriteError(IoError):
    """
    Raised when persisting a table file fails to complete atomically.

    Notes:
        The write path is tmp parquet -> fsync -> os.replace(tmp, final). Files written for
        the failed commit are removed, so both the in-memory state and the files on disk
        are left as they were before the failed operation.
    """


class IoManifestError(IoError):
    """
    Raised when the store manifest is missing, corrupt, or inconsistent with table files.
    """
