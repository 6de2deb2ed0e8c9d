"""
Format version metadata for persisted hashtab artifacts.

Exposes the canonical format version (FORMAT_V) embedded by persistent backends in
table files and manifests, and a compatibility check used when loading them. This
module is zero-IO.

Notes:
    - A major bump means stored hashes or file layouts are not readable by older code.
    - Loaders call ensure_compatible and surface VersionMismatch on failure.
"""

from dataclasses import dataclass
from datetime import date

from .errors import VersionMismatch

FORMAT_MAJOR_VERSION = 0
FORMAT_MINOR_VERSION = 1


@dataclass(frozen=True)
class FormatVersion:
    """
    Immutable semantic version with ISO release date for hashtab artifacts.

    Attributes:
        major (int): Non-negative major component signalling breaking changes.
        minor (int): Non-negative minor component for additive changes.
        date (str): ISO YYYY-MM-DD release date.

    Raises:
        ValueError: If any component is negative or the date is not ISO compliant.
    """

    major: int
    minor: int
    date: str  # ISO YYYY-MM-DD

    def __post_init__(self) -> None:
        if self.major < 0:
            raise ValueError(f"FormatVersion major must be non-negative, got {self.major}")
        if self.minor < 0:
            raise ValueError(f"FormatVersion minor must be non-negative, got {self.minor}")
        try:
            date.fromisoformat(self.date)
        except ValueError as exc:
            raise ValueError(
                f"FormatVersion date must be ISO YYYY-MM-DD, got {self.date!r}"
            ) from exc

    def label(self) -> str:
        """Render as "major.minor@date", the form stored in file metadata."""
        return f"{self.major}.{self.minor}@{self.date}"

    @classmethod
    def parse(cls, text: str) -> "FormatVersion":
        """
        Parse a "major.minor@date" label.

        Raises:
            VersionMismatch: If the label is malformed.
        """
        try:
            numbers, when = text.split("@", 1)
            major, minor = numbers.split(".", 1)
            return cls(int(major), int(minor), when)
        except ValueError as exc:
            raise VersionMismatch(f"malformed format version label {text!r}") from exc


FORMAT_V = FormatVersion(FORMAT_MAJOR_VERSION, FORMAT_MINOR_VERSION, "2025-06-01")


def is_compatible(ver: FormatVersion) -> bool:
    """
    Check whether an artifact version can be read by this code.

    Args:
        ver (FormatVersion): Version found on a persisted artifact.

    Returns:
        bool: True when the major components match and the minor is not newer.
    """
    return ver.major == FORMAT_V.major and ver.minor <= FORMAT_V.minor


def ensure_compatible(label: str) -> FormatVersion:
    """
    Parse a stored version label and fail if it cannot be read.

    Raises:
        VersionMismatch: If the label is malformed or incompatible with FORMAT_V.
    """
    ver = FormatVersion.parse(label)
    if not is_compatible(ver):
        raise VersionMismatch(f"format version {ver.label()} is not compatible with {FORMAT_V.label()}")
    return ver
