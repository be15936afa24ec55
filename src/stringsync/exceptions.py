"""Exceptions raised by stringsync."""

from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .strings.models import ParseAnomaly


class StringSyncError(Exception):
    """Base class for all stringsync errors."""


class StringsParseError(StringSyncError):
    """A .strings file could not be parsed in strict mode."""

    def __init__(self, anomaly: "ParseAnomaly", path: Optional[Path] = None):
        self.anomaly = anomaly
        self.path = path
        where = f"{path}: " if path else ""
        super().__init__(f"{where}{anomaly}")


class StringsWriteError(StringSyncError):
    """A .strings file could not be written."""

    def __init__(self, path: Path, cause: OSError):
        self.path = path
        self.cause = cause
        super().__init__(f"Cannot write {path}: {cause.strerror or cause}")


class BaseFileError(StringSyncError):
    """The base file cannot be read or parsed."""
