"""Strings file parsing, models and writing."""

from .models import AnomalyKind, ParseAnomaly, ParsedFile, StringEntry
from .parser import StringsParser
from .writer import StringsWriter

__all__ = [
    "AnomalyKind",
    "ParseAnomaly",
    "ParsedFile",
    "StringEntry",
    "StringsParser",
    "StringsWriter",
]
