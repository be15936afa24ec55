"""Data models for .strings file entries."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class StringEntry:
    """Represents a single statement in a .strings file.

    The entry keeps the exact source lines it was parsed from so it can be
    written back without being re-serialized from the decoded value.

    Attributes:
        key: The unescaped string key.
        raw_lines: Physical source lines of the statement, without newlines.
        leading_lines: Comment and blank lines that preceded the statement.
        trailing_lines: Later definitions of the same key, with the lines
            in front of them. They are kept right after the statement so
            the first definition stays first wherever the entry moves.
        value: The unescaped value, for display only.
        line_number: 1-based line of the first raw line.
    """
    key: str
    raw_lines: tuple[str, ...] = field(compare=False)
    leading_lines: tuple[str, ...] = field(default=(), compare=False)
    trailing_lines: tuple[str, ...] = field(default=(), compare=False)
    value: str = field(default="", compare=False)
    line_number: int = field(default=0, compare=False)

    @property
    def lines(self) -> tuple[str, ...]:
        """All lines this entry contributes to a file, trivia first."""
        return self.leading_lines + self.raw_lines + self.trailing_lines

    @staticmethod
    def _unescape(s: str) -> str:
        """Unescape special characters from .strings format."""
        result = []
        i = 0
        while i < len(s):
            if s[i] == '\\' and i + 1 < len(s):
                next_char = s[i + 1]
                if next_char == 'n':
                    result.append('\n')
                elif next_char == 'r':
                    result.append('\r')
                elif next_char == 't':
                    result.append('\t')
                elif next_char in ('"', '\\', "'"):
                    result.append(next_char)
                elif next_char == '\n':
                    # Line continuation inside a quoted string
                    pass
                else:
                    result.append(s[i])
                    result.append(next_char)
                i += 2
            else:
                result.append(s[i])
                i += 1
        return ''.join(result)


class AnomalyKind(Enum):
    """Kind of problem found while parsing a .strings file."""
    MALFORMED_ENTRY = "malformed-entry"
    UNTERMINATED_STATEMENT = "unterminated-statement"
    UNTERMINATED_COMMENT = "unterminated-comment"
    DUPLICATE_KEY = "duplicate-key"


# Anomalies after which the rest of the file cannot be trusted
FATAL_ANOMALIES = frozenset({
    AnomalyKind.UNTERMINATED_STATEMENT,
    AnomalyKind.UNTERMINATED_COMMENT,
})


@dataclass(frozen=True)
class ParseAnomaly:
    """A region of a file that could not be read as a valid entry.

    Attributes:
        kind: What went wrong.
        line_start: 1-based first line of the region.
        line_end: 1-based last line of the region (inclusive).
        message: Human readable description.
        key: The key involved, when one could be extracted.
    """
    kind: AnomalyKind
    line_start: int
    line_end: int
    message: str
    key: Optional[str] = None

    @property
    def fatal(self) -> bool:
        return self.kind in FATAL_ANOMALIES

    def location(self) -> str:
        if self.line_start == self.line_end:
            return f"line {self.line_start}"
        return f"lines {self.line_start}-{self.line_end}"

    def __str__(self) -> str:
        return f"{self.location()}: {self.message}"


@dataclass(frozen=True)
class ParsedFile:
    """Result of parsing one .strings file.

    Attributes:
        header: Comment and blank lines before the first entry.
        entries: Entries in first-occurrence order, keys unique.
        trailer: Comment and blank lines after the last entry.
        anomalies: Problems found while parsing.
        newline: Line terminator used by the source text.
        encoding: Encoding the source was read with.
    """
    header: tuple[str, ...] = ()
    entries: tuple[StringEntry, ...] = ()
    trailer: tuple[str, ...] = ()
    anomalies: tuple[ParseAnomaly, ...] = ()
    newline: str = "\n"
    encoding: str = "utf-8"

    def keys(self) -> list[str]:
        return [entry.key for entry in self.entries]

    def to_dict(self) -> dict[str, StringEntry]:
        """Map keys to entries, keeping the first occurrence of each key."""
        result: dict[str, StringEntry] = {}
        for entry in self.entries:
            if entry.key not in result:
                result[entry.key] = entry
        return result

    def get(self, key: str) -> Optional[StringEntry]:
        return self.to_dict().get(key)

    @property
    def is_usable(self) -> bool:
        """Whether the file can take part in synchronization."""
        if any(anomaly.fatal for anomaly in self.anomalies):
            return False
        return bool(self.entries) or not self.anomalies
