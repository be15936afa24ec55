"""Parser for Apple .strings files."""

import logging
import re
from dataclasses import replace
from enum import Enum, auto
from pathlib import Path
from typing import Optional

from ..exceptions import StringsParseError
from .models import AnomalyKind, ParseAnomaly, ParsedFile, StringEntry

logger = logging.getLogger(__name__)

# Physical line boundaries. Unicode separators inside values are content.
LINE_BREAK = re.compile(r'\r?\n')


class _QuoteState(Enum):
    """State of the character scanner inside a quoted string."""
    NORMAL = auto()
    ESCAPED = auto()


class _LineKind(Enum):
    BLANK = auto()
    COMMENT = auto()
    BLOCK_OPEN = auto()
    ENTRY = auto()
    JUNK = auto()


class _Status(Enum):
    COMPLETE = auto()
    INCOMPLETE = auto()
    MALFORMED = auto()


def scan_quoted(text: str, start: int) -> Optional[int]:
    """Find the end of the quoted string opening at ``text[start]``.

    A backslash consumes the following character literally, so escaped
    quotes and backslashes never end the string.

    Returns:
        Index just past the closing quote, or None if the string is open.
    """
    state = _QuoteState.NORMAL
    for i in range(start + 1, len(text)):
        ch = text[i]
        if state is _QuoteState.ESCAPED:
            state = _QuoteState.NORMAL
        elif ch == '\\':
            state = _QuoteState.ESCAPED
        elif ch == '"':
            return i + 1
    return None


def _skip_space(text: str, pos: int) -> int:
    """Skip whitespace and backslash line continuations."""
    while pos < len(text):
        if text[pos].isspace():
            pos += 1
        elif text[pos] == '\\':
            eol = text.find('\n', pos)
            eol = len(text) if eol < 0 else eol
            if text[pos + 1:eol].strip():
                break
            pos = eol
        else:
            break
    return pos


def _is_continued(line: str) -> bool:
    return line.rstrip().endswith('\\')


def _classify(line: str) -> tuple[_LineKind, int]:
    """Classify a physical line outside of any statement.

    Returns:
        The line kind and, for entries, the offset of the opening quote.
    """
    if not line.strip():
        return _LineKind.BLANK, -1

    rest = line.lstrip()
    # Closed block comments may sit in front of a statement
    while rest.startswith('/*'):
        close = rest.find('*/', 2)
        if close < 0:
            return _LineKind.BLOCK_OPEN, -1
        rest = rest[close + 2:].lstrip()

    if not rest or rest.startswith('//'):
        return _LineKind.COMMENT, -1
    if rest.startswith('"'):
        return _LineKind.ENTRY, len(line) - len(rest)
    return _LineKind.JUNK, -1


class StringsParser:
    """Parser for Apple .strings files.

    Works line by line and keeps the verbatim source lines of every entry,
    so files can be reordered and written back without reformatting.
    Handles both UTF-8 and UTF-16 encoded files.
    """

    def parse(self, content: str, strict: bool = False) -> ParsedFile:
        """Parse .strings content.

        Args:
            content: The content of a .strings file.
            strict: Raise on the first anomaly instead of skipping it.

        Returns:
            ParsedFile with header, entries, trailer and anomalies.

        Raises:
            StringsParseError: In strict mode, when any anomaly is found.
        """
        newline = '\r\n' if '\r\n' in content else '\n'
        lines = LINE_BREAK.split(content)
        if lines and lines[-1] == '':
            lines.pop()

        return _ParseRun(lines, strict).run(newline)

    def parse_file(self, path: Path, strict: bool = False) -> ParsedFile:
        """Parse a .strings file.

        Automatically detects UTF-16 vs UTF-8 encoding.

        Args:
            path: Path to the .strings file.
            strict: Raise on the first anomaly instead of skipping it.

        Returns:
            ParsedFile read from the file.
        """
        content, encoding = self.read_text(path)
        try:
            parsed = self.parse(content, strict=strict)
        except StringsParseError as e:
            raise StringsParseError(e.anomaly, path) from None

        for anomaly in parsed.anomalies:
            logger.warning("%s: %s", path, anomaly)

        return replace(parsed, encoding=encoding)

    def read_text(self, path: Path) -> tuple[str, str]:
        """Read a .strings file with automatic encoding detection.

        Args:
            path: Path to the file.

        Returns:
            File content and the encoding used to decode it.
        """
        raw = path.read_bytes()

        # Check for UTF-16 BOM
        if raw.startswith(b'\xff\xfe') or raw.startswith(b'\xfe\xff'):
            return raw.decode('utf-16'), 'utf-16'

        if raw.startswith(b'\xef\xbb\xbf'):
            return raw.decode('utf-8-sig'), 'utf-8-sig'

        # Try UTF-8 first (more common in modern iOS)
        try:
            return raw.decode('utf-8'), 'utf-8'
        except UnicodeDecodeError:
            # Fall back to UTF-16
            return raw.decode('utf-16'), 'utf-16'


class _ParseRun:
    """State of a single forward pass over the lines of one file."""

    def __init__(self, lines: list[str], strict: bool):
        self.lines = lines
        self.strict = strict
        self.header: Optional[tuple[str, ...]] = None
        self.pending: list[str] = []
        self.entries: list[StringEntry] = []
        # Key to index in entries
        self.seen: dict[str, int] = {}
        self.anomalies: list[ParseAnomaly] = []

    def run(self, newline: str) -> ParsedFile:
        i = 0
        block_start: Optional[int] = None

        while i < len(self.lines):
            line = self.lines[i]

            if block_start is not None:
                close = line.find('*/')
                if close < 0:
                    self.pending.append(line)
                    i += 1
                    continue
                # The rest of the closing line is read like any other line
                block_start = None
                kind, offset = _classify(line[close + 2:])
                if offset >= 0:
                    offset += close + 2
            else:
                kind, offset = _classify(line)

            if kind is _LineKind.ENTRY:
                i = self._read_statement(i, offset)
                continue

            if kind is _LineKind.BLOCK_OPEN:
                block_start = i
            elif kind is _LineKind.JUNK:
                self._anomaly(AnomalyKind.MALFORMED_ENTRY, i, i, "Unexpected text outside of a statement")
            self.pending.append(line)
            i += 1

        if block_start is not None:
            self._anomaly(
                AnomalyKind.UNTERMINATED_COMMENT,
                block_start,
                len(self.lines) - 1,
                "Block comment is never closed"
            )

        if self.header is None:
            header, trailer = tuple(self.pending), ()
        else:
            header, trailer = self.header, tuple(self.pending)

        return ParsedFile(
            header=header,
            entries=tuple(self.entries),
            trailer=trailer,
            anomalies=tuple(self.anomalies),
            newline=newline
        )

    def _read_statement(self, start: int, offset: int) -> int:
        """Consume one statement starting at line ``start``.

        Returns:
            Index of the next line to examine.
        """
        first = self.lines[start]
        key_end = scan_quoted(first, offset)
        if key_end is None:
            self._anomaly(AnomalyKind.MALFORMED_ENTRY, start, start, "Key is not terminated on its line")
            self.pending.append(first)
            return start + 1

        key = StringEntry._unescape(first[offset + 1:key_end - 1])
        end = start
        text = first
        while True:
            status, fail_pos, value = self._scan_statement(text, key_end)

            if status is _Status.COMPLETE:
                break

            if status is _Status.MALFORMED:
                fail_line = start + text.count('\n', 0, fail_pos)
                # Text on a later line may start the next statement
                last = fail_line - 1 if fail_line > start else fail_line
                self._anomaly(AnomalyKind.MALFORMED_ENTRY, start, last, f"Malformed statement for key '{key}'", key)
                self.pending.extend(self.lines[start:last + 1])
                return last + 1

            if end + 1 >= len(self.lines):
                self._anomaly(
                    AnomalyKind.UNTERMINATED_STATEMENT,
                    start,
                    end,
                    f"Statement for key '{key}' is not terminated before end of file",
                    key
                )
                self.pending.extend(self.lines[start:end + 1])
                return end + 1
            end += 1
            text += '\n' + self.lines[end]

        raw_lines = tuple(self.lines[start:end + 1])

        if key in self.seen:
            self._anomaly(
                AnomalyKind.DUPLICATE_KEY,
                start,
                end,
                f"Duplicate key '{key}'; the first definition is used",
                key
            )
            index = self.seen[key]
            first_entry = self.entries[index]
            self.entries[index] = replace(
                first_entry,
                trailing_lines=first_entry.trailing_lines + tuple(self.pending) + raw_lines
            )
            self.pending = []
            return end + 1

        if self.header is None:
            self.header = tuple(self.pending)
            leading: tuple[str, ...] = ()
        else:
            leading = tuple(self.pending)
        self.pending = []

        self.seen[key] = len(self.entries)
        self.entries.append(StringEntry(
            key=key,
            raw_lines=raw_lines,
            leading_lines=leading,
            value=value,
            line_number=start + 1
        ))
        return end + 1

    @staticmethod
    def _scan_statement(text: str, pos: int) -> tuple[_Status, int, str]:
        """Check the part of a statement that follows its key.

        Returns:
            Status, position of the failure (for malformed statements) and
            the unescaped value (for complete ones).
        """
        pos = _skip_space(text, pos)
        if pos >= len(text):
            return _Status.INCOMPLETE, pos, ""
        if text[pos] != '=':
            return _Status.MALFORMED, pos, ""

        pos = _skip_space(text, pos + 1)
        if pos >= len(text):
            return _Status.INCOMPLETE, pos, ""
        if text[pos] != '"':
            return _Status.MALFORMED, pos, ""

        value_end = scan_quoted(text, pos)
        if value_end is None:
            return _Status.INCOMPLETE, pos, ""
        value = StringEntry._unescape(text[pos + 1:value_end - 1])

        pos = _skip_space(text, value_end)
        if pos >= len(text):
            return _Status.INCOMPLETE, pos, ""
        if text[pos] != ';':
            return _Status.MALFORMED, pos, ""

        # Only comments may follow the terminator. A backslash outside of
        # a line comment continues the statement onto the next line.
        tail_start = pos + 1
        offset = 0
        continued = False
        for chunk in text[tail_start:].split('\n'):
            rest = chunk.strip()
            while rest.startswith('/*') and rest.find('*/', 2) >= 0:
                rest = rest[rest.find('*/', 2) + 2:].strip()
            if rest.startswith('//'):
                return _Status.COMPLETE, len(text), value
            continued = _is_continued(rest)
            if continued:
                rest = rest.rstrip()[:-1].strip()
            if rest:
                return _Status.MALFORMED, tail_start + offset, ""
            offset += len(chunk) + 1

        if continued:
            return _Status.INCOMPLETE, len(text), ""
        return _Status.COMPLETE, len(text), value

    def _anomaly(
        self,
        kind: AnomalyKind,
        first: int,
        last: int,
        message: str,
        key: Optional[str] = None
    ) -> None:
        anomaly = ParseAnomaly(
            kind=kind,
            line_start=first + 1,
            line_end=last + 1,
            message=message,
            key=key
        )
        if self.strict:
            raise StringsParseError(anomaly)
        self.anomalies.append(anomaly)
