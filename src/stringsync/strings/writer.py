"""Rendering and atomic writing of .strings files."""

import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable

from ..exceptions import StringsWriteError
from .models import StringEntry

logger = logging.getLogger(__name__)


class StringsWriter:
    """Turns entries back into .strings text and writes it to disk."""

    def render(
        self,
        header: Iterable[str],
        entries: Iterable[StringEntry],
        trailer: Iterable[str] = (),
        newline: str = "\n"
    ) -> str:
        """Render header, entries and trailer as file text.

        Runs of blank lines in the trivia are collapsed to a single blank
        line. Statement lines, and repeated definitions kept after them, are
        emitted exactly as they were read.

        Args:
            header: Lines preceding the first entry.
            entries: Entries in output order.
            trailer: Lines following the last entry.
            newline: Line terminator to use.

        Returns:
            The file content, ending with a newline unless empty.
        """
        out: list[str] = []
        previous_blank = False

        def add_trivia(lines: Iterable[str]) -> None:
            nonlocal previous_blank
            for line in lines:
                blank = not line.strip()
                if blank and previous_blank:
                    continue
                out.append(line)
                previous_blank = blank

        add_trivia(header)
        for entry in entries:
            add_trivia(entry.leading_lines)
            out.extend(entry.raw_lines)
            out.extend(entry.trailing_lines)
            previous_blank = False
        add_trivia(trailer)

        if not out:
            return ""
        return newline.join(out) + newline

    def write(self, path: Path, content: str, encoding: str = "utf-8") -> None:
        """Write content to a file atomically.

        The text goes to a temporary file in the same directory which then
        replaces the target, so readers never see a half-written file.

        Args:
            path: Path to the output file.
            content: Text to write.
            encoding: File encoding, as returned by the parser.

        Raises:
            StringsWriteError: If the file cannot be written.
        """
        data = content.encode(encoding)
        tmp_name = None
        try:
            mode = path.stat().st_mode & 0o777 if path.exists() else None

            # Ensure parent directory exists
            path.parent.mkdir(parents=True, exist_ok=True)

            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{path.name}.",
                suffix=".tmp",
                dir=path.parent
            )
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())

            if mode is not None:
                os.chmod(tmp_name, mode)
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            raise StringsWriteError(path, e) from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.debug("Could not remove temporary file %s", tmp_name)

        logger.debug("Wrote %s (%d bytes)", path, len(data))
