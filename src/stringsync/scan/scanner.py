"""Discovery of .strings files under a directory tree."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


@dataclass
class DirectoryAccessFailure:
    """A directory that could not be listed.

    Attributes:
        path: The directory that failed.
        message: Reason reported by the operating system.
    """
    path: Path
    message: str


@dataclass
class ScanResult:
    """Files found under a root, plus the subtrees that were skipped."""
    paths: list[Path] = field(default_factory=list)
    failures: list[DirectoryAccessFailure] = field(default_factory=list)


class TreeScanner:
    """Recursively finds candidate resource files.

    Symlinked directories are followed, but each real directory is visited
    at most once. Directories that cannot be listed are recorded and
    skipped instead of aborting the scan.
    """

    def __init__(self, extension: str = ".strings", skip_hidden: bool = True):
        """Initialize the scanner.

        Args:
            extension: File name suffix to match, case-insensitively.
            skip_hidden: Skip directories whose name starts with a dot.
        """
        if not extension.startswith("."):
            extension = "." + extension
        self.extension = extension.lower()
        self.skip_hidden = skip_hidden

    def scan(self, root: Path, exclude: Optional[Iterable[Path]] = None) -> ScanResult:
        """Find every matching file under root.

        Args:
            root: Directory to scan.
            exclude: Files to leave out of the result (e.g. the base file).

        Returns:
            ScanResult with sorted paths and any directory failures.
        """
        result = ScanResult()
        excluded = {self._real(p) for p in exclude or ()}

        if not root.is_dir():
            result.failures.append(DirectoryAccessFailure(root, "Not a directory"))
            return result

        def on_error(error: OSError) -> None:
            failed = Path(error.filename) if error.filename else root
            logger.warning("Skipping %s: %s", failed, error.strerror or error)
            result.failures.append(DirectoryAccessFailure(failed, error.strerror or str(error)))

        visited: set[str] = set()
        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error, followlinks=True):
            real = self._real(Path(dirpath))
            if real in visited:
                # Reached again through a symlink; do not descend further
                dirnames[:] = []
                continue
            visited.add(real)

            if self.skip_hidden:
                dirnames[:] = [d for d in dirnames if not d.startswith(".")]
            dirnames.sort()

            for name in sorted(filenames):
                if not name.lower().endswith(self.extension):
                    continue
                path = Path(dirpath) / name
                if not path.is_file():
                    continue
                if self._real(path) in excluded:
                    continue
                result.paths.append(path)

        result.paths.sort()
        logger.debug("Found %d %s files under %s", len(result.paths), self.extension, root)
        return result

    @staticmethod
    def _real(path: Path) -> str:
        return os.path.realpath(path)
