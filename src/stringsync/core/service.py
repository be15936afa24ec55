"""Main synchronization service orchestration."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from ..config import SyncConfig
from ..exceptions import BaseFileError, StringsParseError, StringsWriteError
from ..scan import DirectoryAccessFailure, TreeScanner
from ..strings import ParseAnomaly, ParsedFile, StringsParser, StringsWriter
from ..sync import Synchronizer

logger = logging.getLogger(__name__)


class SyncOutcome(Enum):
    """Result of synchronizing one target file."""
    SYNCED = "synced"
    UPDATED = "updated"
    SKIPPED = "skipped"
    READ_FAILED = "read-failed"
    PARSE_FAILED = "parse-failed"
    WRITE_FAILED = "write-failed"


FAILED_OUTCOMES = frozenset({
    SyncOutcome.READ_FAILED,
    SyncOutcome.PARSE_FAILED,
    SyncOutcome.WRITE_FAILED,
})


@dataclass
class FileReport:
    """Report for one target file.

    Attributes:
        path: Path to the target file.
        outcome: What happened to the file.
        added: Keys copied from the base file, in base order.
        orphans: Keys present in the target but not in the base.
        dropped: Orphan keys left out of the written file.
        anomalies: Parse anomalies found in the target.
        changed: Whether the file content differs (or would differ) from before.
        error: Error message for failed outcomes.
    """
    path: Path
    outcome: SyncOutcome
    added: list[str] = field(default_factory=list)
    orphans: list[str] = field(default_factory=list)
    dropped: list[str] = field(default_factory=list)
    anomalies: list[ParseAnomaly] = field(default_factory=list)
    changed: bool = False
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.outcome in FAILED_OUTCOMES


@dataclass
class SyncReport:
    """Report of a synchronization run.

    Attributes:
        base_file: Path to the base file.
        files: Per-file reports, sorted by path.
        scan_failures: Directories that could not be scanned.
        dry_run: Whether this was a dry run.
    """
    base_file: Path
    files: list[FileReport]
    scan_failures: list[DirectoryAccessFailure]
    dry_run: bool

    @property
    def has_failures(self) -> bool:
        return bool(self.scan_failures) or any(r.failed for r in self.files)

    @property
    def changed_files(self) -> list[FileReport]:
        return [r for r in self.files if r.changed]

    def count(self, outcome: SyncOutcome) -> int:
        return sum(1 for r in self.files if r.outcome is outcome)


ProgressCallback = Callable[[int, int, Path], None]


class SyncService:
    """Main service that orchestrates the synchronization workflow."""

    def __init__(self, config: Optional[SyncConfig] = None):
        """Initialize the synchronization service.

        Args:
            config: Synchronization configuration.
        """
        self.config = config or SyncConfig()
        self.parser = StringsParser()
        self.writer = StringsWriter()
        self.synchronizer = Synchronizer()
        self.scanner = TreeScanner(self.config.extension)

    def load_base(self, base_file: Path) -> ParsedFile:
        """Read and parse the base file.

        Args:
            base_file: Path to the base .strings file.

        Returns:
            The parsed base file.

        Raises:
            BaseFileError: If the file cannot be read or parsed.
        """
        try:
            base = self.parser.parse_file(base_file, strict=self.config.strict)
        except (OSError, UnicodeDecodeError) as e:
            raise BaseFileError(f"Cannot read base file {base_file}: {e}") from e
        except StringsParseError as e:
            raise BaseFileError(f"Cannot parse base file: {e}") from e

        if not base.is_usable:
            problems = "; ".join(str(a) for a in base.anomalies)
            raise BaseFileError(f"Cannot parse base file {base_file}: {problems}")

        logger.debug("Loaded %d base keys from %s", len(base.entries), base_file)
        return base

    def sync_file(self, base: ParsedFile, path: Path) -> FileReport:
        """Synchronize one target file against the parsed base.

        Problems with the target are reported, never raised.

        Args:
            base: The parsed base file.
            path: Path to the target file.

        Returns:
            FileReport describing the outcome.
        """
        try:
            content, encoding = self.parser.read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot read %s: %s", path, e)
            return FileReport(path, SyncOutcome.READ_FAILED, error=str(e))

        try:
            target = self.parser.parse(content, strict=self.config.strict)
        except StringsParseError as e:
            logger.warning("%s: %s", path, e)
            return FileReport(path, SyncOutcome.PARSE_FAILED, anomalies=[e.anomaly], error=str(e))

        anomalies = list(target.anomalies)
        for anomaly in anomalies:
            logger.warning("%s: %s", path, anomaly)

        if not target.is_usable:
            return FileReport(
                path,
                SyncOutcome.PARSE_FAILED,
                anomalies=anomalies,
                error="; ".join(str(a) for a in anomalies)
            )

        plan = self.synchronizer.merge(base, target)
        orphans = [entry.key for entry in plan.orphans]
        keep_orphans = self.config.keep_orphans

        if not base.entries:
            # Nothing to align against; orphans are never deleted
            return FileReport(path, SyncOutcome.SKIPPED, orphans=orphans, anomalies=anomalies)

        rendered = self.writer.render(
            plan.header,
            plan.output_entries(keep_orphans),
            plan.output_trailer(keep_orphans),
            newline=target.newline
        )
        changed = rendered != content
        dropped = [] if keep_orphans else orphans

        if changed and not self.config.dry_run:
            try:
                self.writer.write(path, rendered, encoding)
            except StringsWriteError as e:
                logger.warning("%s", e)
                return FileReport(
                    path,
                    SyncOutcome.WRITE_FAILED,
                    added=list(plan.added),
                    orphans=orphans,
                    dropped=dropped,
                    anomalies=anomalies,
                    error=str(e)
                )

        return FileReport(
            path,
            SyncOutcome.UPDATED if changed else SyncOutcome.SYNCED,
            added=list(plan.added),
            orphans=orphans,
            dropped=dropped,
            anomalies=anomalies,
            changed=changed
        )

    def sync_tree(
        self,
        base_file: Path,
        root: Path,
        progress_callback: Optional[ProgressCallback] = None
    ) -> SyncReport:
        """Synchronize every resource file under root with the base file.

        Args:
            base_file: Path to the base .strings file.
            root: Directory to scan for target files.
            progress_callback: Optional callback for progress updates.

        Returns:
            SyncReport with one FileReport per discovered target.

        Raises:
            BaseFileError: If the base file cannot be used.
        """
        base = self.load_base(base_file)

        scan = self.scanner.scan(root, exclude=[base_file])
        targets = scan.paths
        if self.config.same_name_only:
            targets = [p for p in targets if p.name == base_file.name]

        total = len(targets)
        reports = []

        if self.config.jobs > 1:
            with ThreadPoolExecutor(max_workers=self.config.jobs) as executor:
                futures = {
                    executor.submit(self.sync_file, base, path): path
                    for path in targets
                }

                for done, future in enumerate(as_completed(futures), start=1):
                    reports.append(future.result())
                    if progress_callback:
                        progress_callback(done, total, futures[future])
        else:
            for done, path in enumerate(targets, start=1):
                reports.append(self.sync_file(base, path))
                if progress_callback:
                    progress_callback(done, total, path)

        reports.sort(key=lambda r: r.path)

        return SyncReport(
            base_file=base_file,
            files=reports,
            scan_failures=scan.failures,
            dry_run=self.config.dry_run
        )
