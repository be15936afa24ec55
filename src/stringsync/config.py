"""Configuration for the synchronization service."""

from dataclasses import dataclass
from pathlib import Path


@dataclass
class SyncConfig:
    """Configuration for the synchronization service.

    Attributes:
        extension: File extension of resource files to discover.
        jobs: Number of worker threads; 0 or 1 processes files sequentially.
        strict: If True, any parse anomaly fails the whole file.
        dry_run: If True, don't actually modify files.
        keep_orphans: If True, keys missing from the base are written after
            the synchronized entries. If False, their statements are left
            out and the lines in front of them are kept.
        same_name_only: If True, only sync files named like the base file.
        verbose: If True, print detailed output.
    """
    extension: str = ".strings"
    jobs: int = 0
    strict: bool = False
    dry_run: bool = False
    keep_orphans: bool = True
    same_name_only: bool = False
    verbose: bool = False


@dataclass
class LocalizationPaths:
    """Paths configuration for localization files.

    Attributes:
        base_dir: Base directory containing .lproj folders.
        source_file: Name of the strings file inside each .lproj folder.
    """
    base_dir: Path
    source_file: str = "Localizable.strings"

    def get_base_path(self, base_lang: str = "en") -> Path:
        """Get path to the base language file."""
        return Path(self.base_dir) / f"{base_lang}.lproj" / self.source_file