"""Merging of a target .strings file against the base file."""

from dataclasses import dataclass, field, replace
from enum import Enum

from ..strings.models import AnomalyKind, ParsedFile, StringEntry


class Provenance(Enum):
    """Where a planned entry came from."""
    TARGET = "target"
    BASE = "base"


@dataclass(frozen=True)
class PlannedEntry:
    """An entry placed in the merged output.

    Attributes:
        entry: The entry to emit, verbatim.
        provenance: TARGET if the translation was kept, BASE if the base
            text was copied as a placeholder.
    """
    entry: StringEntry
    provenance: Provenance

    @property
    def key(self) -> str:
        return self.entry.key


@dataclass(frozen=True)
class MergePlan:
    """Merged content for one target file.

    Attributes:
        header: The target's header, verbatim.
        entries: One planned entry per base key, in base order.
        trailer: The target's trailer, verbatim.
        added: Keys copied from the base, in base order.
        orphans: Target entries whose key is not in the base, in target order.
        orphan_trivia: Leading lines of orphans, by the key of the next
            target entry that is kept. Used when orphans are dropped.
        stray_trivia: Leading lines of orphans that no kept entry follows.
    """
    header: tuple[str, ...]
    entries: tuple[PlannedEntry, ...]
    trailer: tuple[str, ...]
    added: tuple[str, ...]
    orphans: tuple[StringEntry, ...]
    orphan_trivia: dict[str, tuple[str, ...]] = field(default_factory=dict, compare=False)
    stray_trivia: tuple[str, ...] = ()

    def keys(self) -> list[str]:
        return [planned.key for planned in self.entries]

    def output_entries(self, keep_orphans: bool = True) -> list[StringEntry]:
        """Entries to write.

        Orphans are appended after the planned entries. When they are
        dropped instead, only their statements go; the comments and
        unparsed lines in front of them move to the next kept entry.
        """
        result = [planned.entry for planned in self.entries]
        if keep_orphans:
            result.extend(self.orphans)
            return result

        return [
            replace(entry, leading_lines=self.orphan_trivia[entry.key] + entry.leading_lines)
            if entry.key in self.orphan_trivia else entry
            for entry in result
        ]

    def output_trailer(self, keep_orphans: bool = True) -> tuple[str, ...]:
        """Trailer to write, after any orphan lines that had no later entry."""
        if keep_orphans:
            return self.trailer
        return self.stray_trivia + self.trailer


class Synchronizer:
    """Aligns target files with the key set and order of a base file.

    Output order is decided by the base alone. Translations that exist in
    the target are kept verbatim; missing keys are filled with the base
    entry. Orphans are never part of the plan and never reported as removed.
    """

    def merge(self, base: ParsedFile, target: ParsedFile) -> MergePlan:
        """Plan the merged content of one target file.

        Args:
            base: The parsed base file.
            target: The parsed target file.

        Returns:
            MergePlan holding one entry per base key.
        """
        translated = target.to_dict()

        planned = []
        added = []
        for entry in base.entries:
            existing = translated.get(entry.key)
            if existing is not None:
                planned.append(PlannedEntry(existing, Provenance.TARGET))
            else:
                planned.append(PlannedEntry(self._placeholder(entry, base), Provenance.BASE))
                added.append(entry.key)

        base_keys = {entry.key for entry in base.entries}
        orphans = []
        orphan_trivia = {}
        carried: list[str] = []
        for entry in target.entries:
            if entry.key not in base_keys:
                orphans.append(entry)
                carried.extend(entry.leading_lines)
            elif carried:
                orphan_trivia[entry.key] = tuple(carried)
                carried = []

        return MergePlan(
            header=target.header,
            entries=tuple(planned),
            trailer=target.trailer,
            added=tuple(added),
            orphans=tuple(orphans),
            orphan_trivia=orphan_trivia,
            stray_trivia=tuple(carried)
        )

    @staticmethod
    def _placeholder(entry: StringEntry, base: ParsedFile) -> StringEntry:
        """Copy of a base entry that is safe to insert into a target.

        Lines the parser could not read and repeated definitions belong to
        the base file only and are not copied.
        """
        unreadable = set()
        for anomaly in base.anomalies:
            if anomaly.kind is not AnomalyKind.DUPLICATE_KEY:
                unreadable.update(range(anomaly.line_start, anomaly.line_end + 1))

        first = entry.line_number - len(entry.leading_lines)
        leading = tuple(
            line for number, line in enumerate(entry.leading_lines, first)
            if number not in unreadable
        )
        return replace(entry, leading_lines=leading, trailing_lines=())
