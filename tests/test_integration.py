"""Integration tests for the synchronization service and CLI."""

import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from stringsync.cli import cli
from stringsync.config import LocalizationPaths, SyncConfig
from stringsync.core import SyncOutcome, SyncService
from stringsync.exceptions import BaseFileError
from stringsync.strings import AnomalyKind


BASE = '''/* English */

"app.title" = "Vibe";

/* Shown on the start screen */
"greeting" = "Hello";
"farewell" = "Goodbye";
'''

GERMAN = '''/* Deutsch */

"farewell" = "Tschüss";
"app.title" = "Vibe";
'''

FRENCH = '''"app.title" = "Vibe";
"greeting" = "Bonjour";
"farewell" = "Au revoir";
'''


@pytest.fixture
def temp_dir():
    """Create temporary directory with .strings structure."""
    with tempfile.TemporaryDirectory() as tmpdir:
        base = Path(tmpdir) / "Resources"

        # Create language directories
        for lang in ["en", "de", "fr"]:
            (base / f"{lang}.lproj").mkdir(parents=True)

        (base / "en.lproj" / "Localizable.strings").write_text(BASE, encoding='utf-8')
        (base / "de.lproj" / "Localizable.strings").write_text(GERMAN, encoding='utf-8')
        (base / "fr.lproj" / "Localizable.strings").write_text(FRENCH, encoding='utf-8')

        yield base


def base_path(root):
    return LocalizationPaths(root).get_base_path("en")


class TestSyncService:
    """Tests for SyncService."""

    def test_sync_tree(self, temp_dir):
        """Missing keys are added and files are ordered like the base."""
        service = SyncService(SyncConfig())
        report = service.sync_tree(base_path(temp_dir), temp_dir)

        assert [r.path.parent.name for r in report.files] == ["de.lproj", "fr.lproj"]
        german, french = report.files

        assert german.outcome == SyncOutcome.UPDATED
        assert german.added == ["greeting"]
        assert german.changed
        assert french.outcome == SyncOutcome.SYNCED
        assert not french.changed
        assert not report.has_failures

        assert (temp_dir / "de.lproj" / "Localizable.strings").read_text(encoding='utf-8') == (
            '/* Deutsch */\n'
            '\n'
            '"app.title" = "Vibe";\n'
            '\n'
            '/* Shown on the start screen */\n'
            '"greeting" = "Hello";\n'
            '"farewell" = "Tschüss";\n'
        )
        assert (temp_dir / "fr.lproj" / "Localizable.strings").read_text(encoding='utf-8') == FRENCH

    def test_second_run_is_noop(self, temp_dir):
        """Running again changes nothing."""
        service = SyncService(SyncConfig())
        service.sync_tree(base_path(temp_dir), temp_dir)
        german = temp_dir / "de.lproj" / "Localizable.strings"
        first = german.read_bytes()

        report = service.sync_tree(base_path(temp_dir), temp_dir)

        assert all(r.outcome == SyncOutcome.SYNCED for r in report.files)
        assert german.read_bytes() == first

    def test_dry_run_writes_nothing(self, temp_dir):
        """Dry runs report changes without touching files."""
        service = SyncService(SyncConfig(dry_run=True))
        report = service.sync_tree(base_path(temp_dir), temp_dir)

        assert report.files[0].added == ["greeting"]
        assert report.files[0].changed
        assert (temp_dir / "de.lproj" / "Localizable.strings").read_text(encoding='utf-8') == GERMAN

    def test_empty_target_gets_all_keys(self, temp_dir):
        """A zero-byte target receives every base key."""
        target = temp_dir / "de.lproj" / "Localizable.strings"
        target.write_bytes(b"")

        service = SyncService(SyncConfig())
        report = service.sync_file(service.load_base(base_path(temp_dir)), target)

        assert report.outcome == SyncOutcome.UPDATED
        assert report.added == ["app.title", "greeting", "farewell"]
        assert target.read_text(encoding='utf-8') == (
            '"app.title" = "Vibe";\n'
            '\n'
            '/* Shown on the start screen */\n'
            '"greeting" = "Hello";\n'
            '"farewell" = "Goodbye";\n'
        )

    def test_unterminated_target_fails_alone(self, temp_dir):
        """A broken target is reported and the others are still processed."""
        broken = temp_dir / "de.lproj" / "Localizable.strings"
        broken.write_text('"app.title" = "Vibe"\n', encoding='utf-8')
        (temp_dir / "fr.lproj" / "Localizable.strings").write_text('"greeting" = "Salut";\n', encoding='utf-8')

        service = SyncService(SyncConfig())
        report = service.sync_tree(base_path(temp_dir), temp_dir)

        german, french = report.files
        assert german.outcome == SyncOutcome.PARSE_FAILED
        assert german.failed
        assert german.anomalies[0].key == "app.title"
        assert broken.read_text(encoding='utf-8') == '"app.title" = "Vibe"\n'

        assert french.outcome == SyncOutcome.UPDATED
        assert french.added == ["app.title", "farewell"]
        assert report.has_failures

    def test_empty_base_leaves_targets_untouched(self, temp_dir):
        """With an empty base nothing is written."""
        base = base_path(temp_dir)
        base.write_text("/* nothing yet */\n", encoding='utf-8')

        service = SyncService(SyncConfig())
        report = service.sync_tree(base, temp_dir)

        assert all(r.outcome == SyncOutcome.SKIPPED for r in report.files)
        assert report.files[0].orphans == ["farewell", "app.title"]
        assert (temp_dir / "de.lproj" / "Localizable.strings").read_text(encoding='utf-8') == GERMAN

    def test_strict_mode_fails_file_on_anomaly(self, temp_dir):
        """Strict mode turns a recoverable anomaly into a failure."""
        target = temp_dir / "fr.lproj" / "Localizable.strings"
        target.write_text(FRENCH + "oops\n", encoding='utf-8')

        lenient = SyncService(SyncConfig(dry_run=True)).sync_tree(base_path(temp_dir), temp_dir)
        strict = SyncService(SyncConfig(dry_run=True, strict=True)).sync_tree(base_path(temp_dir), temp_dir)

        assert lenient.files[1].outcome == SyncOutcome.SYNCED
        assert len(lenient.files[1].anomalies) == 1
        assert strict.files[1].outcome == SyncOutcome.PARSE_FAILED

    def test_orphans_kept_by_default(self, temp_dir):
        """Keys missing from the base and the lines before them stay on disk."""
        target = temp_dir / "fr.lproj" / "Localizable.strings"
        content = FRENCH + 'note for translators\n"legacy" = "Ancien";\n'
        target.write_text(content, encoding='utf-8')

        service = SyncService(SyncConfig())
        report = service.sync_file(service.load_base(base_path(temp_dir)), target)

        assert report.outcome == SyncOutcome.SYNCED
        assert report.orphans == ["legacy"]
        assert report.dropped == []
        assert target.read_text(encoding='utf-8') == content

    def test_drop_orphans_keeps_other_lines(self, temp_dir):
        """Dropping orphans removes their statements and nothing else."""
        target = temp_dir / "fr.lproj" / "Localizable.strings"
        target.write_text(FRENCH + 'note for translators\n"legacy" = "Ancien";\n', encoding='utf-8')

        service = SyncService(SyncConfig(keep_orphans=False))
        report = service.sync_file(service.load_base(base_path(temp_dir)), target)

        assert report.outcome == SyncOutcome.UPDATED
        assert report.added == []
        assert report.dropped == ["legacy"]
        assert target.read_text(encoding='utf-8') == FRENCH + 'note for translators\n'

    def test_duplicate_key_kept_on_disk(self, temp_dir):
        """A repeated key is reported and its definition is not deleted."""
        target = temp_dir / "fr.lproj" / "Localizable.strings"
        target.write_text(
            '"app.title" = "Vibe";\n'
            '"farewell" = "Au revoir";\n'
            '"greeting" = "Bonjour";\n'
            '"farewell" = "Adieu";\n',
            encoding='utf-8'
        )

        service = SyncService(SyncConfig())
        base = service.load_base(base_path(temp_dir))
        report = service.sync_file(base, target)

        assert report.outcome == SyncOutcome.UPDATED
        assert [a.kind for a in report.anomalies] == [AnomalyKind.DUPLICATE_KEY]
        assert target.read_text(encoding='utf-8') == (
            '"app.title" = "Vibe";\n'
            '"greeting" = "Bonjour";\n'
            '"farewell" = "Au revoir";\n'
            '"farewell" = "Adieu";\n'
        )
        assert service.sync_file(base, target).outcome == SyncOutcome.SYNCED

    def test_base_anomaly_not_copied(self, temp_dir):
        """Unreadable base lines never reach the targets."""
        base_file = base_path(temp_dir)
        base_file.write_text(
            '"app.title" = "Vibe";\n'
            'TODO junk\n'
            '"greeting" = "Hello";\n'
            '"farewell" = "Goodbye";\n',
            encoding='utf-8'
        )
        target = temp_dir / "de.lproj" / "Localizable.strings"

        service = SyncService(SyncConfig())
        report = service.sync_file(service.load_base(base_file), target)

        assert report.added == ["greeting"]
        assert target.read_text(encoding='utf-8') == (
            '/* Deutsch */\n'
            '\n'
            '"app.title" = "Vibe";\n'
            '"greeting" = "Hello";\n'
            '"farewell" = "Tschüss";\n'
        )

    def test_statement_after_comment_not_duplicated(self, temp_dir):
        """Keys sharing a line with a comment end or a commented backslash are found."""
        target = temp_dir / "de.lproj" / "Localizable.strings"
        content = (
            '"app.title" = "Vibe"; // see C:\\\n'
            '/* note\n'
            '*/ "greeting" = "Hallo";\n'
            '"farewell" = "Tschüss";\n'
        )
        target.write_text(content, encoding='utf-8')

        service = SyncService(SyncConfig())
        report = service.sync_file(service.load_base(base_path(temp_dir)), target)

        assert report.outcome == SyncOutcome.SYNCED
        assert report.added == []
        assert report.anomalies == []
        assert target.read_text(encoding='utf-8') == content

    def test_write_failure_is_per_file(self, temp_dir):
        """A file that cannot be written does not stop the run."""
        (temp_dir / "fr.lproj" / "Localizable.strings").write_text("", encoding='utf-8')

        service = SyncService(SyncConfig())
        with patch("stringsync.strings.writer.os.replace", side_effect=OSError(13, "Permission denied")):
            report = service.sync_tree(base_path(temp_dir), temp_dir)

        assert [r.outcome for r in report.files] == [SyncOutcome.WRITE_FAILED, SyncOutcome.WRITE_FAILED]
        assert "Permission denied" in report.files[0].error
        assert report.files[0].added == ["greeting"]

    def test_unreadable_target_is_per_file(self, temp_dir):
        """Undecodable bytes are a read failure for that file only."""
        (temp_dir / "de.lproj" / "Localizable.strings").write_bytes(b'"a" = "\xff\xfe\xfd')

        report = SyncService(SyncConfig(dry_run=True)).sync_tree(base_path(temp_dir), temp_dir)

        assert report.files[0].failed
        assert report.files[1].outcome == SyncOutcome.SYNCED

    def test_parallel_matches_sequential(self, temp_dir):
        """A worker pool produces the same report as a sequential run."""
        for lang in ["es", "it", "ja", "ko"]:
            lproj = temp_dir / f"{lang}.lproj"
            lproj.mkdir()
            (lproj / "Localizable.strings").write_text('"greeting" = "?";\n', encoding='utf-8')

        sequential = SyncService(SyncConfig(dry_run=True)).sync_tree(base_path(temp_dir), temp_dir)

        progress = []
        parallel = SyncService(SyncConfig(dry_run=True, jobs=4)).sync_tree(
            base_path(temp_dir),
            temp_dir,
            progress_callback=lambda current, total, path: progress.append((current, total))
        )

        assert [(r.path, r.outcome, r.added) for r in parallel.files] == [
            (r.path, r.outcome, r.added) for r in sequential.files
        ]
        assert sorted(progress) == [(i, 6) for i in range(1, 7)]

    def test_same_name_only(self, temp_dir):
        """Other .strings files can be excluded by name."""
        (temp_dir / "de.lproj" / "InfoPlist.strings").write_text('"CFBundleName" = "Vibe";\n', encoding='utf-8')

        every = SyncService(SyncConfig(dry_run=True)).sync_tree(base_path(temp_dir), temp_dir)
        named = SyncService(SyncConfig(dry_run=True, same_name_only=True)).sync_tree(base_path(temp_dir), temp_dir)

        assert len(every.files) == 3
        assert [r.path.name for r in named.files] == ["Localizable.strings", "Localizable.strings"]

    def test_broken_base_raises(self, temp_dir):
        """An unusable base file stops the run before any target is touched."""
        base = base_path(temp_dir)
        base.write_text('"a" = "A"\n', encoding='utf-8')

        with pytest.raises(BaseFileError):
            SyncService(SyncConfig()).sync_tree(base, temp_dir)
        assert (temp_dir / "de.lproj" / "Localizable.strings").read_text(encoding='utf-8') == GERMAN

    def test_utf16_target_stays_utf16(self, temp_dir):
        """Targets are written back in their own encoding."""
        target = temp_dir / "de.lproj" / "Localizable.strings"
        target.write_bytes(GERMAN.encode('utf-16'))

        SyncService(SyncConfig()).sync_tree(base_path(temp_dir), temp_dir)

        raw = target.read_bytes()
        assert raw.startswith(b'\xff\xfe') or raw.startswith(b'\xfe\xff')
        assert '"greeting" = "Hello";' in raw.decode('utf-16')


class TestCli:
    """Tests for the command line interface."""

    @pytest.fixture
    def runner(self):
        """Create a CLI runner."""
        return CliRunner()

    def test_sync_with_base_lang(self, runner, temp_dir):
        """The sync command reports added keys."""
        result = runner.invoke(cli, ['sync', str(temp_dir), '--base-lang', 'en'])

        assert result.exit_code == 0, result.output
        assert "added 1 keys" in result.output
        assert "+ greeting" in result.output
        assert "1 updated, 1 in sync, 0 failed" in result.output

    def test_sync_with_base_file(self, runner, temp_dir):
        """A base file can be given directly."""
        result = runner.invoke(cli, ['sync', str(temp_dir), '--base', str(base_path(temp_dir)), '--dry-run'])

        assert result.exit_code == 0, result.output
        assert "Dry run" in result.output
        assert (temp_dir / "de.lproj" / "Localizable.strings").read_text(encoding='utf-8') == GERMAN

    def test_sync_requires_a_base(self, runner, temp_dir):
        """Either --base or --base-lang must be given."""
        result = runner.invoke(cli, ['sync', str(temp_dir)])
        assert result.exit_code == 2

    def test_sync_failure_exit_code(self, runner, temp_dir):
        """Failed files make the command exit with status 1."""
        (temp_dir / "de.lproj" / "Localizable.strings").write_text('"x" = "y"\n', encoding='utf-8')

        result = runner.invoke(cli, ['sync', str(temp_dir), '--base-lang', 'en'])

        assert result.exit_code == 1
        assert "parse-failed" in result.output

    def test_check_reports_pending_changes(self, runner, temp_dir):
        """The check command fails while files are out of sync."""
        result = runner.invoke(cli, ['check', str(temp_dir), '--base-lang', 'en'])
        assert result.exit_code == 1
        assert (temp_dir / "de.lproj" / "Localizable.strings").read_text(encoding='utf-8') == GERMAN

        runner.invoke(cli, ['sync', str(temp_dir), '--base-lang', 'en'])
        result = runner.invoke(cli, ['check', str(temp_dir), '--base-lang', 'en'])
        assert result.exit_code == 0, result.output

    def test_parse_command(self, runner, temp_dir):
        """The parse command lists entries."""
        result = runner.invoke(cli, ['parse', str(base_path(temp_dir))])

        assert result.exit_code == 0, result.output
        assert "Entries (3 total)" in result.output
        assert "greeting" in result.output

    def test_parse_command_shows_anomalies(self, runner, temp_dir):
        """Anomalies are listed and unusable files exit with status 1."""
        path = temp_dir / "de.lproj" / "Localizable.strings"
        path.write_text('"a" = "A";\n"b" = "B"\n', encoding='utf-8')

        result = runner.invoke(cli, ['parse', str(path)])

        assert result.exit_code == 1
        assert "unterminated-statement" in result.output

    def test_dropped_orphans_always_listed(self, runner, temp_dir):
        """Keys removed with --drop-orphans are shown without --verbose."""
        target = temp_dir / "fr.lproj" / "Localizable.strings"
        target.write_text(FRENCH + '"legacy" = "Ancien";\n', encoding='utf-8')

        result = runner.invoke(cli, ['sync', str(temp_dir), '--base-lang', 'en', '--drop-orphans'])

        assert result.exit_code == 0, result.output
        assert "dropped 1 keys" in result.output
        assert "- legacy (not in base)" in result.output
        assert target.read_text(encoding='utf-8') == FRENCH
