"""CLI entry point for the synchronization service."""

import logging
from pathlib import Path
from typing import Optional

import click

from . import __version__
from .config import LocalizationPaths, SyncConfig
from .core import SyncOutcome, SyncReport, SyncService
from .exceptions import BaseFileError, StringsParseError
from .strings import StringsParser

OUTCOME_COLORS = {
    SyncOutcome.SYNCED: None,
    SyncOutcome.UPDATED: 'green',
    SyncOutcome.SKIPPED: 'yellow',
    SyncOutcome.READ_FAILED: 'red',
    SyncOutcome.PARSE_FAILED: 'red',
    SyncOutcome.WRITE_FAILED: 'red',
}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s"
    )


def _sync_options(func):
    """Options shared by the sync and check commands."""
    options = [
        click.argument('root', type=click.Path(exists=True, file_okay=False, path_type=Path)),
        click.option('--base', 'base_file', type=click.Path(exists=True, dir_okay=False, path_type=Path),
                     help='Path to the base .strings file'),
        click.option('--base-lang', help='Base language; uses ROOT/<lang>.lproj/<name>'),
        click.option('--name', default='Localizable.strings', show_default=True,
                     help='File name used with --base-lang'),
        click.option('--extension', default='.strings', show_default=True,
                     help='Extension of files to synchronize'),
        click.option('--jobs', '-j', default=0, type=click.IntRange(min=0),
                     help='Number of files to process in parallel'),
        click.option('--strict', is_flag=True, help='Fail a file on its first parse anomaly'),
        click.option('--keep-orphans/--drop-orphans', default=True, show_default=True,
                     help='Keep keys that are missing from the base, after the synced keys'),
        click.option('--same-name', is_flag=True, help='Only sync files named like the base file'),
        click.option('--verbose', '-v', is_flag=True, help='Verbose output'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _resolve_base(root: Path, base_file: Optional[Path], base_lang: Optional[str], name: str) -> Path:
    if base_file and base_lang:
        raise click.UsageError("Use either --base or --base-lang, not both.")
    if base_file:
        return base_file
    if base_lang:
        path = LocalizationPaths(root, name).get_base_path(base_lang)
        if not path.is_file():
            raise click.UsageError(f"Base file not found: {path}")
        return path
    raise click.UsageError("One of --base or --base-lang is required.")


def _run(
    root: Path,
    base_file: Optional[Path],
    base_lang: Optional[str],
    name: str,
    config: SyncConfig
) -> SyncReport:
    _configure_logging(config.verbose)
    base_path = _resolve_base(root, base_file, base_lang, name)
    service = SyncService(config=config)

    def progress_callback(current: int, total: int, path: Path):
        if config.verbose:
            click.echo(f"  [{current}/{total}] {path}")

    click.echo(f"Base file: {base_path}")
    click.echo(f"Scanning: {root}")
    click.echo()

    try:
        report = service.sync_tree(base_path, root, progress_callback=progress_callback)
    except BaseFileError as e:
        click.secho(f"Error: {e}", fg='red', err=True)
        raise SystemExit(2)

    _print_report(report, config.verbose)
    return report


def _print_report(report: SyncReport, verbose: bool) -> None:
    if not report.files:
        click.secho("No target files found.", fg='yellow')

    for file_report in report.files:
        outcome = file_report.outcome
        label = outcome.value
        if outcome is SyncOutcome.UPDATED:
            changes = []
            if file_report.added:
                changes.append(f"added {len(file_report.added)} keys")
            if file_report.dropped:
                changes.append(f"dropped {len(file_report.dropped)} keys")
            label = ", ".join(changes) or "reordered"
        click.secho(f"{file_report.path}: {label}", fg=OUTCOME_COLORS[outcome])

        if file_report.error:
            click.secho(f"  {file_report.error}", fg='red')
        for key in file_report.added:
            click.secho(f"  + {key}", fg='green')
        for key in file_report.dropped:
            click.secho(f"  - {key} (not in base)", fg='red')
        if verbose:
            for key in file_report.orphans:
                if key not in file_report.dropped:
                    click.secho(f"  ? {key} (not in base)", fg='yellow')
            for anomaly in file_report.anomalies:
                click.secho(f"  ! {anomaly}", fg='yellow')

    for failure in report.scan_failures:
        click.secho(f"{failure.path}: skipped ({failure.message})", fg='red')

    click.echo()
    click.echo(
        f"{len(report.files)} files: "
        f"{report.count(SyncOutcome.UPDATED)} updated, "
        f"{report.count(SyncOutcome.SYNCED)} in sync, "
        f"{sum(1 for r in report.files if r.failed)} failed"
    )
    if report.dry_run:
        click.secho("Dry run - no files modified.", fg='cyan')


@click.group()
@click.version_option(version=__version__)
def cli():
    """Keep .strings files in sync with a base language file."""
    pass


@cli.command()
@_sync_options
@click.option('--dry-run', is_flag=True, help='Show what would change without writing files')
def sync(
    root: Path,
    base_file: Optional[Path],
    base_lang: Optional[str],
    name: str,
    extension: str,
    jobs: int,
    strict: bool,
    keep_orphans: bool,
    same_name: bool,
    verbose: bool,
    dry_run: bool
):
    """Add missing keys to every .strings file under ROOT and order them like the base.

    ROOT is the directory containing the localized files (e.g., Resources).
    """
    config = SyncConfig(
        extension=extension,
        jobs=jobs,
        strict=strict,
        dry_run=dry_run,
        keep_orphans=keep_orphans,
        same_name_only=same_name,
        verbose=verbose
    )
    report = _run(root, base_file, base_lang, name, config)

    if report.has_failures:
        raise SystemExit(1)


@cli.command()
@_sync_options
def check(
    root: Path,
    base_file: Optional[Path],
    base_lang: Optional[str],
    name: str,
    extension: str,
    jobs: int,
    strict: bool,
    keep_orphans: bool,
    same_name: bool,
    verbose: bool
):
    """Report files under ROOT that are out of sync, without modifying them.

    Exits with status 1 if any file would change or could not be processed.
    """
    config = SyncConfig(
        extension=extension,
        jobs=jobs,
        strict=strict,
        dry_run=True,
        keep_orphans=keep_orphans,
        same_name_only=same_name,
        verbose=verbose
    )
    report = _run(root, base_file, base_lang, name, config)

    if report.has_failures or report.changed_files:
        raise SystemExit(1)


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--strict', is_flag=True, help='Stop at the first parse anomaly')
def parse(file: Path, strict: bool):
    """Parse and display entries from a .strings file.

    FILE is the path to the .strings file to parse.
    """
    parser = StringsParser()
    try:
        parsed = parser.parse_file(file, strict=strict)
    except StringsParseError as e:
        click.secho(f"Error: {e}", fg='red', err=True)
        raise SystemExit(1)

    if not parsed.entries:
        click.secho("No entries found.", fg='yellow')
    else:
        click.echo(f"Entries ({len(parsed.entries)} total):\n")

    for entry in parsed.entries:
        click.secho(f"{entry.line_number}: {entry.key}", fg='cyan')
        click.echo(f'    "{entry.value}"')

    if parsed.anomalies:
        click.echo()
        click.secho(f"Anomalies ({len(parsed.anomalies)}):", fg='red', bold=True)
        for anomaly in parsed.anomalies:
            click.echo(f"  {anomaly.kind.value} at {anomaly}")

    if not parsed.is_usable:
        raise SystemExit(1)


if __name__ == '__main__':
    cli()
