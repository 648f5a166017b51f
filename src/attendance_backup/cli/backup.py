#!/usr/bin/env python3
"""Backup, restore and validate command-line entry points.

Usage:
    attendance-backup
    attendance-restore backups/backup_2024-01-15_14-30-00
    attendance-restore backup_2024-01-15_14-30-00 --dry-run
    attendance-restore                       # lists available backups
    attendance-validate backups/backup_2024-01-15_14-30-00

Exit codes:
    0  every table succeeded (skipped tables count as success on restore)
    1  a table failed, the backup directory is missing, or configuration
       is missing or malformed
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from attendance_backup.backup.dumper import Dumper
from attendance_backup.backup.loader import Loader
from attendance_backup.backup.models import BackupRun, RestoreResult
from attendance_backup.backup.storage import list_backups, resolve_backup_dir
from attendance_backup.backup.validate import validate_backup
from attendance_backup.config.loader import load_backup_paths, load_config
from attendance_backup.config.models import BackupConfig
from attendance_backup.errors import ConfigError, NotFoundError
from attendance_backup.factory import get_adapter

console = Console()


# ============================================================================
# Shared helpers
# ============================================================================


def _configure_logging(verbose: bool) -> None:
    """Route library log records (per-table progress) through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to backup.toml (default: backup.toml in the base directory)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show debug output",
    )


def _load(args: argparse.Namespace, **overrides) -> BackupConfig | None:
    """Load configuration, printing the error and returning None on failure."""
    try:
        return load_config(config_path=args.config, **overrides)
    except ConfigError as e:
        console.print(f"[bold red]x[/bold red] {e}")
        return None


# ============================================================================
# Backup
# ============================================================================


def _print_backup_summary(run: BackupRun) -> None:
    table = Table(title="Backup Summary", show_header=True, header_style="bold")
    table.add_column("Table", style="dim")
    table.add_column("Status")
    table.add_column("Records", justify="right")

    for name, result in run.manifest.tables.items():
        if result.success:
            table.add_row(name, "[green]ok[/green]", str(result.count))
        else:
            table.add_row(name, f"[red]{result.error}[/red]", "-")

    console.print()
    console.print(table)
    console.print(f"  Total records: {run.manifest.total_records}")
    console.print(f"  Backup location: [cyan]{run.backup_dir}[/cyan]")


async def _async_backup(args: argparse.Namespace) -> int:
    config = _load(args)
    if config is None:
        return 1

    adapter = get_adapter(config)
    try:
        run = await Dumper(adapter, config).run()
    except OSError as e:
        console.print(f"[bold red]x[/bold red] Cannot create backup directory: {e}")
        return 1
    finally:
        await adapter.close()

    _print_backup_summary(run)

    if not run.success:
        console.print(
            "\n[bold yellow]![/bold yellow] Some tables had errors during backup: "
            f"{', '.join(run.manifest.failed_tables)}"
        )
        return 1

    console.print("\n[bold green]v[/bold green] Backup completed successfully")
    console.print(
        f"[dim]To restore:[/dim] [cyan]attendance-restore {run.backup_dir}[/cyan]"
    )
    return 0


def backup_main(argv: list[str] | None = None) -> int:
    """Entry point for ``attendance-backup``."""
    parser = argparse.ArgumentParser(
        prog="attendance-backup",
        description="Back up persons, attendance and attendance_persons to JSON",
    )
    _add_common_arguments(parser)
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        return asyncio.run(_async_backup(args))
    except Exception as e:
        console.print(f"[bold red]x[/bold red] Fatal error during backup: {e}")
        return 1


# ============================================================================
# Restore
# ============================================================================


def _print_available_backups(config_path: Path | None) -> None:
    console.print("[bold red]x[/bold red] Backup directory not specified")
    console.print("\nUsage: [cyan]attendance-restore <backup-directory>[/cyan]")
    console.print("\nAvailable backups:")

    try:
        _, backup_root = load_backup_paths(config_path)
    except ConfigError as e:
        console.print(f"  [dim]({e})[/dim]")
        return
    if not backup_root.is_dir():
        console.print("  [dim](backups directory does not exist)[/dim]")
        return

    backups = list_backups(backup_root)
    if not backups:
        console.print("  [dim](no backups found)[/dim]")
    for path in backups:
        console.print(f"  - {path.name}")


def _print_restore_summary(result: RestoreResult) -> None:
    title = "Restore Plan (dry run)" if result.dry_run else "Restore Summary"
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Table", style="dim")
    table.add_column("Status")
    if result.dry_run:
        table.add_column("Delete", justify="right", style="red")
        table.add_column("Update", justify="right", style="yellow")
        table.add_column("Insert", justify="right", style="green")
    else:
        table.add_column("Records", justify="right")

    for name, outcome in result.tables.items():
        if outcome.skipped:
            status = "[yellow]skipped[/yellow]"
        elif outcome.success:
            status = "[green]ok[/green]"
        else:
            status = f"[red]{outcome.error}[/red]"

        if result.dry_run:
            table.add_row(
                name,
                status,
                str(outcome.planned_deletes or 0),
                str(outcome.planned_updates or 0),
                str(outcome.planned_inserts or 0),
            )
        else:
            table.add_row(name, status, str(outcome.count))

    console.print()
    console.print(table)
    if not result.dry_run:
        console.print(f"  Total records restored: {result.total_restored}")


async def _async_restore(args: argparse.Namespace) -> int:
    if not args.backup_dir:
        _print_available_backups(args.config)
        return 1

    overrides = {}
    if args.no_transaction:
        overrides["transactional"] = False

    config = _load(args, **overrides)
    if config is None:
        return 1

    adapter = get_adapter(config)
    try:
        result = await Loader(adapter, config).run(args.backup_dir, dry_run=args.dry_run)
    except NotFoundError as e:
        console.print(f"[bold red]x[/bold red] {e}")
        return 1
    finally:
        await adapter.close()

    _print_restore_summary(result)

    if not result.success:
        console.print(
            "\n[bold yellow]![/bold yellow] Some tables had errors during restore"
        )
        return 1

    if result.dry_run:
        console.print("\n[bold yellow]DRY RUN[/bold yellow] - No changes made.")
    else:
        console.print("\n[bold green]v[/bold green] Restore completed successfully")
    return 0


def restore_main(argv: list[str] | None = None) -> int:
    """Entry point for ``attendance-restore``."""
    parser = argparse.ArgumentParser(
        prog="attendance-restore",
        description="Restore tables from a backup directory",
    )
    parser.add_argument(
        "backup_dir",
        nargs="?",
        help="Backup directory (relative paths resolve against the base directory)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show planned deletes/updates/inserts without changing the store",
    )
    parser.add_argument(
        "--no-transaction",
        action="store_true",
        help="Do not wrap each table's delete+insert in a transaction",
    )
    _add_common_arguments(parser)
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        return asyncio.run(_async_restore(args))
    except Exception as e:
        console.print(f"[bold red]x[/bold red] Fatal error during restore: {e}")
        return 1


# ============================================================================
# Validate
# ============================================================================


def validate_main(argv: list[str] | None = None) -> int:
    """Entry point for ``attendance-validate``.

    Reads local files only. The configuration supplies paths; no store
    credentials are required.
    """
    parser = argparse.ArgumentParser(
        prog="attendance-validate",
        description="Check a backup directory for problems before restoring it",
    )
    parser.add_argument(
        "backup_dir",
        help="Backup directory (relative paths resolve against the base directory)",
    )
    _add_common_arguments(parser)
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        base_dir, backup_root = load_backup_paths(args.config)
    except ConfigError as e:
        console.print(f"[bold red]x[/bold red] {e}")
        return 1
    backup_dir = resolve_backup_dir(args.backup_dir, base_dir, backup_root)

    console.print(f"Validating: [cyan]{backup_dir}[/cyan]")
    report = validate_backup(backup_dir)

    if report.errors:
        console.print(f"\n[bold red]x[/bold red] Found {len(report.errors)} errors:")
        for error in report.errors:
            console.print(f"   - {error}")

    if report.warnings:
        console.print(f"\n[bold yellow]![/bold yellow] Found {len(report.warnings)} warnings:")
        for warning in report.warnings:
            console.print(f"   - {warning}")

    if report.valid:
        suffix = " (with warnings)" if report.warnings else ""
        console.print(f"\n[bold green]v[/bold green] Backup is valid{suffix}")
        return 0

    console.print("\n[bold red]x[/bold red] Backup is invalid")
    return 1


if __name__ == "__main__":
    sys.exit(backup_main())
