"""Offline integrity check of a backup directory.

This module is **sync** -- it only reads local JSON files, with no store
I/O.  Problems that would make a restore fail are errors; problems a
restore tolerates (missing files, orphaned link rows) are warnings.
"""

from collections import Counter
from pathlib import Path
from typing import Any, Iterable

from attendance_backup.backup.models import (
    DEFAULT_TABLES,
    BackupValidation,
    ReplaceAll,
    ReplaceByFilter,
    TableDump,
    TableSpec,
    UpsertByKey,
)
from attendance_backup.backup.storage import read_manifest, read_table_dump, table_dump_path
from attendance_backup.errors import NotFoundError, ParseError
from attendance_backup.keys import with_natural_key


def validate_backup(
    backup_dir: str | Path,
    tables: Iterable[TableSpec] = DEFAULT_TABLES,
) -> BackupValidation:
    """Validate a backup directory against the table descriptors.

    Args:
        backup_dir: Directory produced by the Dumper.
        tables: Table descriptors to validate against.

    Returns:
        ``BackupValidation`` with ``valid``, ``errors`` and ``warnings``.

    Example:
        report = validate_backup("backups/backup_2024-01-15_14-30-00")
        if not report.valid:
            raise SystemExit("\\n".join(report.errors))
    """
    backup_dir = Path(backup_dir)
    tables = list(tables)
    errors: list[str] = []
    warnings: list[str] = []

    if not backup_dir.is_dir():
        errors.append(f"Backup directory not found: {backup_dir}")
        return BackupValidation(valid=False, errors=errors, warnings=warnings)

    try:
        read_manifest(backup_dir)
    except NotFoundError:
        warnings.append("Missing backup_summary.json")
    except ParseError as e:
        warnings.append(f"Unreadable manifest: {e}")

    dumps: dict[str, TableDump] = {}
    for spec in tables:
        try:
            dump = read_table_dump(table_dump_path(backup_dir, spec.name))
        except NotFoundError:
            warnings.append(f"{spec.name}: backup file not found (restore will skip it)")
            continue
        except ParseError as e:
            errors.append(str(e))
            continue

        if dump.table != spec.name:
            errors.append(f"{spec.name}.json declares table '{dump.table}'")
        if dump.record_count != len(dump.data):
            errors.append(
                f"{spec.name}: record_count {dump.record_count} "
                f"but {len(dump.data)} rows in data"
            )
        _check_rows(spec, dump.data, errors, warnings)
        dumps[spec.name] = dump

    for spec in tables:
        if spec.name in dumps:
            _check_references(spec, dumps, warnings)

    return BackupValidation(valid=not errors, errors=errors, warnings=warnings)


def _check_rows(
    spec: TableSpec,
    rows: list[dict[str, Any]],
    errors: list[str],
    warnings: list[str],
) -> None:
    """Check rows against the table's merge strategy."""
    strategy = spec.strategy
    if isinstance(strategy, UpsertByKey):
        keys = []
        for index, row in enumerate(rows):
            key = with_natural_key(
                row, strategy.key_field, strategy.key_source_fields
            ).get(strategy.key_field)
            if key in (None, ""):
                errors.append(f"{spec.name} row {index} missing '{strategy.key_field}'")
            else:
                keys.append(key)
        for key, count in Counter(keys).items():
            if count > 1:
                warnings.append(
                    f"{spec.name}: {strategy.key_field} '{key}' appears {count} times "
                    f"(last one wins)"
                )
    elif isinstance(strategy, ReplaceByFilter):
        tuples = Counter(
            tuple(row.get(field) for field in strategy.filter_fields) for row in rows
        )
        for values, count in tuples.items():
            if count > 1:
                label = ", ".join(
                    f"{field}={value}" for field, value in zip(strategy.filter_fields, values)
                )
                errors.append(f"{spec.name}: duplicate rows for ({label})")
    elif isinstance(strategy, ReplaceAll):
        missing = sum(1 for row in rows if row.get(strategy.key_field) is None)
        if missing:
            warnings.append(
                f"{spec.name}: {missing} row(s) without '{strategy.key_field}'"
            )


def _check_references(
    spec: TableSpec,
    dumps: dict[str, TableDump],
    warnings: list[str],
) -> None:
    """Warn about rows referencing ids absent from the referenced table's dump."""
    for ref in spec.references:
        parent = dumps.get(ref.table)
        if parent is None:
            continue
        parent_ids = {row.get("id") for row in parent.data if row.get("id") is not None}
        orphans = [
            row.get(ref.field)
            for row in dumps[spec.name].data
            if row.get(ref.field) is not None and row.get(ref.field) not in parent_ids
        ]
        if orphans:
            warnings.append(
                f"{spec.name}: {len(orphans)} row(s) with {ref.field} "
                f"not in {ref.table} backup"
            )
