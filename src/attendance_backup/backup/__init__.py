"""Backup and restore of the attendance tables.

The table list and each table's merge strategy are declared as data
(``TableSpec``); the ``Dumper`` and ``Loader`` interpret them uniformly.

Usage:
    from attendance_backup.backup import Dumper, Loader, validate_backup
"""

from attendance_backup.backup.dumper import Dumper
from attendance_backup.backup.loader import Loader
from attendance_backup.backup.models import (
    DEFAULT_TABLES,
    BackupManifest,
    BackupRun,
    BackupValidation,
    ForeignKey,
    ReplaceAll,
    ReplaceByFilter,
    RestoreResult,
    TableBackupResult,
    TableDump,
    TableRestoreResult,
    TableSpec,
    UpsertByKey,
)
from attendance_backup.backup.storage import list_backups
from attendance_backup.backup.validate import validate_backup

__all__ = [
    "Dumper",
    "Loader",
    "validate_backup",
    "list_backups",
    "DEFAULT_TABLES",
    "TableSpec",
    "UpsertByKey",
    "ReplaceByFilter",
    "ReplaceAll",
    "ForeignKey",
    "TableDump",
    "TableBackupResult",
    "BackupManifest",
    "BackupRun",
    "TableRestoreResult",
    "RestoreResult",
    "BackupValidation",
]
