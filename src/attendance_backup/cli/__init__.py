"""Command-line entry points.

Commands:
    attendance-backup    - Dump all tables to a new backup directory
    attendance-restore   - Restore tables from a backup directory
    attendance-validate  - Check a backup directory without touching the store
"""

from attendance_backup.cli.backup import backup_main, restore_main, validate_main

__all__ = ["backup_main", "restore_main", "validate_main"]
