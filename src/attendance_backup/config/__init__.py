"""Configuration: environment settings, TOML file, and the resolved config model.

Usage:
    >>> from attendance_backup.config import load_config, BackupConfig
"""

from attendance_backup.config.loader import (
    check_supabase_credentials,
    load_backup_paths,
    load_config,
)
from attendance_backup.config.models import BackupConfig
from attendance_backup.config.settings import StoreSettings

__all__ = [
    "load_config",
    "load_backup_paths",
    "check_supabase_credentials",
    "BackupConfig",
    "StoreSettings",
]
