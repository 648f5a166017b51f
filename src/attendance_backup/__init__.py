"""attendance-backup: JSON backup and restore for the club attendance store.

Snapshots the ``persons``, ``attendance`` and ``attendance_persons`` tables
to a timestamped directory and replays them with per-table merge rules.

Usage:
    from attendance_backup import load_config, get_adapter, Dumper, Loader

    config = load_config()
    adapter = get_adapter(config)
    run = await Dumper(adapter, config).run()
    result = await Loader(adapter, config).run(run.backup_dir)
"""

__version__ = "0.1.0"

# Adapters
from attendance_backup.adapters.base import StoreClient

# Config
from attendance_backup.config.loader import load_config
from attendance_backup.config.models import BackupConfig

# Factory
from attendance_backup.factory import get_adapter

# Backup / restore
from attendance_backup.backup import (
    DEFAULT_TABLES,
    Dumper,
    Loader,
    TableSpec,
    validate_backup,
)

# Errors
from attendance_backup.errors import (
    BackupError,
    ConfigError,
    NotFoundError,
    ParseError,
    StoreError,
)

__all__ = [
    # Adapters
    "StoreClient",
    # Config
    "load_config",
    "BackupConfig",
    # Factory
    "get_adapter",
    # Backup / restore
    "Dumper",
    "Loader",
    "validate_backup",
    "TableSpec",
    "DEFAULT_TABLES",
    # Errors
    "BackupError",
    "ConfigError",
    "NotFoundError",
    "StoreError",
    "ParseError",
]
