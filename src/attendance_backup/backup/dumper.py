"""Point-in-time JSON snapshot of the configured tables.

The Dumper selects every row of each table in the configured order and
writes one ``<table>.json`` per table into a new timestamped directory,
followed by ``backup_summary.json``.  A table that fails is recorded in the
manifest and the run moves on to the next table, so a partial backup still
keeps everything that could be read.

Usage:
    from attendance_backup.backup.dumper import Dumper

    run = await Dumper(adapter, config).run()
    if not run.success:
        print("failed:", run.manifest.failed_tables)
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from attendance_backup.adapters.base import StoreClient
from attendance_backup.backup.models import (
    BackupManifest,
    BackupRun,
    TableBackupResult,
    TableDump,
)
from attendance_backup.backup.storage import (
    create_backup_dir,
    iso_timestamp,
    write_manifest,
    write_table_dump,
)
from attendance_backup.errors import StoreError

if TYPE_CHECKING:
    from attendance_backup.config.models import BackupConfig

logger = logging.getLogger(__name__)


class Dumper:
    """Dump every configured table to a fresh backup directory.

    Args:
        client: Store client to read from.
        config: Resolved configuration (table list, backup root, endpoint).
    """

    def __init__(self, client: StoreClient, config: BackupConfig) -> None:
        self._client = client
        self._config = config

    async def run(self) -> BackupRun:
        """Dump all tables sequentially and write the manifest.

        Returns:
            ``BackupRun`` with the backup directory and manifest.  ``success``
            is False if any table failed; the other tables are still on disk.

        Raises:
            OSError: If the backup directory cannot be created.
        """
        backup_dir = create_backup_dir(self._config.backup_root, datetime.now())
        logger.info(f"Backup directory: {backup_dir}")

        results: dict[str, TableBackupResult] = {}
        for spec in self._config.tables:
            results[spec.name] = await self._dump_table(backup_dir, spec.name)

        manifest = BackupManifest(
            backup_date=iso_timestamp(),
            store_url=self._config.store_endpoint,
            tables=results,
            total_records=sum(r.count or 0 for r in results.values()),
        )
        write_manifest(backup_dir, manifest)

        logger.info(
            f"Backup finished: {manifest.total_records} records, "
            f"{len(manifest.failed_tables)} failed table(s)"
        )
        return BackupRun(backup_dir=backup_dir, manifest=manifest)

    async def _dump_table(self, backup_dir: Path, table: str) -> TableBackupResult:
        """Select all rows of ``table`` and write them verbatim."""
        logger.info(f"Backing up table: {table}...")
        try:
            rows = await self._client.select(table, "*")
            dump = TableDump(
                table=table,
                backup_date=iso_timestamp(),
                record_count=len(rows),
                data=rows,
            )
            write_table_dump(backup_dir, dump)
        except (StoreError, OSError) as e:
            logger.error(f"Error backing up {table}: {e}")
            return TableBackupResult(success=False, error=str(e))

        logger.info(f"{table}: {dump.record_count} records saved")
        return TableBackupResult(success=True, count=dump.record_count)
