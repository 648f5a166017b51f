"""Restore tables from a backup directory written by the Dumper.

Tables are restored in the configured order (persons, attendance, then the
link rows that reference both).  Each table's merge strategy decides how
rows are reconciled with what is already in the store:

- ``UpsertByKey``: upsert on the natural key.  Replaying the same dump is
  idempotent.
- ``ReplaceByFilter``: delete existing rows matching each distinct filter
  tuple found in the dump, then insert the dump's rows.
- ``ReplaceAll``: delete every existing row, then insert the dump's rows.
  A restore fully supersedes the current link data.

The replace strategies are not atomic on stores without transactions: a
crash between the delete and the insert leaves the table short the deleted
rows.  When ``config.transactional`` is set and the client offers
``transaction()``, each table's writes run in a single transaction instead.

Concurrent restores against the same store are not coordinated; running two
at once is the caller's responsibility.

Usage:
    from attendance_backup.backup.loader import Loader

    result = await Loader(adapter, config).run("backups/backup_2024-01-15_14-30-00")
    print(result.total_restored, result.success)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, AsyncIterator

from attendance_backup.adapters.base import StoreClient
from attendance_backup.backup.models import (
    ReplaceAll,
    ReplaceByFilter,
    RestoreResult,
    TableRestoreResult,
    TableSpec,
    UpsertByKey,
)
from attendance_backup.backup.storage import (
    read_manifest,
    read_table_dump,
    table_dump_path,
)
from attendance_backup.errors import NotFoundError, ParseError, StoreError
from attendance_backup.keys import with_natural_key

if TYPE_CHECKING:
    from attendance_backup.config.models import BackupConfig

logger = logging.getLogger(__name__)


def distinct_filters(rows: list[dict[str, Any]], fields: list[str]) -> list[dict[str, Any]]:
    """Distinct ``{field: value}`` filters for ``fields`` across ``rows``.

    Order of first appearance is kept.

    Example:
        >>> distinct_filters(
        ...     [{"date": "2024-01-15", "activity_type": "Training", "total": 10},
        ...      {"date": "2024-01-15", "activity_type": "Training", "total": 12}],
        ...     ["date", "activity_type"],
        ... )
        [{'date': '2024-01-15', 'activity_type': 'Training'}]
    """
    seen: set[tuple] = set()
    filters: list[dict[str, Any]] = []
    for row in rows:
        values = tuple(row.get(field) for field in fields)
        if values in seen:
            continue
        seen.add(values)
        filters.append(dict(zip(fields, values)))
    return filters


class Loader:
    """Replay a backup directory into the store.

    Args:
        client: Store client to write to.
        config: Resolved configuration (table list, dry-run, transactional).
    """

    def __init__(self, client: StoreClient, config: BackupConfig) -> None:
        self._client = client
        self._config = config

    async def run(self, backup_dir: str | Path, dry_run: bool | None = None) -> RestoreResult:
        """Restore every configured table from ``backup_dir``.

        Args:
            backup_dir: Backup directory (resolved via
                ``config.resolve_backup_dir``).
            dry_run: Override ``config.dry_run``.  When True, only read-only
                queries are issued and planned counts are reported.

        Returns:
            ``RestoreResult`` with one entry per configured table.

        Raises:
            NotFoundError: If the backup directory does not exist.
        """
        dry_run = self._config.dry_run if dry_run is None else dry_run
        path = self._config.resolve_backup_dir(backup_dir)
        if not path.is_dir():
            raise NotFoundError(f"Backup directory not found: {path}")

        self._log_manifest(path)
        mode = "DRY RUN" if dry_run else "restore"
        logger.info(f"Starting {mode} from {path}")
        if self._config.transactional and not hasattr(self._client, "transaction"):
            logger.info("Store client has no transactions; replace steps are not atomic")

        result = RestoreResult(backup_dir=path, dry_run=dry_run)
        for spec in self._config.tables:
            result.tables[spec.name] = await self._restore_table(path, spec, dry_run)

        logger.info(f"Total records restored: {result.total_restored}")
        return result

    def _log_manifest(self, path: Path) -> None:
        try:
            manifest = read_manifest(path)
        except NotFoundError:
            logger.debug(f"No manifest in {path}")
            return
        except ParseError as e:
            logger.warning(f"Ignoring unreadable manifest: {e}")
            return
        logger.info(
            f"Backup date: {manifest.backup_date}, "
            f"total records: {manifest.total_records}"
        )

    async def _restore_table(
        self,
        backup_dir: Path,
        spec: TableSpec,
        dry_run: bool,
    ) -> TableRestoreResult:
        """Restore one table, capturing store and parse failures."""
        dump_file = table_dump_path(backup_dir, spec.name)
        if not dump_file.is_file():
            logger.warning(f"Skipping {spec.name}: backup file not found")
            return TableRestoreResult(success=True, skipped=True)

        logger.info(f"Restoring table: {spec.name}...")
        try:
            rows = read_table_dump(dump_file).data
            if not rows:
                logger.info(f"{spec.name}: no records to restore")
                return TableRestoreResult(success=True)

            if dry_run:
                return await self._plan(spec, rows)

            async with self._session() as client:
                await self._merge(client, spec, rows)
        except (StoreError, ParseError) as e:
            logger.error(f"Error restoring {spec.name}: {e}")
            return TableRestoreResult(success=False, error=str(e))

        logger.info(f"{spec.name}: {len(rows)} records restored")
        return TableRestoreResult(success=True, count=len(rows))

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[StoreClient]:
        """Yield a transaction-bound client when possible, else the plain client."""
        transaction = getattr(self._client, "transaction", None)
        if self._config.transactional and transaction is not None:
            async with transaction() as tx:
                yield tx
        else:
            yield self._client

    async def _merge(self, client: StoreClient, spec: TableSpec, rows: list[dict]) -> None:
        """Apply ``spec.strategy`` to write ``rows`` into ``spec.name``."""
        strategy = spec.strategy
        if isinstance(strategy, UpsertByKey):
            keyed = [
                with_natural_key(row, strategy.key_field, strategy.key_source_fields)
                for row in rows
            ]
            await client.upsert(spec.name, keyed, on_conflict=strategy.key_field)
        elif isinstance(strategy, ReplaceByFilter):
            for filters in distinct_filters(rows, strategy.filter_fields):
                await client.delete(spec.name, filters)
            await client.insert(spec.name, rows)
        elif isinstance(strategy, ReplaceAll):
            await client.delete_all(spec.name, key_field=strategy.key_field)
            await client.insert(spec.name, rows)
        else:
            raise TypeError(f"Unsupported merge strategy: {strategy!r}")

    async def _plan(self, spec: TableSpec, rows: list[dict]) -> TableRestoreResult:
        """Count what ``_merge`` would delete, update, and insert (read-only)."""
        strategy = spec.strategy
        deletes = updates = 0
        inserts = len(rows)

        if isinstance(strategy, UpsertByKey):
            existing = await self._client.select(spec.name, strategy.key_field)
            existing_keys = {r.get(strategy.key_field) for r in existing}
            keys = [
                with_natural_key(row, strategy.key_field, strategy.key_source_fields).get(
                    strategy.key_field
                )
                for row in rows
            ]
            updates = sum(1 for key in keys if key in existing_keys)
            inserts = len(rows) - updates
        elif isinstance(strategy, ReplaceByFilter):
            for filters in distinct_filters(rows, strategy.filter_fields):
                deletes += len(await self._client.select(spec.name, "*", filters))
        elif isinstance(strategy, ReplaceAll):
            deletes = len(await self._client.select(spec.name, strategy.key_field))
        else:
            raise TypeError(f"Unsupported merge strategy: {strategy!r}")

        logger.info(
            f"{spec.name}: would delete {deletes}, update {updates}, insert {inserts}"
        )
        return TableRestoreResult(
            success=True,
            planned_deletes=deletes,
            planned_updates=updates,
            planned_inserts=inserts,
        )
