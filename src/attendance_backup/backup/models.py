"""Table descriptors and backup/restore result models.

Each table declares how the ``Loader`` merges its rows back into the store
as a tagged variant (``kind``), so restore logic never branches on table
names.  The default table list mirrors the attendance schema: people first,
then sessions, then the link rows that reference both.

Usage:
    from attendance_backup.backup.models import (
        TableSpec, UpsertByKey, ReplaceByFilter, ReplaceAll, ForeignKey,
    )

    tables = [
        TableSpec(name="authors", strategy=UpsertByKey(key_field="slug")),
        TableSpec(
            name="reviews",
            strategy=ReplaceAll(),
            references=[ForeignKey(table="authors", field="author_id")],
        ),
    ]
"""

from pathlib import Path
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Merge strategies
# ============================================================================


class UpsertByKey(BaseModel):
    """Upsert every row on a natural key column.

    When ``key_source_fields`` is set, rows missing the key get one derived
    from those fields (see ``attendance_backup.keys.derive_natural_key``).
    """

    kind: Literal["upsert_by_key"] = "upsert_by_key"
    key_field: str
    key_source_fields: list[str] = Field(default_factory=list)


class ReplaceByFilter(BaseModel):
    """Delete rows matching each distinct filter tuple in the dump, then insert.

    Used where the store enforces a composite unique key that the client's
    upsert primitive cannot target.
    """

    kind: Literal["replace_by_filter"] = "replace_by_filter"
    filter_fields: list[str]


class ReplaceAll(BaseModel):
    """Delete every existing row, then insert the dump's rows."""

    kind: Literal["replace_all"] = "replace_all"
    key_field: str = "id"


MergeStrategy = Annotated[
    Union[UpsertByKey, ReplaceByFilter, ReplaceAll],
    Field(discriminator="kind"),
]


class ForeignKey(BaseModel):
    """Reference from a column in this table to another table's ``id``."""

    table: str          # referenced table name
    field: str          # referencing column in this table


class TableSpec(BaseModel):
    """A table taking part in backup and restore."""

    name: str
    strategy: MergeStrategy
    references: list[ForeignKey] = Field(default_factory=list)


DEFAULT_TABLES: tuple[TableSpec, ...] = (
    TableSpec(
        name="persons",
        strategy=UpsertByKey(
            key_field="pass_number",
            key_source_fields=["first_name", "last_name", "team"],
        ),
    ),
    TableSpec(
        name="attendance",
        strategy=ReplaceByFilter(filter_fields=["date", "activity_type"]),
    ),
    TableSpec(
        name="attendance_persons",
        strategy=ReplaceAll(key_field="id"),
        references=[
            ForeignKey(table="attendance", field="attendance_id"),
            ForeignKey(table="persons", field="person_id"),
        ],
    ),
)


# ============================================================================
# On-disk documents
# ============================================================================


class TableDump(BaseModel):
    """One table's rows as captured, serialized to ``<table>.json``."""

    table: str
    backup_date: str
    record_count: int
    data: list[dict[str, Any]] = Field(default_factory=list)


class TableBackupResult(BaseModel):
    """Outcome of dumping a single table (``count`` xor ``error``)."""

    success: bool
    count: int | None = None
    error: str | None = None


class BackupManifest(BaseModel):
    """Summary of one backup run, serialized to ``backup_summary.json``."""

    model_config = ConfigDict(populate_by_name=True)

    backup_date: str
    store_url: str = Field(alias="supabase_url")
    tables: dict[str, TableBackupResult] = Field(default_factory=dict)
    total_records: int = 0

    @property
    def success(self) -> bool:
        """True when every table was dumped."""
        return all(result.success for result in self.tables.values())

    @property
    def failed_tables(self) -> list[str]:
        return [name for name, result in self.tables.items() if not result.success]


# ============================================================================
# Run results
# ============================================================================


class BackupRun(BaseModel):
    """Result of ``Dumper.run()``: where the backup went and what it holds."""

    backup_dir: Path
    manifest: BackupManifest

    @property
    def success(self) -> bool:
        return self.manifest.success


class TableRestoreResult(BaseModel):
    """Outcome of restoring a single table.

    The ``planned_*`` counts are only filled in during a dry run.
    """

    success: bool
    skipped: bool = False
    count: int = 0
    error: str | None = None
    planned_deletes: int | None = None
    planned_updates: int | None = None
    planned_inserts: int | None = None


class RestoreResult(BaseModel):
    """Result of ``Loader.run()`` across all tables."""

    backup_dir: Path
    dry_run: bool = False
    tables: dict[str, TableRestoreResult] = Field(default_factory=dict)

    @property
    def total_restored(self) -> int:
        return sum(result.count for result in self.tables.values())

    @property
    def success(self) -> bool:
        """True when no table failed.  Skipped tables are not failures."""
        return all(result.success for result in self.tables.values())

    @property
    def skipped_tables(self) -> list[str]:
        return [name for name, result in self.tables.items() if result.skipped]


class BackupValidation(BaseModel):
    """Report produced by ``validate_backup()``."""

    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
