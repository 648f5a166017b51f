"""Pydantic model for the resolved backup configuration."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from attendance_backup.backup.models import DEFAULT_TABLES, TableSpec
from attendance_backup.backup.storage import resolve_backup_dir


class BackupConfig(BaseModel):
    """Everything the Dumper and Loader need, built once at startup.

    Relative ``backup_root`` values are resolved against ``base_dir``.
    """

    provider: Literal["supabase", "postgres"] = "supabase"
    store_url: str
    store_key: str = ""
    tables: list[TableSpec] = Field(default_factory=lambda: list(DEFAULT_TABLES))
    base_dir: Path = Field(default_factory=Path.cwd)
    backup_root: Path = Path("backups")
    dry_run: bool = False
    transactional: bool = True  # only honoured by adapters with transaction()

    @model_validator(mode="after")
    def _resolve_backup_root(self) -> "BackupConfig":
        if not self.backup_root.is_absolute():
            self.backup_root = self.base_dir / self.backup_root
        return self

    @property
    def store_endpoint(self) -> str:
        """Store identifier recorded in the backup manifest (no secrets)."""
        if self.provider == "postgres":
            # local import keeps sqlalchemy out of the supabase-only path
            from sqlalchemy.exc import ArgumentError

            from attendance_backup.adapters.postgres import mask_database_url

            try:
                return mask_database_url(self.store_url)
            except ArgumentError:
                return "postgres"
        return self.store_url

    def resolve_backup_dir(self, path: str | Path) -> Path:
        """Resolve a user-supplied backup directory (see ``storage.resolve_backup_dir``)."""
        return resolve_backup_dir(path, self.base_dir, self.backup_root)
