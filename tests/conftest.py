"""Shared fixtures: an in-memory store and a config pointing at ``tmp_path``."""

import copy
from contextlib import asynccontextmanager
from pathlib import Path

import pytest

from attendance_backup.backup.models import TableDump
from attendance_backup.backup.storage import write_table_dump
from attendance_backup.config.models import BackupConfig
from attendance_backup.errors import StoreError

SUPABASE_URL = "https://club.supabase.co"
SUPABASE_KEY = "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9.test"


class InMemoryStore:
    """Minimal ``StoreClient`` backed by dicts.

    Args:
        tables: Initial rows per table.
        fail_on: ``(operation, table)`` pairs that raise ``StoreError``.
            Use ``"*"`` as the operation to fail every call on a table.
        unique: Per-table column tuples enforced on insert.
    """

    def __init__(
        self,
        tables: dict[str, list[dict]] | None = None,
        fail_on: set[tuple[str, str]] | None = None,
        unique: dict[str, tuple[str, ...]] | None = None,
    ) -> None:
        self.tables: dict[str, list[dict]] = {
            name: [dict(row) for row in rows] for name, rows in (tables or {}).items()
        }
        self.fail_on = set(fail_on or ())
        self.unique = dict(unique or {})
        self.calls: list[tuple[str, str]] = []
        self.closed = False

    def _check(self, operation: str, table: str) -> None:
        self.calls.append((operation, table))
        if (operation, table) in self.fail_on or ("*", table) in self.fail_on:
            raise StoreError(f"{table}: simulated {operation} failure")

    @staticmethod
    def _matches(row: dict, filters: dict | None) -> bool:
        return all(row.get(k) == v for k, v in (filters or {}).items())

    async def select(self, table, columns="*", filters=None):
        self._check("select", table)
        rows = [r for r in self.tables.get(table, []) if self._matches(r, filters)]
        if columns.strip() != "*":
            names = [c.strip() for c in columns.split(",")]
            return [{name: r.get(name) for name in names} for r in rows]
        return [dict(r) for r in rows]

    async def insert(self, table, rows):
        self._check("insert", table)
        existing = self.tables.setdefault(table, [])
        unique = self.unique.get(table)
        if unique:
            seen = {tuple(r.get(c) for c in unique) for r in existing}
            for row in rows:
                key = tuple(row.get(c) for c in unique)
                if key in seen:
                    raise StoreError(f"{table}: duplicate key value violates unique constraint")
                seen.add(key)
        created = [dict(row) for row in rows]
        existing.extend(created)
        return [dict(row) for row in created]

    async def upsert(self, table, rows, on_conflict):
        self._check("upsert", table)
        existing = self.tables.setdefault(table, [])
        for row in rows:
            match = next(
                (r for r in existing if r.get(on_conflict) == row.get(on_conflict)),
                None,
            )
            if match is None:
                existing.append(dict(row))
            else:
                match.update(row)
        return [dict(row) for row in rows]

    async def delete(self, table, filters):
        self._check("delete", table)
        self.tables[table] = [
            r for r in self.tables.get(table, []) if not self._matches(r, filters)
        ]

    async def delete_all(self, table, key_field="id"):
        self._check("delete_all", table)
        self.tables[table] = [
            r for r in self.tables.get(table, []) if r.get(key_field) is None
        ]

    async def close(self):
        self.closed = True


class TransactionalStore(InMemoryStore):
    """``InMemoryStore`` whose ``transaction()`` rolls back on error."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.transactions = 0

    @asynccontextmanager
    async def transaction(self):
        self.transactions += 1
        snapshot = copy.deepcopy(self.tables)
        try:
            yield self
        except Exception:
            self.tables = snapshot
            raise


def write_backup(backup_dir: Path, tables: dict[str, list[dict]]) -> Path:
    """Write one ``<table>.json`` per entry of ``tables`` into ``backup_dir``."""
    backup_dir.mkdir(parents=True, exist_ok=True)
    for table, rows in tables.items():
        write_table_dump(
            backup_dir,
            TableDump(
                table=table,
                backup_date="2024-01-15T14:30:00.000Z",
                record_count=len(rows),
                data=rows,
            ),
        )
    return backup_dir


def rows_as_set(rows: list[dict]) -> set[tuple]:
    """Order-insensitive representation of a row list."""
    return {tuple(sorted(row.items())) for row in rows}


@pytest.fixture
def config(tmp_path: Path) -> BackupConfig:
    return BackupConfig(
        store_url=SUPABASE_URL,
        store_key=SUPABASE_KEY,
        base_dir=tmp_path,
    )


@pytest.fixture
def sample_tables() -> dict[str, list[dict]]:
    return {
        "persons": [
            {"id": 1, "pass_number": "abc", "first_name": "Ana", "last_name": "Silva",
             "team": "U12", "birth_date": "2013-04-02"},
            {"id": 2, "pass_number": "def", "first_name": "Lena", "last_name": "Müller",
             "team": "U10", "birth_date": None},
        ],
        "attendance": [
            {"id": 10, "date": "2024-01-15", "activity_type": "Training",
             "total": 10, "absent": 2},
            {"id": 11, "date": "2024-01-17", "activity_type": "Match",
             "total": 14, "absent": 0},
        ],
        "attendance_persons": [
            {"id": 100, "attendance_id": 10, "person_id": 1},
            {"id": 101, "attendance_id": 10, "person_id": 2},
            {"id": 102, "attendance_id": 11, "person_id": 1},
        ],
    }
