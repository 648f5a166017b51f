"""Tests for the Dumper: file layout, manifest, and partial-failure tolerance."""

import json
import re
from unittest.mock import AsyncMock

import pytest

from attendance_backup.backup.dumper import Dumper
from attendance_backup.backup.storage import MANIFEST_FILE
from attendance_backup.config.models import BackupConfig
from attendance_backup.errors import StoreError

from conftest import SUPABASE_URL, InMemoryStore

ISO_UTC = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


class TestDumpScenario:
    """Single person, empty attendance tables."""

    @pytest.fixture
    def store(self) -> InMemoryStore:
        return InMemoryStore(
            {
                "persons": [{"pass_number": "abc", "first_name": "Ana"}],
                "attendance": [],
                "attendance_persons": [],
            }
        )

    async def test_persons_file_contents(self, store, config):
        run = await Dumper(store, config).run()

        with open(run.backup_dir / "persons.json", encoding="utf-8") as f:
            persons = json.load(f)

        assert persons["table"] == "persons"
        assert persons["record_count"] == 1
        assert persons["data"] == [{"pass_number": "abc", "first_name": "Ana"}]
        assert ISO_UTC.match(persons["backup_date"])

    async def test_file_key_order(self, store, config):
        run = await Dumper(store, config).run()

        with open(run.backup_dir / "persons.json", encoding="utf-8") as f:
            persons = json.load(f)

        assert list(persons.keys()) == ["table", "backup_date", "record_count", "data"]

    async def test_manifest_totals(self, store, config):
        run = await Dumper(store, config).run()

        with open(run.backup_dir / MANIFEST_FILE, encoding="utf-8") as f:
            manifest = json.load(f)

        assert manifest["total_records"] == 1
        assert manifest["supabase_url"] == SUPABASE_URL
        assert manifest["tables"] == {
            "persons": {"success": True, "count": 1},
            "attendance": {"success": True, "count": 0},
            "attendance_persons": {"success": True, "count": 0},
        }
        assert ISO_UTC.match(manifest["backup_date"])
        assert run.success

    async def test_empty_tables_written(self, store, config):
        run = await Dumper(store, config).run()

        for table in ("attendance", "attendance_persons"):
            with open(run.backup_dir / f"{table}.json", encoding="utf-8") as f:
                dump = json.load(f)
            assert dump["record_count"] == 0
            assert dump["data"] == []

    async def test_directory_name_and_location(self, store, config):
        run = await Dumper(store, config).run()

        assert run.backup_dir.parent == config.backup_root
        assert re.match(r"^backup_\d{4}-\d{2}-\d{2}_\d{2}-\d{2}-\d{2}$", run.backup_dir.name)


class TestDumpOrderAndFidelity:
    async def test_tables_selected_in_fixed_order(self, sample_tables, config):
        store = InMemoryStore(sample_tables)
        await Dumper(store, config).run()

        assert store.calls == [
            ("select", "persons"),
            ("select", "attendance"),
            ("select", "attendance_persons"),
        ]

    async def test_rows_written_verbatim(self, sample_tables, config):
        store = InMemoryStore(sample_tables)
        run = await Dumper(store, config).run()

        for table, rows in sample_tables.items():
            with open(run.backup_dir / f"{table}.json", encoding="utf-8") as f:
                assert json.load(f)["data"] == rows

    async def test_non_ascii_kept(self, sample_tables, config):
        store = InMemoryStore(sample_tables)
        run = await Dumper(store, config).run()

        text = (run.backup_dir / "persons.json").read_text(encoding="utf-8")
        assert "Müller" in text
        assert '\n  "table": "persons"' in text

    async def test_two_runs_do_not_collide(self, sample_tables, config):
        store = InMemoryStore(sample_tables)
        first = await Dumper(store, config).run()
        second = await Dumper(store, config).run()

        assert first.backup_dir != second.backup_dir
        assert (first.backup_dir / "persons.json").exists()
        assert (second.backup_dir / "persons.json").exists()


class TestPartialFailure:
    """A failing table is recorded and does not stop the others."""

    async def test_other_tables_still_dumped(self, sample_tables, config):
        store = InMemoryStore(sample_tables, fail_on={("select", "attendance")})
        run = await Dumper(store, config).run()

        tables = run.manifest.tables
        assert tables["persons"].success is True
        assert tables["attendance"].success is False
        assert tables["attendance_persons"].success is True
        assert not run.success
        assert run.manifest.failed_tables == ["attendance"]

    async def test_manifest_records_error(self, sample_tables, config):
        store = InMemoryStore(sample_tables, fail_on={("select", "attendance")})
        run = await Dumper(store, config).run()

        with open(run.backup_dir / MANIFEST_FILE, encoding="utf-8") as f:
            manifest = json.load(f)

        assert manifest["tables"]["attendance"] == {
            "success": False,
            "error": "attendance: simulated select failure",
        }
        assert manifest["tables"]["persons"] == {"success": True, "count": 2}
        assert manifest["total_records"] == 2 + 3

    async def test_failed_table_has_no_file(self, sample_tables, config):
        store = InMemoryStore(sample_tables, fail_on={("select", "attendance")})
        run = await Dumper(store, config).run()

        assert not (run.backup_dir / "attendance.json").exists()
        assert (run.backup_dir / "attendance_persons.json").exists()

    async def test_all_tables_fail(self, config):
        adapter = AsyncMock()
        adapter.select = AsyncMock(side_effect=StoreError("connection refused"))

        run = await Dumper(adapter, config).run()

        assert run.manifest.total_records == 0
        assert all(not r.success for r in run.manifest.tables.values())
        assert (run.backup_dir / MANIFEST_FILE).exists()

    async def test_unexpected_error_propagates(self, config):
        adapter = AsyncMock()
        adapter.select = AsyncMock(side_effect=RuntimeError("bug"))

        with pytest.raises(RuntimeError):
            await Dumper(adapter, config).run()


class TestConfiguredTables:
    async def test_custom_table_list(self, tmp_path):
        from attendance_backup.backup.models import ReplaceAll, TableSpec

        config = BackupConfig(
            store_url=SUPABASE_URL,
            base_dir=tmp_path,
            tables=[TableSpec(name="teams", strategy=ReplaceAll())],
        )
        store = InMemoryStore({"teams": [{"id": 1, "name": "U12"}]})
        run = await Dumper(store, config).run()

        assert list(run.manifest.tables) == ["teams"]
        assert (run.backup_dir / "teams.json").exists()
