"""On-disk layout of a backup directory.

A backup is a directory named ``backup_<YYYY-MM-DD>_<HH-MM-SS>`` (local
capture time) holding one ``<table>.json`` per table plus
``backup_summary.json``.  Files are pretty-printed JSON with a two-space
indent and non-ASCII characters kept as-is.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from attendance_backup.backup.models import BackupManifest, TableDump
from attendance_backup.errors import NotFoundError, ParseError

BACKUP_DIR_PREFIX = "backup_"
MANIFEST_FILE = "backup_summary.json"


def iso_timestamp(moment: datetime | None = None) -> str:
    """Format a UTC timestamp as ``2024-01-15T14:30:00.123Z``."""
    moment = moment or datetime.now(timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def backup_dir_name(moment: datetime) -> str:
    """Directory name for a backup captured at ``moment`` (local time)."""
    return f"{BACKUP_DIR_PREFIX}{moment:%Y-%m-%d_%H-%M-%S}"


def create_backup_dir(backup_root: Path, moment: datetime) -> Path:
    """Create a fresh backup directory under ``backup_root``.

    Never reuses an existing directory: a second run within the same second
    gets ``_2``, ``_3``... appended to the name.

    Raises:
        OSError: If the directory cannot be created.
    """
    backup_root.mkdir(parents=True, exist_ok=True)
    name = backup_dir_name(moment)
    candidate = backup_root / name
    suffix = 1
    while True:
        try:
            candidate.mkdir()
            return candidate
        except FileExistsError:
            suffix += 1
            candidate = backup_root / f"{name}_{suffix}"


def table_dump_path(backup_dir: Path, table: str) -> Path:
    return backup_dir / f"{table}.json"


def _write_json(path: Path, payload: Any) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)


def _read_json(path: Path) -> Any:
    if not path.is_file():
        raise NotFoundError(f"Backup file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ParseError(f"Invalid JSON in {path.name}: {e}") from e


def write_table_dump(backup_dir: Path, dump: TableDump) -> Path:
    """Write ``dump`` to ``<backup_dir>/<table>.json`` and return the path."""
    path = table_dump_path(backup_dir, dump.table)
    _write_json(path, dump.model_dump())
    return path


def read_table_dump(path: Path) -> TableDump:
    """Load a per-table backup file.

    Raises:
        NotFoundError: If the file does not exist.
        ParseError: If the file is not valid JSON or not a table dump.
    """
    payload = _read_json(path)
    if not isinstance(payload, dict):
        raise ParseError(f"{path.name}: expected a JSON object")
    if payload.get("data") is None:
        payload = {**payload, "data": []}
    try:
        return TableDump.model_validate(payload)
    except ValidationError as e:
        raise ParseError(f"{path.name}: {e.error_count()} invalid field(s): {e}") from e


def write_manifest(backup_dir: Path, manifest: BackupManifest) -> Path:
    """Write ``backup_summary.json`` and return its path.

    Per-table results omit ``count`` or ``error`` when they do not apply.
    """
    path = backup_dir / MANIFEST_FILE
    _write_json(path, manifest.model_dump(by_alias=True, exclude_none=True))
    return path


def read_manifest(backup_dir: Path) -> BackupManifest:
    """Load ``backup_summary.json`` from ``backup_dir``.

    Raises:
        NotFoundError: If the manifest does not exist.
        ParseError: If the manifest is not valid JSON or has the wrong shape.
    """
    path = backup_dir / MANIFEST_FILE
    payload = _read_json(path)
    try:
        return BackupManifest.model_validate(payload)
    except ValidationError as e:
        raise ParseError(f"{path.name}: {e}") from e


def list_backups(backup_root: Path) -> list[Path]:
    """Backup directories under ``backup_root``, newest first."""
    if not backup_root.is_dir():
        return []
    return sorted(
        (p for p in backup_root.iterdir() if p.is_dir()),
        key=lambda p: p.name,
        reverse=True,
    )


def resolve_backup_dir(path: str | Path, base_dir: Path, backup_root: Path) -> Path:
    """Resolve a user-supplied backup directory.

    Absolute paths are used as-is.  Relative paths resolve against
    ``base_dir``; a bare directory name that only exists under
    ``backup_root`` (as printed by the backup listing) resolves there.
    """
    path = Path(path).expanduser()
    if path.is_absolute():
        return path
    candidate = base_dir / path
    if not candidate.exists() and (backup_root / path).exists():
        return backup_root / path
    return candidate
