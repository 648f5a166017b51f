"""Build a ``BackupConfig`` from the environment and an optional TOML file.

Precedence (highest first): keyword overrides, environment variables,
``backup.toml``, model defaults.  Store credentials only ever come from the
environment (or ``.env``).

Example ``backup.toml``::

    [backup]
    provider = "supabase"
    backup_root = "backups"
    transactional = true
"""

import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from attendance_backup.config.models import BackupConfig
from attendance_backup.config.settings import StoreSettings
from attendance_backup.errors import ConfigError

CONFIG_FILE_NAME = "backup.toml"

# Supabase API keys are JWTs ("eyJ...") or, for newer projects, secret keys
_SUPABASE_KEY_PREFIXES = ("eyJ", "sb_secret_")


def check_supabase_credentials(url: str, key: str) -> None:
    """Reject missing or malformed Supabase credentials before any network call.

    Raises:
        ConfigError: If the URL or key is missing or has the wrong shape.
    """
    missing = []
    if not url:
        missing.append("SUPABASE_URL")
    if not key:
        missing.append("SUPABASE_SERVICE_ROLE_KEY (or SUPABASE_KEY)")
    if missing:
        raise ConfigError(
            "Supabase credentials not found. Set: " + ", ".join(missing)
        )

    if not url.startswith(("https://", "http://")):
        raise ConfigError(
            f"Invalid SUPABASE_URL '{url}': expected https://<project>.supabase.co"
        )

    if not key.startswith(_SUPABASE_KEY_PREFIXES):
        raise ConfigError(
            "Invalid Supabase key format. Supabase keys should start with \"eyJ...\""
        )


def _load_toml(config_path: Path) -> dict[str, Any]:
    """Read the ``[backup]`` table of a TOML config file."""
    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid config file {config_path}: {e}") from e

    section = data.get("backup", {})
    if not isinstance(section, dict):
        raise ConfigError(f"Invalid config file {config_path}: [backup] must be a table")
    return section


def _resolve_base_dir(settings: StoreSettings, override: Any = None) -> Path:
    return Path(override or settings.home or Path.cwd())


def _file_options(config_path: Path | None, base_dir: Path) -> dict[str, Any]:
    """Options from an explicit config file, else ``backup.toml`` in ``base_dir``."""
    if config_path is not None:
        if not config_path.is_file():
            raise ConfigError(f"Config file not found: {config_path}")
        return _load_toml(config_path)
    if (base_dir / CONFIG_FILE_NAME).is_file():
        return _load_toml(base_dir / CONFIG_FILE_NAME)
    return {}


def load_backup_paths(
    config_path: Path | None = None,
    settings: StoreSettings | None = None,
) -> tuple[Path, Path]:
    """Resolve the base directory and backups root without touching credentials.

    Used by commands that only read local files (listing, validation).

    Returns:
        ``(base_dir, backup_root)`` with ``backup_root`` made absolute.

    Raises:
        ConfigError: If the config file is missing or invalid.
    """
    settings = settings or StoreSettings()
    base_dir = _resolve_base_dir(settings)
    raw_root = _file_options(config_path, base_dir).get(
        "backup_root", BackupConfig.model_fields["backup_root"].default
    )
    if not isinstance(raw_root, (str, Path)):
        raise ConfigError(f"Invalid backup_root: {raw_root!r}")
    backup_root = Path(raw_root)
    if not backup_root.is_absolute():
        backup_root = base_dir / backup_root
    return base_dir, backup_root


def load_config(
    config_path: Path | None = None,
    settings: StoreSettings | None = None,
    **overrides: Any,
) -> BackupConfig:
    """Load and validate the backup configuration.

    Args:
        config_path: Explicit TOML file.  When ``None``, ``backup.toml`` in
            the base directory is used if it exists.
        settings: Pre-built environment settings (tests); read from the
            environment when ``None``.
        **overrides: ``BackupConfig`` field values that win over everything
            else (e.g. ``dry_run=True`` from the CLI).

    Returns:
        Validated ``BackupConfig``.

    Raises:
        ConfigError: If the config file is missing or invalid, or the store
            credentials are missing or malformed.
    """
    settings = settings or StoreSettings()

    base_dir = _resolve_base_dir(settings, overrides.pop("base_dir", None))
    file_options = _file_options(config_path, base_dir)

    options: dict[str, Any] = {
        key: file_options[key]
        for key in ("provider", "backup_root", "transactional")
        if key in file_options
    }
    if settings.provider:
        options["provider"] = settings.provider
    if settings.transactional is not None:
        options["transactional"] = settings.transactional
    options.update(overrides)

    provider = options.get("provider", "supabase")
    if provider == "postgres":
        if not settings.database_url:
            raise ConfigError("DATABASE_URL must be set when provider is 'postgres'")
        store_url, store_key = settings.database_url, ""
    else:
        check_supabase_credentials(settings.supabase_url, settings.supabase_key)
        store_url, store_key = settings.supabase_url, settings.supabase_key

    try:
        return BackupConfig(
            store_url=store_url,
            store_key=store_key,
            base_dir=base_dir,
            **options,
        )
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
