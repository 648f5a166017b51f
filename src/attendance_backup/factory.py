"""Store client factory.

Chooses the adapter for the configured provider.  Credentials were already
checked by ``load_config()``, so creating an adapter performs no network I/O;
the first query opens the connection.
"""

from attendance_backup.adapters.base import StoreClient
from attendance_backup.adapters.postgres import AsyncPostgresAdapter
from attendance_backup.adapters.supabase import AsyncSupabaseAdapter
from attendance_backup.config.models import BackupConfig
from attendance_backup.errors import ConfigError


def get_adapter(config: BackupConfig) -> StoreClient:
    """Create the store client for ``config.provider``.

    Args:
        config: Resolved backup configuration.

    Returns:
        ``AsyncSupabaseAdapter`` or ``AsyncPostgresAdapter``.

    Raises:
        ConfigError: If the provider is unknown.

    Example:
        >>> adapter = get_adapter(load_config())
        >>> rows = await adapter.select("persons")
    """
    if config.provider == "supabase":
        return AsyncSupabaseAdapter(url=config.store_url, key=config.store_key)
    if config.provider == "postgres":
        return AsyncPostgresAdapter(config.store_url)
    raise ConfigError(f"Unknown store provider: {config.provider}")
