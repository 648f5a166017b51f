"""Store adapters package.

Provides the ``StoreClient`` Protocol and concrete async adapters for
Supabase (PostgREST) and direct PostgreSQL access.

Usage:
    from attendance_backup.adapters import StoreClient, AsyncSupabaseAdapter
"""

from attendance_backup.adapters.base import StoreClient
from attendance_backup.adapters.postgres import AsyncPostgresAdapter
from attendance_backup.adapters.supabase import AsyncSupabaseAdapter

__all__ = [
    "StoreClient",
    "AsyncPostgresAdapter",
    "AsyncSupabaseAdapter",
]
