"""Async Supabase store adapter.

Provides ``AsyncSupabaseAdapter``, an implementation of the ``StoreClient``
protocol using the supabase-py async client.

The client is initialized lazily on first use with an ``asyncio.Lock``
to ensure it is created exactly once.  PostgREST offers no multi-statement
transactions, so this adapter has no ``transaction()``.

Usage:
    from attendance_backup.adapters.supabase import AsyncSupabaseAdapter

    adapter = AsyncSupabaseAdapter(
        url="https://xyzproject.supabase.co",
        key="eyJ...",
    )

    rows = await adapter.select("persons")
    await adapter.close()
"""

import asyncio
from typing import Any

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient, acreate_client

from attendance_backup.errors import StoreError

# Supabase's default PostgREST max-rows
DEFAULT_PAGE_SIZE = 1000


def _error_message(error: Exception) -> str:
    """Extract the human-readable message from a PostgREST/HTTP error."""
    if isinstance(error, APIError) and error.message:
        return error.message
    return str(error) or error.__class__.__name__


class AsyncSupabaseAdapter:
    """Async Supabase implementation of the ``StoreClient`` protocol.

    Args:
        url: Supabase project URL.
        key: Supabase API key (service role key for restores).
        page_size: Rows requested per page.  Must not exceed the
            project's PostgREST max-rows setting.
        order_by: Column that orders pages; every table backed up needs it.

    Example:
        adapter = AsyncSupabaseAdapter(
            url="https://xyzproject.supabase.co",
            key="eyJhbGciOiJIUzI1NiIs...",
        )
        rows = await adapter.select("attendance")
        await adapter.close()
    """

    def __init__(
        self,
        url: str,
        key: str,
        page_size: int = DEFAULT_PAGE_SIZE,
        order_by: str | None = "id",
    ) -> None:
        self._url: str = url
        self._key: str = key
        self._page_size: int = page_size
        self._order_by: str | None = order_by
        self._client: AsyncClient | None = None
        self._lock: asyncio.Lock = asyncio.Lock()

    async def _get_client(self) -> AsyncClient:
        """Get or create the async Supabase client."""
        if self._client is None:
            async with self._lock:
                # Double-check after acquiring lock
                if self._client is None:
                    self._client = await acreate_client(self._url, self._key)
        return self._client

    async def _execute(self, table: str, query: Any) -> list[dict]:
        """Run a built query, translating client errors into ``StoreError``."""
        try:
            result = await query.execute()
        except (APIError, httpx.HTTPError) as e:
            raise StoreError(f"{table}: {_error_message(e)}") from e
        return result.data or []

    # ------------------------------------------------------------------
    # Row Methods
    # ------------------------------------------------------------------

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: dict[str, Any] | None = None,
    ) -> list[dict]:
        """Select every matching row, one ``range()`` page at a time.

        PostgREST caps each response at its max-rows setting (1000 on
        hosted Supabase), so a single request can return a partial table.
        Pages are ordered by ``order_by`` to keep them stable between
        requests; a page shorter than ``page_size`` ends the scan.
        """
        client = await self._get_client()
        rows: list[dict] = []
        start = 0
        while True:
            query = client.table(table).select(columns)

            if filters:
                for key, value in filters.items():
                    query = query.eq(key, value)

            if self._order_by:
                query = query.order(self._order_by)

            page = await self._execute(table, query.range(start, start + self._page_size - 1))
            rows.extend(page)
            if len(page) < self._page_size:
                return rows
            start += self._page_size

    async def insert(self, table: str, rows: list[dict]) -> list[dict]:
        """Bulk insert rows and return the created rows."""
        client = await self._get_client()
        return await self._execute(table, client.table(table).insert(rows))

    async def upsert(self, table: str, rows: list[dict], on_conflict: str) -> list[dict]:
        """Bulk upsert rows keyed on ``on_conflict``."""
        client = await self._get_client()
        query = client.table(table).upsert(rows, on_conflict=on_conflict)
        return await self._execute(table, query)

    async def delete(self, table: str, filters: dict[str, Any]) -> None:
        """Delete rows matching filters."""
        if not filters:
            raise ValueError("delete() requires at least one filter; use delete_all()")
        client = await self._get_client()
        query = client.table(table).delete()

        for key, value in filters.items():
            query = query.eq(key, value)

        await self._execute(table, query)

    async def delete_all(self, table: str, key_field: str = "id") -> None:
        """Delete every row.

        PostgREST refuses an unfiltered DELETE, so match on
        ``key_field IS NOT NULL``.
        """
        client = await self._get_client()
        query = client.table(table).delete().not_.is_(key_field, "null")
        await self._execute(table, query)

    async def close(self) -> None:
        """Close the underlying PostgREST session.

        If the client was never initialized (no calls were made),
        this is a no-op.
        """
        if self._client is not None:
            await self._client.postgrest.aclose()
            self._client = None
