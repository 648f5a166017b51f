"""Store client protocol definition.

Defines the ``StoreClient`` Protocol that every store adapter implements.
All methods are ``async def`` and operate on plain dict rows.  Failures are
reported by raising ``StoreError`` with the store's message.

Usage:
    from attendance_backup.adapters.base import StoreClient

    async def copy_people(client: StoreClient) -> None:
        rows = await client.select("persons")
        await client.upsert("persons", rows, on_conflict="pass_number")
        await client.close()
"""

from typing import Any, Protocol


class StoreClient(Protocol):
    """Row-oriented store interface used by the Dumper and Loader.

    Adapters that can run several calls atomically additionally expose
    ``transaction()``, an async context manager yielding a ``StoreClient``
    whose calls commit together (see ``AsyncPostgresAdapter``).
    """

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: dict[str, Any] | None = None,
    ) -> list[dict]:
        """Select rows from table.

        Args:
            table: Table name.
            columns: Comma-separated column names, or ``"*"`` for all.
            filters: Optional dict of field=value filters (all must match via AND).

        Returns:
            List of dicts, one per row.  Empty list if no matches.

        Raises:
            StoreError: If the query fails.

        Example:
            rows = await client.select(
                "attendance",
                filters={"date": "2024-01-15", "activity_type": "Training"},
            )
        """
        ...

    async def insert(self, table: str, rows: list[dict]) -> list[dict]:
        """Insert rows into table and return the created rows.

        Raises:
            StoreError: On duplicate key or other constraint violation.
        """
        ...

    async def upsert(self, table: str, rows: list[dict], on_conflict: str) -> list[dict]:
        """Insert rows, overwriting existing rows that share ``on_conflict``.

        Args:
            table: Table name.
            rows: Rows to write.
            on_conflict: Unique column used to match existing rows.

        Raises:
            StoreError: If the write fails.

        Example:
            await client.upsert("persons", rows, on_conflict="pass_number")
        """
        ...

    async def delete(self, table: str, filters: dict[str, Any]) -> None:
        """Delete rows matching every field=value filter.

        Raises:
            StoreError: If the delete fails.
        """
        ...

    async def delete_all(self, table: str, key_field: str = "id") -> None:
        """Delete every row of ``table`` (rows whose ``key_field`` is not null).

        Raises:
            StoreError: If the delete fails.
        """
        ...

    async def close(self) -> None:
        """Release connections held by the adapter."""
        ...
