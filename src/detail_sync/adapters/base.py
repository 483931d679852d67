"""Database client protocol definitions.

Defines the ``TransactionClient`` Protocol (CRUD bound to one open
transaction) and the ``DatabaseClient`` Protocol that all adapters must
implement.  All methods are ``async def`` -- the library is async-first.

Every master save or delete runs inside exactly one
``DatabaseClient.transaction()`` block.  The detail row service, reader,
reconciler, and cascade coordinator only ever receive the
``TransactionClient`` yielded by that block, so all of their statements
share one connection and commit or roll back together.

Usage:
    from detail_sync.adapters.base import DatabaseClient

    async def do_work(client: DatabaseClient) -> None:
        async with client.transaction() as tx:
            movie = await tx.insert("movies", {"title": "The Matrix"})
            await tx.insert("movie_cast", {"movie_id": movie["id"], "role": "Neo"})
        rows = await client.select("movies", "id, title")
        await client.close()
"""

from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol

from detail_sync.config.models import JoinField


class TransactionClient(Protocol):
    """CRUD interface bound to one open transaction.

    Statements issued through this object are not committed individually;
    the owning ``transaction()`` block commits them on clean exit and rolls
    them all back if an exception escapes it.
    """

    async def select(
        self,
        table: str,
        columns: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        joins: list[JoinField] | None = None,
    ) -> list[dict]:
        """Select rows from table.

        Args:
            table: Table name.
            columns: Comma-separated column names (e.g., ``"id, name, status"``)
                or ``"*"``.
            filters: Optional dict of field=value filters (all must match via AND).
            order_by: Optional column name to sort by, optionally followed by
                ``ASC`` or ``DESC``.
            joins: Optional denormalized fields to pull in via ``LEFT JOIN``.
                Each ``JoinField`` adds one output key named ``JoinField.name``.

        Returns:
            List of dicts, one per row.  Empty list if no matches.

        Example:
            rows = await tx.select(
                "movie_cast",
                "*",
                filters={"movie_id": 2},
                joins=[JoinField(name="actor_name", table="people",
                                 column="name", foreign_key="person_id")],
            )
        """
        ...

    async def insert(self, table: str, data: dict) -> dict:
        """Insert row into table and return the created row.

        Raises:
            ConstraintViolationError: If duplicate key or constraint violation.
            StorageConnectionError: If the connection fails.
        """
        ...

    async def update(self, table: str, data: dict, filters: dict[str, Any]) -> dict:
        """Update rows in table and return the first updated row.

        Raises:
            NotFoundError: If no rows match filters.
            ConstraintViolationError: If the new values violate a constraint.
            StorageConnectionError: If the connection fails.
        """
        ...

    async def delete(self, table: str, filters: dict[str, Any]) -> int:
        """Delete rows from table and return the number of rows deleted.

        Raises:
            ConstraintViolationError: If another row still references a deleted one.
            StorageConnectionError: If the connection fails.
        """
        ...


class DatabaseClient(TransactionClient, Protocol):
    """Database client interface that all adapters must implement.

    The CRUD methods inherited from ``TransactionClient`` each run in their
    own short transaction (autocommit per call).  Use ``transaction()`` to
    group several statements into one unit of work.

    All methods are async -- callers must ``await`` every operation.
    """

    def transaction(self) -> AbstractAsyncContextManager[TransactionClient]:
        """Open a transaction and yield a client bound to it.

        Commits when the block exits cleanly, rolls back when an exception
        escapes it.

        Example:
            async with client.transaction() as tx:
                await tx.delete("movie_cast", {"id": 13})
                await tx.update("movie_cast", {"role": "Morpheus"}, {"id": 12})
        """
        ...

    async def execute(self, sql: str, params: dict | None = None) -> None:
        """Execute a raw SQL statement (DDL or other non-query operations).

        Args:
            sql: Raw SQL statement to execute.
            params: Optional dict of named parameters for the SQL statement.
        """
        ...

    async def close(self) -> None:
        """Close database connection and clean up resources."""
        ...
