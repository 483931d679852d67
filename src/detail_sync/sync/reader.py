"""Detail row reader: list detail rows scoped to one master.

The joins declared on a ``DetailDef`` are indexed once, when the
reader is constructed.  Callers choose per query whether denormalized
fields are included: the reconciler reads native columns only, the
retrieve-time joiner asks for every configured join.

Usage:
    from detail_sync.sync.reader import ALL_JOINED, DetailRowReader

    reader = DetailRowReader(cast_def)
    rows = await reader.list_by_master_id(tx, 2, extra_fields=ALL_JOINED)
    ids = await reader.list_ids_by_master_id(tx, 2)
"""

from typing import Any, Literal

from detail_sync.adapters.base import TransactionClient
from detail_sync.config.models import DetailDef, JoinField
from detail_sync.errors import ConfigError

ALL_JOINED: Literal["all"] = "all"


class DetailRowReader:
    """Reads detail rows of one ``DetailDef`` by master identifier."""

    def __init__(self, detail_def: DetailDef) -> None:
        self.detail_def = detail_def
        self._joins: dict[str, JoinField] = {j.name: j for j in detail_def.joins}

    def resolve_joins(
        self, extra_fields: list[str] | Literal["all"] | None
    ) -> list[JoinField]:
        """Translate requested extra field names into ``JoinField`` entries.

        Raises:
            ConfigError: If a requested field is not a configured join.
        """
        if extra_fields is None:
            return []
        if extra_fields == ALL_JOINED:
            return list(self._joins.values())

        unknown = [name for name in extra_fields if name not in self._joins]
        if unknown:
            raise ConfigError(
                f"Detail '{self.detail_def.name}' has no joined fields {unknown}. "
                f"Configured: {', '.join(self._joins) or '(none)'}"
            )
        return [self._joins[name] for name in extra_fields]

    async def list_by_master_id(
        self,
        conn: TransactionClient,
        master_id: Any,
        extra_fields: list[str] | Literal["all"] | None = None,
    ) -> list[dict]:
        """List detail rows whose foreign key equals *master_id*.

        Args:
            conn: Client or open transaction to read through.
            master_id: Identifier of the master.
            extra_fields: Joined field names to include, ``ALL_JOINED`` for
                every configured join, or None for native columns only.

        Returns:
            Rows in storage order, or ordered by ``DetailDef.order_by``.
        """
        joins = self.resolve_joins(extra_fields)
        return await conn.select(
            self.detail_def.table,
            "*",
            filters={self.detail_def.master_field: master_id},
            order_by=self.detail_def.order_by,
            joins=joins or None,
        )

    async def list_ids_by_master_id(
        self, conn: TransactionClient, master_id: Any
    ) -> list:
        """List only the primary keys of detail rows scoped to *master_id*."""
        pk = self.detail_def.pk
        rows = await conn.select(
            self.detail_def.table,
            pk,
            filters={self.detail_def.master_field: master_id},
            order_by=self.detail_def.order_by,
        )
        return [row[pk] for row in rows]
