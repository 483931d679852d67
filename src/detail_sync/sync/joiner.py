"""Retrieve-time joiner: attach detail rows to a master being read."""

from typing import Any

from detail_sync.adapters.base import TransactionClient
from detail_sync.config.models import DetailDef
from detail_sync.sync.reader import ALL_JOINED, DetailRowReader


async def attach_details(
    conn: TransactionClient,
    master: dict,
    detail_def: DetailDef,
    reader: DetailRowReader,
    *,
    master_pk: str = "id",
) -> dict:
    """Populate ``master[detail_def.collection]`` with its detail rows.

    Every configured join is selected, so denormalized display fields
    (e.g. an actor's name read from ``people``) are present on each row.
    A master without an identifier is returned untouched.

    Returns:
        The same *master* dict, mutated in place.
    """
    master_id: Any = master.get(master_pk)
    if master_id is None:
        return master

    master[detail_def.collection] = await reader.list_by_master_id(
        conn, master_id, extra_fields=ALL_JOINED
    )
    return master
