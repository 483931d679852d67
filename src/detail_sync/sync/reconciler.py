"""Master/detail reconciler.

Synchronizes a client-submitted replacement list of detail rows against
the rows persisted for one master.  Runs as a post-save step: the master
row has already been written and its identifier resolved, on the same
``TransactionClient`` that is passed in here.

Phases run in a fixed order -- deletes, then creates, then updates --
so that rows being removed release any unique values a new row reuses.
Within a phase rows are processed in submission order.  Nothing is
parallelized and nothing is retried: the first failing call aborts the
pass and the exception propagates to the owner of the transaction.

Usage:
    from detail_sync.sync.reconciler import reconcile_details

    async with client.transaction() as tx:
        movie = await tx.insert("movies", {"title": "The Matrix"})
        result = await reconcile_details(
            tx,
            cast_def,
            TableDetailService(cast_def),
            DetailRowReader(cast_def),
            master_id=movie["id"],
            details=[{"person_id": 7, "role": "Neo"}],
            created=True,
        )
"""

import logging
from typing import Any

from detail_sync.adapters.base import TransactionClient
from detail_sync.config.models import DetailDef
from detail_sync.errors import ReconciliationError
from detail_sync.sync.differ import diff_details
from detail_sync.sync.models import DetailDiff, ReconcileResult
from detail_sync.sync.reader import DetailRowReader
from detail_sync.sync.service import DetailRowService

logger = logging.getLogger(__name__)


async def plan_details(
    conn: TransactionClient,
    detail_def: DetailDef,
    reader: DetailRowReader,
    master_id: Any,
    details: list[dict],
    *,
    created: bool = False,
) -> DetailDiff:
    """Load the persisted rows for *master_id* and diff *details* against them.

    Args:
        conn: Client or open transaction to read through.
        detail_def: Descriptor of the detail collection.
        reader: Reader for the detail table.
        master_id: Identifier of the (already persisted) master, or None
            when planning for a master that does not exist yet.
        details: Submitted replacement list.
        created: True if the master was inserted by this save; no query is
            issued and every submitted row is classified as added.

    Returns:
        ``DetailDiff`` for the submitted list.
    """
    if created or master_id is None:
        old_rows: list[dict] = []
    else:
        old_rows = await reader.list_by_master_id(conn, master_id)
    return diff_details(old_rows, details, pk=detail_def.pk)


async def reconcile_details(
    tx: TransactionClient,
    detail_def: DetailDef,
    service: DetailRowService,
    reader: DetailRowReader,
    master_id: Any,
    details: list[dict] | None,
    *,
    created: bool = False,
) -> ReconcileResult:
    """Apply a submitted detail list to the rows persisted for a master.

    Args:
        tx: Transaction of the enclosing master save.
        detail_def: Descriptor of the detail collection.
        service: Row service the individual mutations are handed to.
        reader: Reader used to load the rows persisted before this save.
        master_id: Identifier of the master, resolved by its own write.
        details: Submitted replacement list.  ``None`` means the client did
            not send the collection at all and nothing is touched; ``[]``
            means every persisted row is deleted.
        created: True if the master was inserted by this save.

    Returns:
        ``ReconcileResult`` with the deleted, created, and updated ids.

    Raises:
        ReconciliationError: If *master_id* is None, or the list repeats an
            identifier (``DuplicateDetailIdError``).
        NotFoundError, ConstraintViolationError, StorageConnectionError:
            Propagated unchanged from *service*.
    """
    result = ReconcileResult(detail=detail_def.name, master_id=master_id)

    if details is None:
        logger.debug(
            "No %s list submitted for master %r; skipping", detail_def.name, master_id
        )
        result.skipped = True
        return result

    if master_id is None:
        raise ReconciliationError(
            f"Cannot reconcile {detail_def.name}: master has no identifier yet"
        )

    diff = await plan_details(tx, detail_def, reader, master_id, details, created=created)
    pk = detail_def.pk
    logger.debug("Reconciling %s for master %r: %s", detail_def.name, master_id, diff.summary())

    for row in diff.removed:
        await service.delete(tx, row[pk])
        result.deleted_ids.append(row[pk])

    for row in diff.added:
        data = dict(row)
        data.pop(pk, None)
        data[detail_def.master_field] = master_id
        stored = await service.create(tx, data)
        result.created_ids.append(stored[pk])
        result.rows.append(stored)

    for row in diff.retained:
        data = dict(row)
        data[detail_def.master_field] = master_id
        stored = await service.update(tx, data)
        result.updated_ids.append(stored[pk])
        result.rows.append(stored)

    logger.info(
        "Reconciled %s for master %r: %d deleted, %d created, %d updated",
        detail_def.name,
        master_id,
        len(result.deleted_ids),
        len(result.created_ids),
        len(result.updated_ids),
    )
    return result
