"""Cascade delete coordinator.

Deletes a master's detail rows through the detail row service before the
master row itself is removed, inside the same transaction.  Cleanup stays
under application control instead of relying on ``ON DELETE CASCADE``,
and every row passes through the same service (and its validators) as
the save path.
"""

import logging
from typing import Any

from detail_sync.adapters.base import TransactionClient
from detail_sync.config.models import DetailDef
from detail_sync.sync.models import CascadeResult
from detail_sync.sync.reader import DetailRowReader
from detail_sync.sync.service import DetailRowService

logger = logging.getLogger(__name__)


async def cascade_delete_details(
    tx: TransactionClient,
    detail_def: DetailDef,
    service: DetailRowService,
    reader: DetailRowReader,
    master_id: Any,
) -> CascadeResult:
    """Delete every detail row scoped to *master_id*.

    Args:
        tx: Transaction of the enclosing master delete.
        detail_def: Descriptor of the detail collection.
        service: Row service each delete is handed to.
        reader: Reader used to enumerate the detail identifiers.
        master_id: Identifier of the master about to be deleted.

    Returns:
        ``CascadeResult`` listing the deleted identifiers.

    Raises:
        NotFoundError, ConstraintViolationError, StorageConnectionError:
            Propagated unchanged; the master delete must not commit.
    """
    result = CascadeResult(detail=detail_def.name, master_id=master_id)

    detail_ids = await reader.list_ids_by_master_id(tx, master_id)
    logger.debug(
        "Cascading delete of %d %s rows for master %r",
        len(detail_ids),
        detail_def.name,
        master_id,
    )

    for detail_id in detail_ids:
        await service.delete(tx, detail_id)
        result.deleted_ids.append(detail_id)

    return result
