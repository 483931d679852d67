"""Master/detail reconciliation core.

Usage:
    from detail_sync.sync import (
        DetailRowReader,
        TableDetailService,
        attach_details,
        cascade_delete_details,
        diff_details,
        reconcile_details,
    )
"""

from detail_sync.sync.cascade import cascade_delete_details
from detail_sync.sync.differ import diff_details
from detail_sync.sync.joiner import attach_details
from detail_sync.sync.models import CascadeResult, DetailDiff, ReconcileResult
from detail_sync.sync.reader import ALL_JOINED, DetailRowReader
from detail_sync.sync.reconciler import plan_details, reconcile_details
from detail_sync.sync.service import DetailRowService, TableDetailService

__all__ = [
    "ALL_JOINED",
    "CascadeResult",
    "DetailDiff",
    "DetailRowReader",
    "DetailRowService",
    "ReconcileResult",
    "TableDetailService",
    "attach_details",
    "cascade_delete_details",
    "diff_details",
    "plan_details",
    "reconcile_details",
]
