"""detail-sync: master/detail reconciliation over an async dict-based adapter.

Synchronizes a client-submitted detail list bundled in a master record
against the persisted detail rows in one transaction, joins denormalized
display fields on read, and cascade-deletes details with their master.

Usage:
    from detail_sync import MasterStore, load_sync_config, get_adapter

    config = load_sync_config()
    adapter = await get_adapter()
    store = MasterStore(adapter, config.get_master("movie"))
    movie, report = await store.save(movie_document)
"""

__version__ = "0.1.0"

# Adapters
from detail_sync.adapters.base import DatabaseClient, TransactionClient
from detail_sync.adapters.postgres import AsyncPostgresAdapter

# Config
from detail_sync.config.loader import load_sync_config
from detail_sync.config.models import (
    DatabaseProfile,
    DetailDef,
    JoinField,
    MasterDef,
    SyncConfig,
)

# Errors
from detail_sync.errors import (
    ConfigError,
    ConstraintViolationError,
    DetailSyncError,
    DetailValidationError,
    DuplicateDetailIdError,
    NotFoundError,
    QueryError,
    ReconciliationError,
    StorageConnectionError,
)

# Factory
from detail_sync.factory import (
    ProfileNotFoundError,
    connect_and_validate,
    get_adapter,
    resolve_url,
)

# Pipeline
from detail_sync.pipeline import (
    AFTER_MASTER_PERSIST,
    AFTER_MASTER_RETRIEVE,
    BEFORE_MASTER_DELETE,
    MasterDetailPipeline,
    MasterStore,
    StageReport,
)

# Reconciliation core
from detail_sync.sync import (
    ALL_JOINED,
    CascadeResult,
    DetailDiff,
    DetailRowReader,
    DetailRowService,
    ReconcileResult,
    TableDetailService,
    attach_details,
    cascade_delete_details,
    diff_details,
    reconcile_details,
)

__all__ = [
    # Adapters
    "DatabaseClient",
    "TransactionClient",
    "AsyncPostgresAdapter",
    # Config
    "load_sync_config",
    "DatabaseProfile",
    "DetailDef",
    "JoinField",
    "MasterDef",
    "SyncConfig",
    # Errors
    "DetailSyncError",
    "NotFoundError",
    "ConstraintViolationError",
    "StorageConnectionError",
    "QueryError",
    "ReconciliationError",
    "DuplicateDetailIdError",
    "DetailValidationError",
    "ConfigError",
    # Factory
    "get_adapter",
    "connect_and_validate",
    "ProfileNotFoundError",
    "resolve_url",
    # Pipeline
    "AFTER_MASTER_PERSIST",
    "BEFORE_MASTER_DELETE",
    "AFTER_MASTER_RETRIEVE",
    "MasterDetailPipeline",
    "MasterStore",
    "StageReport",
    # Reconciliation core
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
    "reconcile_details",
]
