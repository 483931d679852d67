"""Database adapters package.

Provides the ``DatabaseClient`` and ``TransactionClient`` Protocols and
the async PostgreSQL implementation.

Usage:
    from detail_sync.adapters import DatabaseClient, AsyncPostgresAdapter
"""

from detail_sync.adapters.base import DatabaseClient, TransactionClient
from detail_sync.adapters.postgres import AsyncPostgresAdapter, AsyncPostgresTransaction

__all__ = [
    "DatabaseClient",
    "TransactionClient",
    "AsyncPostgresAdapter",
    "AsyncPostgresTransaction",
]
