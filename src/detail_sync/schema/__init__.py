"""Schema validation of master/detail descriptors against a live database.

Usage:
    from detail_sync.schema import SchemaIntrospector, expected_columns_for, validate_schema
"""

from detail_sync.schema.comparator import expected_columns_for, validate_schema
from detail_sync.schema.introspector import SchemaIntrospector
from detail_sync.schema.models import (
    ColumnDiff,
    ConnectionResult,
    SchemaValidationResult,
)

__all__ = [
    "expected_columns_for",
    "validate_schema",
    "SchemaIntrospector",
    "SchemaValidationResult",
    "ColumnDiff",
    "ConnectionResult",
]
