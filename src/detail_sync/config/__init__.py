"""Configuration management: profiles, master/detail descriptors, TOML loading.

Usage:
    >>> from detail_sync.config import load_sync_config, MasterDef, DetailDef
"""

from detail_sync.config.loader import load_sync_config
from detail_sync.config.models import (
    DatabaseProfile,
    DetailDef,
    JoinField,
    MasterDef,
    SyncConfig,
)

__all__ = [
    "load_sync_config",
    "DatabaseProfile",
    "DetailDef",
    "JoinField",
    "MasterDef",
    "SyncConfig",
]
