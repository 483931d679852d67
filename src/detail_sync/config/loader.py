"""Configuration loading from TOML."""

import tomllib
from pathlib import Path

from pydantic import ValidationError

from detail_sync.config.models import DatabaseProfile, MasterDef, SyncConfig
from detail_sync.errors import ConfigError

DEFAULT_CONFIG_FILE = "detail-sync.toml"


def load_sync_config(config_path: Path | None = None) -> SyncConfig:
    """Load profiles and master/detail descriptors from a TOML file.

    Args:
        config_path: Path to the config file (default: ``./detail-sync.toml``)

    Returns:
        SyncConfig with all profiles and master descriptors

    Raises:
        FileNotFoundError: If config file doesn't exist
        ConfigError: If a profile or descriptor is invalid
    """
    if config_path is None:
        config_path = Path.cwd() / DEFAULT_CONFIG_FILE

    if not config_path.exists():
        raise FileNotFoundError(
            f"Config not found: {config_path}\n"
            f"Create {DEFAULT_CONFIG_FILE} with [profiles.*] and [[masters]] sections."
        )

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    # Parse profiles
    profiles = {}
    for name, profile_data in data.get("profiles", {}).items():
        try:
            profiles[name] = DatabaseProfile(**profile_data)
        except ValidationError as e:
            raise ConfigError(f"Invalid profile '{name}': {e}") from e

    # Parse master descriptors (details and joins nest under each master)
    masters = []
    for index, master_data in enumerate(data.get("masters", [])):
        label = master_data.get("name", f"#{index}")
        try:
            masters.append(MasterDef(**master_data))
        except ValidationError as e:
            raise ConfigError(f"Invalid master '{label}': {e}") from e

    names = [m.name for m in masters]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ConfigError(f"Duplicate master names: {duplicates}")

    return SyncConfig(profiles=profiles, masters=masters)
