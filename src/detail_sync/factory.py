"""Database client factory.

Resolves a connection profile from ``detail-sync.toml``, validates that
the tables and columns named by the master/detail descriptors exist, and
creates adapters.

Profile selection order:
1. Explicit ``profile_name`` argument
2. ``{env_prefix}DB_PROFILE`` environment variable
3. ``.db-profile`` lock file in the current working directory (written
   after a successful ``connect_and_validate()``)
"""

import logging
import os
from pathlib import Path
from urllib.parse import quote

from detail_sync.adapters.base import DatabaseClient
from detail_sync.adapters.postgres import AsyncPostgresAdapter
from detail_sync.config.loader import load_sync_config
from detail_sync.config.models import DatabaseProfile
from detail_sync.schema.comparator import expected_columns_for, validate_schema
from detail_sync.schema.introspector import SchemaIntrospector
from detail_sync.schema.models import ConnectionResult

logger = logging.getLogger(__name__)

_PROFILE_LOCK_FILE = ".db-profile"


# ============================================================================
# Profile Lock File Operations
# ============================================================================


class ProfileNotFoundError(Exception):
    """Raised when no database profile is configured."""

    pass


def _lock_path() -> Path:
    return Path.cwd() / _PROFILE_LOCK_FILE


def read_profile_lock() -> str | None:
    """Read profile name from lock file.

    Returns:
        Profile name if lock file exists, None otherwise
    """
    path = _lock_path()
    if path.exists():
        return path.read_text().strip() or None
    return None


def write_profile_lock(profile_name: str) -> None:
    """Write profile name to lock file.

    Only call this after successful schema validation.
    """
    _lock_path().write_text(profile_name)


def clear_profile_lock() -> None:
    """Remove profile lock file."""
    path = _lock_path()
    if path.exists():
        path.unlink()


def get_active_profile_name(env_prefix: str = "") -> str:
    """Get active profile name from env var or lock file.

    Args:
        env_prefix: Prefix for the env var (``"APP_"`` reads ``APP_DB_PROFILE``).

    Raises:
        ProfileNotFoundError: If no profile is configured
    """
    env_profile = os.environ.get(f"{env_prefix}DB_PROFILE")
    if env_profile:
        return env_profile

    lock_profile = read_profile_lock()
    if lock_profile:
        return lock_profile

    raise ProfileNotFoundError(
        "No database profile configured.\n"
        f"Set {env_prefix}DB_PROFILE=<name> or run: detail-sync connect"
    )


def get_active_profile(
    env_prefix: str = "",
    config_path: Path | None = None,
) -> tuple[str, DatabaseProfile]:
    """Get active profile name and configuration.

    Raises:
        ProfileNotFoundError: If no profile configured or the name is unknown
    """
    profile_name = get_active_profile_name(env_prefix=env_prefix)
    config = load_sync_config(config_path)

    if profile_name not in config.profiles:
        raise ProfileNotFoundError(
            f"Profile '{profile_name}' not found in config.\n"
            f"Available profiles: {', '.join(config.profiles.keys())}"
        )

    return profile_name, config.profiles[profile_name]


# ============================================================================
# Connection and Validation
# ============================================================================


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    The ``[YOUR-PASSWORD]`` placeholder is replaced by the URL-encoded
    ``db_password``.
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


async def connect_and_validate(
    profile_name: str | None = None,
    env_prefix: str = "",
    config_path: Path | None = None,
    validate_only: bool = False,
) -> ConnectionResult:
    """Connect to a profile and check the columns the descriptors need.

    On success the profile name is written to the lock file (unless
    *validate_only*), so later calls can omit it.

    Example:
        >>> result = await connect_and_validate("local")
        >>> if not result.success:
        ...     print(result.error)
    """
    if profile_name is None:
        try:
            profile_name = get_active_profile_name(env_prefix=env_prefix)
        except ProfileNotFoundError as e:
            return ConnectionResult(success=False, error=str(e))

    try:
        config = load_sync_config(config_path)
    except FileNotFoundError as e:
        return ConnectionResult(success=False, error=str(e))

    if profile_name not in config.profiles:
        available = ", ".join(config.profiles.keys())
        return ConnectionResult(
            success=False,
            profile_name=profile_name,
            error=f"Profile '{profile_name}' not found. Available: {available}",
        )

    url = resolve_url(config.profiles[profile_name])

    try:
        async with SchemaIntrospector(url) as introspector:
            actual_columns = await introspector.get_column_names()
    except Exception as e:
        logger.warning("Failed to introspect profile '%s': %s", profile_name, e)
        return ConnectionResult(
            success=False,
            profile_name=profile_name,
            error=f"Failed to connect to database: {e}",
        )

    validation = validate_schema(
        actual_columns, expected_columns_for(config.masters), masters=config.masters
    )

    if not validation.valid:
        return ConnectionResult(
            success=False,
            profile_name=profile_name,
            schema_valid=False,
            schema_report=validation,
            error=f"Schema validation failed: {validation.error_count} errors",
        )

    if not validate_only:
        write_profile_lock(profile_name)

    return ConnectionResult(
        success=True,
        profile_name=profile_name,
        schema_valid=True,
        schema_report=validation,
    )


# ============================================================================
# Database Adapter Factory
# ============================================================================


async def get_adapter(
    profile_name: str | None = None,
    env_prefix: str = "",
    database_url: str | None = None,
    config_path: Path | None = None,
    jsonb_columns: list[str] | None = None,
    datetime_columns: list[str] | None = None,
) -> DatabaseClient:
    """Create a database adapter (no caching -- callers own its lifetime).

    Args:
        profile_name: Profile to use; resolved via env var / lock file if None.
        env_prefix: Prefix for the ``DB_PROFILE`` env var.
        database_url: Direct URL; bypasses profile resolution entirely.
        config_path: Config file path (default: ``./detail-sync.toml``).
        jsonb_columns: Columns receiving JSONB serialization (default: the
            profile's ``jsonb_columns``).
        datetime_columns: Timestamp/date columns whose ISO strings are parsed
            back on write (default: the profile's ``datetime_columns``).

    Raises:
        ProfileNotFoundError: If no profile can be resolved.
    """
    if database_url:
        return AsyncPostgresAdapter(
            database_url,
            jsonb_columns=jsonb_columns,
            datetime_columns=datetime_columns,
        )

    if profile_name is None:
        profile_name, profile = get_active_profile(
            env_prefix=env_prefix, config_path=config_path
        )
    else:
        config = load_sync_config(config_path)
        if profile_name not in config.profiles:
            raise ProfileNotFoundError(
                f"Profile '{profile_name}' not found. "
                f"Available: {', '.join(config.profiles.keys())}"
            )
        profile = config.profiles[profile_name]

    logger.debug("Creating adapter for profile '%s'", profile_name)
    return AsyncPostgresAdapter(
        resolve_url(profile),
        jsonb_columns=jsonb_columns or profile.jsonb_columns,
        datetime_columns=datetime_columns or profile.datetime_columns,
    )
