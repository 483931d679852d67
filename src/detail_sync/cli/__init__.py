"""CLI for inspecting and applying master/detail saves.

Operator tool over ``MasterStore``: shows a master with its joined
details, previews the reconciliation plan for a master JSON document, and
applies saves and cascade deletes.

Usage:
    DB_PROFILE=local detail-sync connect
    detail-sync status
    detail-sync profiles
    detail-sync show movie 2
    detail-sync plan movie movie-2.json
    detail-sync save movie movie-2.json --confirm
    detail-sync delete movie 2 --confirm

Commands:
    connect   - Validate descriptor tables against the database and lock the profile
    status    - Show current connection status
    profiles  - List available profiles
    show      - Retrieve a master with its detail rows
    plan      - Preview removed/added/retained detail rows for a document
    save      - Save a master document and reconcile its details
    delete    - Delete a master and cascade-delete its details
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from urllib.parse import urlsplit

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from detail_sync.config.loader import load_sync_config
from detail_sync.config.models import MasterDef
from detail_sync.errors import DetailSyncError
from detail_sync.factory import (
    ProfileNotFoundError,
    connect_and_validate,
    get_adapter,
    read_profile_lock,
)
from detail_sync.pipeline import MasterStore
from detail_sync.sync.models import DetailDiff

console = Console()


# ============================================================================
# Helpers
# ============================================================================


def _config_path(args: argparse.Namespace) -> Path | None:
    config = getattr(args, "config", None)
    return Path(config) if config else None


def _parse_id(raw: str) -> int | str:
    """Interpret numeric identifiers as int, anything else as a string key."""
    return int(raw) if raw.isdigit() else raw


def _load_document(path: str | Path) -> dict:
    """Read a master JSON document.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not a JSON object.
    """
    doc_path = Path(path)
    if not doc_path.exists():
        raise FileNotFoundError(f"Document not found: {doc_path}")

    data = json.loads(doc_path.read_text())
    if not isinstance(data, dict):
        raise ValueError(f"{doc_path.name} must contain a JSON object")
    return data


def _render_rows(title: str, rows: list[dict]) -> Table:
    """Render a list of row dicts as a rich table (columns from first-seen keys)."""
    table = Table(title=title, show_header=True, header_style="bold")
    columns: list[str] = []
    for row in rows:
        for key in row:
            if key not in columns:
                columns.append(key)
    for col in columns:
        table.add_column(col)
    for row in rows:
        table.add_row(*["" if row.get(c) is None else str(row.get(c)) for c in columns])
    return table


def _render_plan(master_def: MasterDef, plans: dict[str, DetailDiff]) -> Table:
    table = Table(title="Reconciliation Plan", show_header=True, header_style="bold")
    table.add_column("Detail", style="dim")
    table.add_column("Delete", justify="right")
    table.add_column("Create", justify="right")
    table.add_column("Update", justify="right")

    for detail_def in master_def.details:
        diff = plans.get(detail_def.name)
        if diff is None:
            table.add_row(detail_def.name, "[dim]-[/dim]", "[dim]-[/dim]", "[dim]untouched[/dim]")
            continue
        table.add_row(
            detail_def.name,
            f"[red]{len(diff.removed)}[/red]",
            f"[green]{len(diff.added)}[/green]",
            f"[yellow]{len(diff.retained)}[/yellow]",
        )
    return table


async def _open_store(args: argparse.Namespace) -> MasterStore:
    """Create an adapter for the active profile and a store for ``args.master``."""
    config = load_sync_config(_config_path(args))
    master_def = config.get_master(args.master)
    adapter = await get_adapter(
        env_prefix=getattr(args, "env_prefix", ""),
        config_path=_config_path(args),
    )
    return MasterStore(adapter, master_def)


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_connect(args: argparse.Namespace) -> int:
    """Async implementation for connect command."""
    env_prefix = getattr(args, "env_prefix", "")
    previous_profile = read_profile_lock()

    console.print("Connecting to database...", style="dim")

    result = await connect_and_validate(
        env_prefix=env_prefix, config_path=_config_path(args)
    )

    if result.success:
        console.print()
        console.print(
            f"[bold green]v[/bold green] Connected to profile: "
            f"[bold cyan]{result.profile_name}[/bold cyan]"
        )
        console.print("  Descriptor tables: [green]PASSED[/green]")

        if previous_profile and previous_profile != result.profile_name:
            console.print(
                f"\n[dim]Switched from[/dim] [bold]{previous_profile}[/bold] "
                f"[dim]to[/dim] [bold cyan]{result.profile_name}[/bold cyan]"
            )
        return 0

    console.print()
    console.print(f"[bold red]x[/bold red] {result.error}")
    if result.schema_report:
        console.print("\n[bold]Schema validation report:[/bold]")
        console.print(result.schema_report.format_report())
    return 1


async def _async_show(args: argparse.Namespace) -> int:
    """Async implementation for show command."""
    store = await _open_store(args)
    try:
        master = await store.get(_parse_id(args.id))
    finally:
        await store.client.close()

    if master is None:
        console.print(
            f"[yellow]No {store.master_def.name} with id {args.id}.[/yellow]"
        )
        return 1

    collections = {d.collection for d in store.master_def.details}
    fields = {k: v for k, v in master.items() if k not in collections}
    console.print(_render_rows(store.master_def.name, [fields]))
    for detail_def in store.master_def.details:
        rows = master.get(detail_def.collection) or []
        console.print(_render_rows(f"{detail_def.name} ({len(rows)})", rows))
    return 0


async def _async_plan(args: argparse.Namespace) -> int:
    """Async implementation for plan command (read-only)."""
    document = _load_document(args.file)
    store = await _open_store(args)
    try:
        plans = await store.plan(document)
    finally:
        await store.client.close()

    console.print(_render_plan(store.master_def, plans))
    return 0


async def _async_save(args: argparse.Namespace) -> int:
    """Async implementation for save command."""
    if not args.confirm:
        console.print("[dim]Preview only; add[/dim] [cyan]--confirm[/cyan] [dim]to save.[/dim]")
        return await _async_plan(args)

    document = _load_document(args.file)
    store = await _open_store(args)
    try:
        master, report = await store.save(document)
    finally:
        await store.client.close()

    pk = store.master_def.pk
    console.print(
        f"[bold green]v[/bold green] Saved {store.master_def.name} "
        f"[bold cyan]{master[pk]}[/bold cyan]"
    )
    for name, result in report.results.items():
        if result.skipped:
            console.print(f"  {name}: [dim]untouched[/dim]")
        else:
            console.print(
                f"  {name}: [red]{len(result.deleted_ids)} deleted[/red], "
                f"[green]{len(result.created_ids)} created[/green], "
                f"[yellow]{len(result.updated_ids)} updated[/yellow]"
            )
    return 0


async def _async_delete(args: argparse.Namespace) -> int:
    """Async implementation for delete command."""
    if not args.confirm:
        console.print(
            f"[dim]To delete {args.master} {args.id} and all its details, add[/dim] "
            f"[cyan]--confirm[/cyan] [dim]flag.[/dim]"
        )
        return 0

    store = await _open_store(args)
    try:
        report = await store.delete(_parse_id(args.id))
    finally:
        await store.client.close()

    console.print(
        f"[bold green]v[/bold green] Deleted {store.master_def.name} "
        f"[bold cyan]{args.id}[/bold cyan]"
    )
    for name, result in report.results.items():
        console.print(f"  {name}: [red]{len(result.deleted_ids)} deleted[/red]")
    return 0


def _run(coro_fn, args: argparse.Namespace) -> int:
    """Run an async command, printing library errors instead of tracebacks."""
    try:
        return asyncio.run(coro_fn(args))
    except (DetailSyncError, ProfileNotFoundError, FileNotFoundError, ValueError) as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        return 1


# ============================================================================
# Command handlers
# ============================================================================


def cmd_connect(args: argparse.Namespace) -> int:
    """Validate descriptor tables and lock the profile."""
    return _run(_async_connect, args)


def cmd_status(args: argparse.Namespace) -> int:
    """Show current connection status.

    Reads only local files -- no database calls.
    """
    profile = read_profile_lock()

    if not profile:
        console.print("[yellow]No validated profile.[/yellow]")
        console.print(
            "[dim]Run:[/dim] [cyan]DB_PROFILE=<name> detail-sync connect[/cyan]"
        )
        return 0

    table = Table(title="Connection Status", show_header=False)
    table.add_column("Key", style="dim")
    table.add_column("Value")
    table.add_row("Current profile", f"[bold cyan]{profile}[/bold cyan]")
    table.add_row("Profile source", ".db-profile (validated)")

    try:
        config = load_sync_config(_config_path(args))
        if profile in config.profiles:
            p = config.profiles[profile]
            server, database = _server_of(p.url)
            table.add_row("Server", f"{server}/{database}")
            if p.description:
                table.add_row("Description", p.description)
        table.add_row("Masters", ", ".join(m.name for m in config.masters) or "(none)")
    except FileNotFoundError:
        table.add_row("Warning", "[yellow]detail-sync.toml not found[/yellow]")

    console.print(table)
    return 0


def _server_of(url: str) -> tuple[str, str]:
    """Split a profile URL into ``host:port`` and database name, never the password."""
    # Drop credentials first: a "[YOUR-PASSWORD]" placeholder is not a valid netloc
    authority, _, path = url.partition("://")[2].partition("/")
    parts = urlsplit(f"//{authority.rpartition('@')[2]}/{path}")
    host = parts.hostname or "?"
    if parts.port:
        host = f"{host}:{parts.port}"
    return host, parts.path.lstrip("/") or "-"


def cmd_profiles(args: argparse.Namespace) -> int:
    """List profiles with their server, database and typed columns.

    Reads only local TOML config.  Marks the profile named in ``.db-profile``
    and prints the configured masters underneath.
    """
    try:
        config = load_sync_config(_config_path(args))
    except (FileNotFoundError, DetailSyncError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    locked = read_profile_lock()

    table = Table(title="Profiles", header_style="bold")
    table.add_column("Profile")
    table.add_column("Server")
    table.add_column("Database")
    table.add_column("Typed columns")
    table.add_column("Description")

    for name, profile in sorted(config.profiles.items()):
        server, database = _server_of(profile.url)
        typed = [f"{c} (jsonb)" for c in profile.jsonb_columns]
        typed += [f"{c} (timestamp)" for c in profile.datetime_columns]
        table.add_row(
            f"[bold cyan]{name}[/bold cyan] (locked)" if name == locked else name,
            server,
            database,
            ", ".join(typed) or "-",
            profile.description or "",
        )

    console.print(table)

    masters = ", ".join(
        f"{m.name} ({len(m.details)} details)" for m in config.masters
    )
    console.print(f"Masters: {masters or 'none configured'}")
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    """Retrieve a master with its joined detail rows."""
    return _run(_async_show, args)


def cmd_plan(args: argparse.Namespace) -> int:
    """Preview the reconciliation plan for a master document."""
    return _run(_async_plan, args)


def cmd_save(args: argparse.Namespace) -> int:
    """Save a master document and reconcile its details."""
    return _run(_async_save, args)


def cmd_delete(args: argparse.Namespace) -> int:
    """Delete a master and cascade-delete its details."""
    return _run(_async_delete, args)


# ============================================================================
# Main entry point
# ============================================================================


def main() -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="detail-sync",
        description="Master/detail reconciliation toolkit",
    )
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DB_PROFILE)"
        ),
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config file (default: ./detail-sync.toml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log reconciliation steps",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_connect = subparsers.add_parser(
        "connect", help="Validate descriptor tables and lock the profile"
    )
    p_connect.set_defaults(func=cmd_connect)

    p_status = subparsers.add_parser("status", help="Show current connection status")
    p_status.set_defaults(func=cmd_status)

    p_profiles = subparsers.add_parser("profiles", help="List available profiles")
    p_profiles.set_defaults(func=cmd_profiles)

    p_show = subparsers.add_parser("show", help="Retrieve a master with its details")
    p_show.add_argument("master", help="Master name from config (e.g., movie)")
    p_show.add_argument("id", help="Master identifier")
    p_show.set_defaults(func=cmd_show)

    p_plan = subparsers.add_parser(
        "plan", help="Preview the reconciliation plan for a master document"
    )
    p_plan.add_argument("master", help="Master name from config")
    p_plan.add_argument("file", help="Path to master JSON document")
    p_plan.set_defaults(func=cmd_plan)

    p_save = subparsers.add_parser("save", help="Save a master document")
    p_save.add_argument("master", help="Master name from config")
    p_save.add_argument("file", help="Path to master JSON document")
    p_save.add_argument("--confirm", action="store_true", help="Actually write changes")
    p_save.set_defaults(func=cmd_save)

    p_delete = subparsers.add_parser(
        "delete", help="Delete a master and cascade-delete its details"
    )
    p_delete.add_argument("master", help="Master name from config")
    p_delete.add_argument("id", help="Master identifier")
    p_delete.add_argument("--confirm", action="store_true", help="Actually delete")
    p_delete.set_defaults(func=cmd_delete)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
