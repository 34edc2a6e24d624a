#!/usr/bin/env python3
"""
ThesisHub CLI - Operator Entry Point

Usage:
    thesishub serve --reload                           # Run the API on SERVER_HOST:SERVER_PORT
    thesishub init-db                                  # Create tables
    thesishub create-admin -u admin -p secret          # Add an admin account
    thesishub import-data export.json                  # Replace data with a legacy export
    thesishub stats                                    # Record counts per entity
    thesishub clear-all                                # Wipe everything except admins

All commands talk to the database named by DATABASE_URL directly; the API
server does not need to be running.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

import uvicorn
from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from thesishub.core.config import settings
from thesishub.core.database import AsyncSessionLocal, close_db, init_db
from thesishub.core.exceptions import ThesisHubError
from thesishub.services.auth_service import AuthService
from thesishub.services.dashboard_service import DashboardService
from thesishub.services.sync_service import SyncService

console = Console()


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI"""
    parser = argparse.ArgumentParser(
        prog="thesishub",
        description="ThesisHub - thesis group and supervision administration",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default=settings.SERVER_HOST)
    serve_parser.add_argument("--port", type=int, default=settings.SERVER_PORT)
    serve_parser.add_argument("--reload", action="store_true", help="Restart on code changes")

    subparsers.add_parser("init-db", help="Create database tables")

    admin_parser = subparsers.add_parser("create-admin", help="Create an admin account")
    admin_parser.add_argument("-u", "--username", required=True)
    admin_parser.add_argument("-p", "--password", required=True)
    admin_parser.add_argument("-e", "--email", default=None)
    admin_parser.add_argument("--role", default="admin", choices=["admin", "superuser"])

    import_parser = subparsers.add_parser(
        "import-data", help="Replace all data (admins excepted) with a JSON export"
    )
    import_parser.add_argument("file", type=Path, help="Path to the exported JSON file")
    import_parser.add_argument("-y", "--yes", action="store_true", help="Skip confirmation")

    subparsers.add_parser("stats", help="Show record counts")

    clear_parser = subparsers.add_parser("clear-all", help="Delete all data except admins")
    clear_parser.add_argument("-y", "--yes", action="store_true", help="Skip confirmation")

    return parser


# ==================== Commands ====================

async def cmd_init_db(args) -> None:
    await init_db()
    console.print("[green]✓ Database tables ready[/green]")


async def cmd_create_admin(args) -> None:
    await init_db()
    async with AsyncSessionLocal() as session:
        admin = await AuthService(session).create_admin(
            args.username, args.password, args.email, role=args.role
        )
    console.print(f"[green]✓ Admin '{admin.username}' created[/green]")


async def cmd_import_data(args) -> None:
    payload = json.loads(args.file.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        console.print("[red]✗ Export must be a JSON object keyed by entity name[/red]")
        raise SystemExit(1)

    if not args.yes and not Confirm.ask(
        "[yellow]This replaces ALL existing data except admin accounts. Continue?[/yellow]"
    ):
        console.print("Aborted.")
        return

    await init_db()
    async with AsyncSessionLocal() as session:
        imported = await SyncService(session).import_data(payload)

    table = Table(title="Imported records")
    table.add_column("Entity", style="cyan")
    table.add_column("Count", justify="right")
    for name, count in imported.items():
        table.add_row(name, str(count))
    console.print(table)


async def cmd_stats(args) -> None:
    await init_db()
    async with AsyncSessionLocal() as session:
        counts = await DashboardService(session).get_counts()

    table = Table(title="ThesisHub data")
    table.add_column("Entity", style="cyan")
    table.add_column("Records", justify="right")
    for name, count in counts.items():
        table.add_row(name, str(count))
    console.print(table)


async def cmd_clear_all(args) -> None:
    if not args.yes:
        if not Confirm.ask("[red]Delete every record except admin accounts?[/red]"):
            console.print("Aborted.")
            return
        if not Confirm.ask("[red]This cannot be undone. Are you absolutely sure?[/red]"):
            console.print("Aborted.")
            return

    async with AsyncSessionLocal() as session:
        deleted = await DashboardService(session).wipe()
    console.print(f"[green]✓ Removed {sum(deleted.values())} records[/green]")


COMMANDS = {
    "init-db": cmd_init_db,
    "create-admin": cmd_create_admin,
    "import-data": cmd_import_data,
    "stats": cmd_stats,
    "clear-all": cmd_clear_all,
}


async def run_command(args) -> None:
    try:
        await COMMANDS[args.command](args)
    finally:
        await close_db()


def main():
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "serve":
        # uvicorn owns the event loop
        uvicorn.run("thesishub.main:app", host=args.host, port=args.port, reload=args.reload)
        return

    try:
        asyncio.run(run_command(args))
    except ThesisHubError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
