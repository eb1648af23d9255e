"""
ShuttleCoach Management CLI
===========================

Command-line interface for bootstrapping a deployment.

Usage:
    python -m shuttlecoach <command> [options]

Commands:
    db:init                        Create all tables
    club:create ID NAME            Create a club
    admin:create EXTERNAL_ID       Create (or promote) an admin user

Examples:
    python -m shuttlecoach db:init
    python -m shuttlecoach club:create riverside "Riverside Badminton Club"
    python -m shuttlecoach admin:create auth0|12345 --email ops@example.com --club riverside
"""

import asyncio
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from shuttlecoach import __version__
from shuttlecoach.config import configure_logging

console = Console()


@click.group()
@click.version_option(version=__version__)
def cli():
    """ShuttleCoach - management commands."""
    configure_logging()


# =============================================================================
# DATABASE COMMANDS
# =============================================================================

async def _init_db() -> list[str]:
    from shuttlecoach.database import Base, engine
    from shuttlecoach import models  # registers the tables on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    return sorted(Base.metadata.tables)


@cli.command("db:init")
def cmd_db_init():
    """Create all tables (existing tables are left alone)."""
    console.print("\n[bold]ShuttleCoach - Database Init[/bold]\n")
    tables = asyncio.run(_init_db())
    for name in tables:
        console.print(f"  [green]✓[/green] {name}")
    console.print(f"\n[green]{len(tables)} tables ready.[/green]")


# =============================================================================
# CLUB COMMANDS
# =============================================================================

async def _create_club(club_id: str, name: str) -> bool:
    from shuttlecoach.database import async_session_factory, commit_or_fail, engine
    from shuttlecoach.models import Club

    try:
        async with async_session_factory() as db:
            if await db.get(Club, club_id) is not None:
                return False
            db.add(Club(id=club_id, name=name))
            await commit_or_fail(db, "create club")
            return True
    finally:
        await engine.dispose()


@cli.command("club:create")
@click.argument("club_id")
@click.argument("name")
def cmd_club_create(club_id: str, name: str):
    """Create a club identified by its short name."""
    from shuttlecoach.services import CLUB_ID_PATTERN

    if not CLUB_ID_PATTERN.match(club_id):
        raise click.BadParameter("Use 1-50 letters, digits or dashes", param_hint="CLUB_ID")
    if not name.strip() or len(name.strip()) > 100:
        raise click.BadParameter("Name must be 1-100 characters", param_hint="NAME")

    if asyncio.run(_create_club(club_id, name.strip())):
        console.print(f"[green]Created club {club_id}[/green]")
    else:
        console.print(f"[yellow]Club {club_id} already exists.[/yellow]")


# =============================================================================
# USER COMMANDS
# =============================================================================

async def _create_admin(
    external_id: str,
    email: Optional[str],
    first_name: Optional[str],
    last_name: Optional[str],
    club_id: Optional[str],
):
    from shuttlecoach.database import async_session_factory, commit_or_fail, engine
    from shuttlecoach.models import UserType
    from shuttlecoach.services import (
        ensure_provisioned, get_user, set_user_type, validate_and_get_club,
    )

    try:
        async with async_session_factory() as db:
            user = await ensure_provisioned(db, external_id)
            if club_id is not None:
                user.club_id = (await validate_and_get_club(db, club_id)).id
            for field, value in (("email", email), ("first_name", first_name), ("last_name", last_name)):
                if value is not None:
                    setattr(user, field, value)
            await commit_or_fail(db, "update admin user")

            user = await get_user(db, user.id)
            if user.user_type != UserType.ADMIN:
                user = await set_user_type(db, user, UserType.ADMIN)
            return user
    finally:
        await engine.dispose()


@cli.command("admin:create")
@click.argument("external_id")
@click.option("--email", type=str, default=None, help="Email address")
@click.option("--first-name", type=str, default=None, help="First name")
@click.option("--last-name", type=str, default=None, help="Last name")
@click.option("--club", "club_id", type=str, default=None, help="Club id to join")
def cmd_admin_create(
    external_id: str,
    email: Optional[str],
    first_name: Optional[str],
    last_name: Optional[str],
    club_id: Optional[str],
):
    """Create an admin for an identity provider subject (idempotent)."""
    from shuttlecoach.errors import AppError

    console.print("\n[bold]ShuttleCoach - Admin User[/bold]\n")
    try:
        user = asyncio.run(_create_admin(external_id, email, first_name, last_name, club_id))
    except AppError as e:
        raise click.ClickException(e.message)

    table = Table(title="Admin User")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("id", str(user.id))
    table.add_row("external_id", user.external_id)
    table.add_row("user_type", user.user_type.value)
    table.add_row("club_id", user.club_id or "-")
    table.add_row("email", user.email or "-")
    console.print(table)


if __name__ == "__main__":
    cli()
