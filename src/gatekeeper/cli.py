"""Gatekeeper console application."""

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar
from uuid import UUID

import typer
from rich.console import Console
from rich.table import Table

from gatekeeper import __version__
from gatekeeper.config import Settings, get_settings
from gatekeeper.core.database import Base, create_engine, create_session_factory
from gatekeeper.core.errors import AppException, to_problem_detail
from gatekeeper.core.logging import configure_logging
from gatekeeper.core.permissions import (
    PermissionStore,
    ReconciliationEngine,
    ReconciliationReport,
)
from gatekeeper.modules.authorization import RoleAssignmentService, get_authorization_config


console = Console()
err_console = Console(stderr=True)

T = TypeVar("T")

app = typer.Typer(
    name="gatekeeper",
    help="Reconcile and inspect roles and permissions.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

DatabaseUrlOption = typer.Option(
    None,
    "--database-url",
    "-d",
    help="Database URL (defaults to GATEKEEPER_DATABASE_URL).",
)


def _settings(database_url: str | None, config_path: Path | None = None) -> Settings:
    """Apply command-line overrides to the process settings."""
    overrides: dict[str, object] = {}
    if database_url:
        overrides["database_url"] = database_url
    if config_path:
        overrides["authorization_config_path"] = config_path
    return get_settings().model_copy(update=overrides)


def _run(
    command: str,
    settings: Settings,
    operation: Callable[[PermissionStore], Awaitable[T]],
) -> T:
    """Run an async store operation, reporting application errors."""

    async def runner() -> T:
        engine = create_engine(settings)
        try:
            return await operation(PermissionStore(create_session_factory(engine)))
        finally:
            await engine.dispose()

    try:
        return asyncio.run(runner())
    except AppException as e:
        problem = to_problem_detail(e, instance=command)
        err_console.print(f"[red]Error:[/red] {problem.detail} [dim]({problem.title})[/dim]")
        for error in problem.errors or []:
            err_console.print(f"  [yellow]{error.field}[/yellow]: {error.message}")
        raise typer.Exit(1) from e


def _print_report(report: ReconciliationReport) -> None:
    if not report.changed:
        console.print("[green]Authorization is up to date.[/green]")
        return

    table = Table(title="Authorization changes")
    table.add_column("Change", style="cyan")
    table.add_column("Target")
    table.add_column("Permissions")

    for name in report.created_permissions:
        table.add_row("created permission", name, "")
    for name in report.created_roles:
        table.add_row("created role", name, "")
    for role, permissions in report.attached.items():
        table.add_row("attached", role, ", ".join(permissions))
    for role, permissions in report.detached.items():
        table.add_row("detached", role, ", ".join(permissions))
    for name in report.deleted_roles:
        table.add_row("[red]deleted role[/red]", name, "")
    for name in report.deleted_permissions:
        table.add_row("[red]deleted permission[/red]", name, "")

    console.print(table)


@app.callback(invoke_without_command=True)
def main_callback(
    version: bool = typer.Option(
        False, "--version", "-v", help="Show version and exit."
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
) -> None:
    """Gatekeeper CLI - reconcile and inspect roles and permissions."""
    if version:
        console.print(f"[bold cyan]gatekeeper[/bold cyan] version {__version__}")
        raise typer.Exit()

    settings = get_settings()
    configure_logging(
        "DEBUG" if verbose else settings.log_level,
        json_logs=settings.is_production,
    )


@app.command(name="init-db")
def init_db(database_url: str | None = DatabaseUrlOption) -> None:
    """Create the authorization tables if they do not exist.

    Use Alembic migrations for managed databases; this is meant for
    development and SQLite files.
    """
    settings = _settings(database_url)

    async def create_tables() -> None:
        engine = create_engine(settings)
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        finally:
            await engine.dispose()

    asyncio.run(create_tables())
    console.print("[green]Authorization tables ready.[/green]")


@app.command(name="update")
def update(
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML authorization configuration (defaults to the built-in roles).",
        exists=True,
        dir_okay=False,
    ),
    delete: bool = typer.Option(
        False, "--delete", help="Delete roles and permissions missing from the configuration."
    ),
    cascade: bool = typer.Option(
        False,
        "--cascade",
        help="With --delete, also remove deleted roles and permissions from users holding them.",
    ),
    database_url: str | None = DatabaseUrlOption,
) -> None:
    """Reconcile the configured roles and permissions into the database."""
    settings = _settings(database_url, config)

    async def reconcile(store: PermissionStore) -> ReconciliationReport:
        authorization = get_authorization_config(settings)
        return await ReconciliationEngine(store).reconcile_config(
            authorization, delete_orphans=delete, cascade=cascade
        )

    _print_report(_run("update", settings, reconcile))


@app.command(name="roles")
def list_roles(database_url: str | None = DatabaseUrlOption) -> None:
    """List roles and their permissions."""
    settings = _settings(database_url)

    async def fetch(store: PermissionStore) -> list[tuple[str, list[str]]]:
        return [(role.name, role.permission_names) for role in await store.list_roles()]

    roles = _run("roles", settings, fetch)
    if not roles:
        console.print("[yellow]No roles defined.[/yellow]")
        return

    table = Table(title="Roles")
    table.add_column("Role", style="cyan")
    table.add_column("Permissions")
    for name, permissions in roles:
        table.add_row(name, ", ".join(permissions) or "[dim]none[/dim]")
    console.print(table)


@app.command(name="assign-role")
def assign_role(
    user_id: UUID = typer.Argument(..., help="UUID of the user"),
    role: str = typer.Argument(..., help="Name of the role to assign"),
    revoke: bool = typer.Option(False, "--revoke", help="Remove the role instead."),
    database_url: str | None = DatabaseUrlOption,
) -> None:
    """Assign a role to a user (or remove it with --revoke)."""
    settings = _settings(database_url)

    async def apply(store: PermissionStore) -> bool:
        service = RoleAssignmentService(store)
        if revoke:
            return await service.revoke_role(user_id, role)
        return await service.assign_role(user_id, role)

    changed = _run("assign-role", settings, apply)
    action = "removed from" if revoke else "assigned to"
    if changed:
        console.print(f"[green]Role '{role}' {action} {user_id}.[/green]")
    else:
        console.print(f"[dim]No change: role '{role}' for {user_id}.[/dim]")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
