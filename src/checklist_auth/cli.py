"""Command-line interface for inspecting the auth client setup."""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.table import Table

from checklist_auth import __version__
from checklist_auth.config import settings
from checklist_auth.container import build_container
from checklist_auth.logging_config import configure_logging
from checklist_auth.oauth.models import PlatformType

app = typer.Typer(
    name="checklist-auth",
    help="Inspect OAuth configuration and stored sessions",
    no_args_is_help=True,
    add_completion=False,
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"checklist-auth version: {__version__}")
        raise typer.Exit(0)


def _print_table(title: str, data: dict[str, Any]) -> None:
    table = Table(title=title)
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")
    for key, value in data.items():
        table.add_row(key, str(value))
    console.print(table)


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """checklist-auth - OAuth client diagnostics."""
    configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)


@app.command("config")
def show_config(
    platform: Annotated[
        PlatformType | None,
        typer.Option("--platform", "-p", help="Inspect another platform's provider"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output in JSON format"),
    ] = False,
) -> None:
    """Show the resolved provider's configuration."""
    container = build_container()
    if platform is not None:
        info = container.factory.create_provider(platform).debug_config()
    else:
        info = container.service.get_debug_info()

    if json_output:
        print(json.dumps(info, indent=2))
        return

    _print_table("OAuth configuration", info)
    if not info.get("is_configured", False):
        console.print("[yellow]Client ID missing or still a placeholder[/yellow]")


@app.command()
def status(
    json_output: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output in JSON format"),
    ] = False,
) -> None:
    """Show the authentication status of the stored session."""

    async def _status() -> dict[str, Any]:
        container = build_container()
        await container.initialize()
        try:
            return (await container.service.get_auth_status()).model_dump()
        finally:
            await container.close()

    result = asyncio.run(_status())

    if json_output:
        print(json.dumps(result, indent=2))
    else:
        _print_table("Auth status", result)


@app.command()
def relay(
    host: Annotated[str, typer.Option("--host", help="Bind address")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", help="Bind port")] = 3000,
) -> None:
    """Serve the iOS relay page."""
    import uvicorn

    from checklist_auth.relay import create_relay_app

    uvicorn.run(create_relay_app(), host=host, port=port, log_level=settings.LOG_LEVEL.lower())


def cli_main() -> None:
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    cli_main()
