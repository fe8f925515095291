"""CLI interface for the backport tracker."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Any

import typer
from pymongo import AsyncMongoClient
from rich.console import Console
from rich.table import Table

from backport_tracker import __version__
from backport_tracker.config import DEFAULT_CONFIG_PATH, Config
from backport_tracker.core.store import SnapshotStore
from backport_tracker.core.synchronizer import IssueSynchronizer, SyncError, SyncStats
from backport_tracker.sync.jira_client import JiraClient, JiraClientError

app = typer.Typer(
    name="backport-tracker",
    help="Mirror Jira issues and their backport clone chains into MongoDB.",
    no_args_is_help=True,
)
console = Console()
logger = logging.getLogger(__name__)

ConfigOption = Annotated[
    Path,
    typer.Option("--config", "-c", help="Path to the YAML config file"),
]


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def run_sync(config: Config) -> SyncStats:
    """Open Jira and MongoDB connections and run one sync pass."""
    mongo: AsyncMongoClient[dict[str, Any]] = AsyncMongoClient(config.mongodb.uri)
    try:
        store = SnapshotStore.from_client(
            mongo,
            config.mongodb.database,
            config.mongodb.collection,
            timeout=config.mongodb.timeout,
        )
        async with JiraClient(
            base_url=config.jira.url,
            token=config.jira.token,
            timeout=config.jira.timeout,
            max_retries=config.jira.max_retries,
            initial_backoff=config.jira.initial_backoff,
        ) as client:
            return await IssueSynchronizer(client, store, config.sync).sync()
    finally:
        await mongo.close()


def _display_stats(stats: SyncStats) -> None:
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("Seen", justify="right")
    table.add_column("Upserted", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red" if stats.issues_failed else "dim")
    table.add_column("Stale removed", justify="right")
    table.add_row(
        str(stats.issues_seen),
        str(stats.issues_upserted),
        str(stats.issues_failed),
        str(stats.stale_removed),
    )
    console.print(table)


@app.command()
def sync(config_path: ConfigOption = DEFAULT_CONFIG_PATH) -> None:
    """Sync tracked issues and their clone chains into MongoDB."""
    config = Config.load(config_path)

    try:
        stats = asyncio.run(run_sync(config))
    except (SyncError, JiraClientError) as e:
        logger.error(f"Failed to sync issues: {e}")
        console.print(f"[bold red]Sync failed:[/bold red] {e}")
        raise typer.Exit(1) from e

    _display_stats(stats)
    console.print("[green]Sync completed successfully[/green]")


@app.command()
def serve(
    config_path: ConfigOption = DEFAULT_CONFIG_PATH,
    host: Annotated[
        str | None,
        typer.Option("--host", help="Interface to bind (overrides config)"),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option("--port", "-p", help="Port to listen on (overrides config)"),
    ] = None,
) -> None:
    """Serve the stored documents over HTTP."""
    import uvicorn

    from backport_tracker.server import create_app

    config = Config.load(config_path)
    bind_host = host or config.server.host
    bind_port = port or config.server.port

    console.print(f"[cyan]Starting server on {bind_host}:{bind_port}[/cyan]")
    uvicorn.run(create_app(config), host=bind_host, port=bind_port)


@app.command()
def init(
    config_path: ConfigOption = DEFAULT_CONFIG_PATH,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing config file"),
    ] = False,
) -> None:
    """Write a config file with default settings."""
    if config_path.exists() and not force:
        console.print(f"[red]{config_path} already exists (use --force to overwrite)[/red]")
        raise typer.Exit(1)

    Config().save(config_path)
    console.print(f"[green]Wrote default config to {config_path}[/green]")


@app.command()
def version() -> None:
    """Show the installed version."""
    console.print(f"backport-tracker {__version__}")


if __name__ == "__main__":
    app()
