"""Commands for inspecting locally stored bookmarks."""

import logging

import typer

from raindrop_sync.config import get_settings
from raindrop_sync.exceptions import RaindropSyncError
from raindrop_sync.sync import SyncOrchestrator

from .sync import find_target

app = typer.Typer(help="Inspect stored bookmarks")
logger = logging.getLogger(__name__)


@app.command("list")
def list_bookmarks(
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Rows to show"),
    account: str | None = typer.Option(None, "--account", help="Account ID"),
) -> None:
    """List stored bookmarks, highest Raindrop ID first."""
    try:
        target = find_target(SyncOrchestrator(get_settings()).build_targets(), account)
        target.store.initialize()
        stored = target.store.get_all()
    except (ValueError, RaindropSyncError) as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e

    if not stored:
        logger.info(f"No bookmarks stored for account {target.account_id}")
        return

    for i, bookmark in enumerate(stored[:limit], 1):
        typer.echo(f"{i:>4}. [{bookmark.raindrop_id}] {bookmark.title or 'Untitled'} - {bookmark.url}")
    if len(stored) > limit:
        typer.echo(f"  ... and {len(stored) - limit} more")


@app.command("count")
def count_bookmarks(
    account: str | None = typer.Option(None, "--account", help="Account ID"),
) -> None:
    """Show how many bookmarks are stored and the current sync cursor."""
    try:
        target = find_target(SyncOrchestrator(get_settings()).build_targets(), account)
        target.store.initialize()
        total = target.store.count()
        cursor = target.store.most_recent_update()
    except (ValueError, RaindropSyncError) as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e

    typer.echo(f"{target.account_id}: {total} bookmark(s)")
    typer.echo(f"Most recent update: {cursor or 'none'}")
