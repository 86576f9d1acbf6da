"""Main CLI application for raindrop-sync.

This module provides the unified entry point for all CLI operations,
organizing commands into groups for syncing, authentication and inspecting
stored bookmarks.
"""

import logging
from typing import Annotated

import typer

from ..config import get_settings
from ..logging import LoggingConfig, setup_logging
from .commands import auth, bookmarks, sync

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="raindrop-sync",
    help="raindrop-sync: incremental Raindrop.io bookmark backup",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose debug logging",
        ),
    ] = False,
) -> None:
    """Global options for raindrop-sync.

    Configuration is read from RAINDROP_SYNC_* environment variables and a
    .env file in the working directory. RAINDROP_CLIENT_ID,
    RAINDROP_CLIENT_SECRET and RAINDROP_REDIRECT_URI are also honored.

    Examples:
      raindrop-sync auth url                 # Print the authorization URL
      raindrop-sync auth exchange CODE       # Store tokens for the default account
      raindrop-sync sync run                 # Fetch new bookmarks
      raindrop-sync bookmarks list -n 20     # Show stored bookmarks
    """
    try:
        config = LoggingConfig.from_settings(get_settings().logging)
    except ValueError:
        # Invalid settings are reported by the command that needs them
        config = None
    setup_logging(config, cli_mode=True, verbose=verbose)


app.add_typer(sync.app, name="sync", help="Sync bookmarks from Raindrop.io")
app.add_typer(auth.app, name="auth", help="OAuth authorization and token management")
app.add_typer(bookmarks.app, name="bookmarks", help="Inspect stored bookmarks")


def main() -> None:
    """Entry point for the raindrop-sync CLI application."""
    app()


if __name__ == "__main__":
    main()
