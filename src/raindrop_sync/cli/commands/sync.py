"""Bookmark synchronization commands for the raindrop-sync CLI."""

import asyncio
import logging
from dataclasses import replace
from pathlib import Path

import typer

from raindrop_sync.config import get_settings
from raindrop_sync.logging import LoggingConfig, setup_logging
from raindrop_sync.sync import SyncOrchestrator, SyncSummary, SyncTarget

app = typer.Typer(help="Sync bookmarks from Raindrop.io")
logger = logging.getLogger(__name__)


def find_target(targets: list[SyncTarget], account_id: str | None) -> SyncTarget:
    """Pick one account from the resolved targets.

    Args:
        targets: Accounts resolved from configuration
        account_id: Requested account; the only account when omitted

    Raises:
        typer.BadParameter: If the account is unknown or ambiguous
    """
    if account_id is None:
        if len(targets) == 1:
            return targets[0]
        ids = ", ".join(t.account_id for t in targets)
        raise typer.BadParameter(f"Several accounts configured ({ids}); pass --account")

    for target in targets:
        if target.account_id == account_id:
            return target
    raise typer.BadParameter(f"Unknown account: {account_id}")


def _log_summary(summary: SyncSummary) -> None:
    logger.info("📊 Sync summary:")
    for account in summary.accounts:
        if account.success:
            logger.info(
                f"  ✅ {account.account_id}: fetched {account.fetched}, "
                f"saved {account.saved}, skipped {account.skipped}"
            )
        else:
            logger.info(f"  ❌ {account.account_id}: {account.error}")
    logger.info(
        f"  Total: fetched {summary.fetched}, saved {summary.saved}, "
        f"skipped {summary.skipped}"
    )


@app.command("run")
def sync_run(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging"
    ),
    full: bool = typer.Option(
        False,
        "--full",
        "-f",
        help="Ignore the stored cursor and walk every page",
    ),
    accounts_file: Path | None = typer.Option(
        None,
        "--accounts-file",
        "-a",
        help="YAML/JSON file listing accounts (overrides RAINDROP_SYNC_SYNC__ACCOUNTS_FILE)",
    ),
) -> None:
    """Fetch new bookmarks for every configured account.

    By default only bookmarks updated after the newest stored one are
    fetched. Use --full to re-walk the whole bookmark list; bookmarks already
    stored are still skipped.

    Exits with status 1 only when no account could be synced.
    """
    try:
        settings = get_settings()
        if verbose:
            # The root callback has already installed handlers; replace them
            setup_logging(
                replace(
                    LoggingConfig.from_settings(settings.logging),
                    force_reconfigure=True,
                ),
                cli_mode=True,
                verbose=True,
            )
        if accounts_file is not None:
            settings = settings.model_copy(
                update={
                    "sync": settings.sync.model_copy(
                        update={"accounts_file": accounts_file}
                    )
                }
            )
        orchestrator = SyncOrchestrator(settings)

        mode = "FULL" if full else "INCREMENTAL"
        logger.info(f"🚀 Starting {mode} Raindrop sync")
        summary = asyncio.run(orchestrator.run_once(full=full))
    except ValueError as e:
        logger.error(f"❌ Sync failed: {e}")
        raise typer.Exit(1) from e

    _log_summary(summary)

    if summary.all_failed:
        logger.error("❌ No account could be synced")
        raise typer.Exit(1)
    if summary.partial:
        logger.warning(
            f"⚠️  {len(summary.failed_accounts)} account(s) failed; see errors above"
        )
