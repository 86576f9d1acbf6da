"""OAuth authorization commands for the raindrop-sync CLI.

The interactive part of the authorization-code flow happens in a browser:
``auth url`` prints the address to open, and the ``code`` query parameter
Raindrop appends to the redirect URI is passed to ``auth exchange``.
"""

import asyncio
import logging
from datetime import datetime, timezone

import httpx
import typer

from raindrop_sync.auth import TokenManager, build_authorize_url, is_token_expired
from raindrop_sync.config import get_settings
from raindrop_sync.exceptions import RaindropSyncError
from raindrop_sync.sync import SyncOrchestrator, SyncTarget

from .sync import find_target

app = typer.Typer(help="OAuth authorization and token management")
logger = logging.getLogger(__name__)

AccountOption = typer.Option(
    None, "--account", help="Account ID from the accounts file (default: the only one)"
)


def _resolve(account_id: str | None) -> SyncTarget:
    settings = get_settings()
    try:
        targets = SyncOrchestrator(settings).build_targets()
    except ValueError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e
    return find_target(targets, account_id)


@app.command("url")
def auth_url(
    state: str | None = typer.Option(
        None, "--state", help="Opaque value echoed back to the redirect URI"
    ),
    account: str | None = AccountOption,
) -> None:
    """Print the Raindrop authorization URL to open in a browser."""
    target = _resolve(account)
    if not target.credentials.client_id:
        logger.error("❌ RAINDROP_CLIENT_ID is not configured")
        raise typer.Exit(1)

    url = build_authorize_url(
        target.credentials, state=state, base_url=get_settings().raindrop.auth_base_url
    )
    logger.info("🔐 Open this URL in your browser and approve access:")
    typer.echo(url)


@app.command("exchange")
def auth_exchange(
    code: str = typer.Argument(..., help="Authorization code from the redirect URI"),
    account: str | None = AccountOption,
) -> None:
    """Exchange an authorization code for tokens and store them."""
    settings = get_settings()
    target = _resolve(account)

    if not target.credentials.validate_credentials():
        logger.error("❌ Client ID and secret are required to exchange a code")
        raise typer.Exit(1)

    async def _exchange() -> None:
        async with httpx.AsyncClient(
            timeout=settings.raindrop.request_timeout
        ) as http_client:
            manager = TokenManager(http_client, base_url=settings.raindrop.auth_base_url)
            tokens = await manager.exchange_code(target.credentials, code)
        target.token_store.save(tokens)

    try:
        asyncio.run(_exchange())
    except RaindropSyncError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e

    logger.info(f"✅ Authentication complete for account {target.account_id}")
    logger.info("💡 You can now run: raindrop-sync sync run")


@app.command("status")
def auth_status(account: str | None = AccountOption) -> None:
    """Show whether tokens are stored and when the access token expires."""
    target = _resolve(account)

    try:
        tokens = target.token_store.load()
    except RaindropSyncError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e

    source = "token file"
    if tokens is None:
        tokens = target.seed_tokens
        source = "accounts file"
    if tokens is None:
        logger.info(f"❌ No tokens for account {target.account_id}")
        raise typer.Exit(1)

    expires = datetime.fromtimestamp(tokens.expires_at / 1000, tz=timezone.utc)
    state = "expired (will refresh on next sync)" if is_token_expired(tokens) else "valid"
    logger.info(f"👤 Account: {target.account_id}")
    logger.info(f"   Tokens from: {source}")
    logger.info(f"   Access token: {state}, expires {expires.isoformat()}")


@app.command("logout")
def auth_logout(account: str | None = AccountOption) -> None:
    """Delete the stored tokens for an account."""
    target = _resolve(account)
    try:
        target.token_store.clear()
    except RaindropSyncError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e
    logger.info(f"✅ Cleared tokens for account {target.account_id}")
