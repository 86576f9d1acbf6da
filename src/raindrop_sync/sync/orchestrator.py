"""Sync orchestration across one or more Raindrop.io accounts.

Each account is processed in turn: load tokens, derive the incremental cursor
from what is already stored, fetch everything newer while persisting any
refreshed tokens as they arrive, then write the bookmarks in small batches.
Accounts run sequentially so requests never interleave against the
provider's rate limit, and a failure in one account is logged and recorded
without stopping the others.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import httpx

from ..api.client import RaindropClient
from ..auth.oauth import TokenManager
from ..auth.token_store import TokenStore
from ..config import (
    DEFAULT_ACCOUNT_ID,
    RaindropSyncSettings,
    load_accounts_file,
)
from ..exceptions import AuthenticationError, RaindropSyncError, StorageError
from ..models import (
    Bookmark,
    MultiAccountConfig,
    RaindropCredentials,
    TokenSet,
)
from ..storage import BatchResult, BookmarkStore, create_store

logger = logging.getLogger(__name__)


@dataclass
class SyncTarget:
    """Everything needed to sync one account."""

    account_id: str
    credentials: RaindropCredentials
    token_store: TokenStore
    store: BookmarkStore
    seed_tokens: TokenSet | None = None


@dataclass
class AccountSyncResult:
    """Outcome of syncing a single account."""

    account_id: str
    fetched: int = 0
    saved: int = 0
    skipped: int = 0
    failed: int = 0
    pages: int = 0
    cursor: str | None = None
    tokens_refreshed: bool = False
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class SyncSummary:
    """Totals and per-account breakdown of one sync run."""

    accounts: list[AccountSyncResult] = field(default_factory=list)

    @property
    def fetched(self) -> int:
        return sum(a.fetched for a in self.accounts)

    @property
    def saved(self) -> int:
        return sum(a.saved for a in self.accounts)

    @property
    def skipped(self) -> int:
        return sum(a.skipped for a in self.accounts)

    @property
    def succeeded(self) -> list[AccountSyncResult]:
        return [a for a in self.accounts if a.success]

    @property
    def failed_accounts(self) -> list[AccountSyncResult]:
        return [a for a in self.accounts if not a.success]

    @property
    def all_failed(self) -> bool:
        """True when no account could be processed at all."""
        return not self.succeeded

    @property
    def partial(self) -> bool:
        return bool(self.succeeded) and bool(self.failed_accounts)


class SyncOrchestrator:
    """Drive accounts through token validation, fetching and storage."""

    def __init__(
        self,
        settings: RaindropSyncSettings,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the orchestrator.

        Args:
            settings: Application settings
            http_client: Optional client to reuse; one is created per run otherwise
            sleep: Awaitable used for the pause between storage batches
        """
        self.settings = settings
        self.http_client = http_client
        self.sleep = sleep

    def build_targets(
        self, accounts: MultiAccountConfig | None = None
    ) -> list[SyncTarget]:
        """Resolve the accounts to sync.

        An explicit account list (or the configured accounts file) selects
        multi-account mode. Without one, a single ``default`` account is
        built from the process-level credentials.

        Raises:
            ValueError: If the configured accounts file is invalid
        """
        storage = self.settings.storage

        if accounts is None and self.settings.sync.accounts_file is not None:
            accounts = load_accounts_file(self.settings.sync.accounts_file)

        if accounts is not None and accounts.accounts:
            return [
                SyncTarget(
                    account_id=account.id,
                    credentials=account.credentials,
                    token_store=TokenStore(storage.tokens_path(account.id)),
                    store=create_store(storage, storage.account_dir(account.id)),
                    seed_tokens=account.tokens,
                )
                for account in accounts.accounts
            ]

        if not self.settings.has_process_credentials():
            logger.warning(
                "⚠️  RAINDROP_CLIENT_ID / RAINDROP_CLIENT_SECRET not set; "
                "expired tokens cannot be refreshed"
            )
        return [
            SyncTarget(
                account_id=DEFAULT_ACCOUNT_ID,
                credentials=self.settings.raindrop.credentials,
                token_store=TokenStore(storage.tokens_path(DEFAULT_ACCOUNT_ID)),
                store=create_store(storage, storage.account_dir(DEFAULT_ACCOUNT_ID)),
            )
        ]

    async def run_once(
        self,
        accounts: MultiAccountConfig | None = None,
        full: bool = False,
    ) -> SyncSummary:
        """Run one sync over every configured account.

        Args:
            accounts: Explicit accounts; defaults to the configured accounts
                file, then to single-account mode
            full: Ignore the stored cursor and walk every page

        Returns:
            SyncSummary: Totals plus one result per account
        """
        targets = self.build_targets(accounts)
        summary = SyncSummary()

        if self.http_client is not None:
            await self._run_targets(self.http_client, targets, summary, full)
        else:
            async with httpx.AsyncClient(
                timeout=self.settings.raindrop.request_timeout
            ) as http_client:
                await self._run_targets(http_client, targets, summary, full)

        logger.info(
            f"📊 Sync finished: {len(summary.succeeded)}/{len(summary.accounts)} account(s) ok, "
            f"{summary.fetched} fetched, {summary.saved} saved, {summary.skipped} skipped"
        )
        return summary

    async def _run_targets(
        self,
        http_client: httpx.AsyncClient,
        targets: list[SyncTarget],
        summary: SyncSummary,
        full: bool,
    ) -> None:
        raindrop = self.settings.raindrop
        token_manager = TokenManager(http_client, base_url=raindrop.auth_base_url)
        client = RaindropClient(
            http_client,
            token_manager,
            base_url=raindrop.api_base_url,
            page_size=raindrop.page_size,
            max_pages=raindrop.max_pages,
        )

        for target in targets:
            logger.info(f"🔍 Syncing account {target.account_id}")
            try:
                result = await self.sync_account(target, client, full=full)
            except RaindropSyncError as e:
                logger.error(f"❌ Failed to sync account {target.account_id}: {e}")
                result = AccountSyncResult(account_id=target.account_id, error=str(e))
            summary.accounts.append(result)

    async def sync_account(
        self, target: SyncTarget, client: RaindropClient, full: bool = False
    ) -> AccountSyncResult:
        """Sync one account.

        Raises:
            AuthenticationError: If no tokens exist or a refresh fails
            NetworkError: If a page request cannot be sent
            ApiError: If the provider rejects a page request
            StorageError: If the store cannot be initialized
        """
        tokens = target.token_store.load() or target.seed_tokens
        if tokens is None:
            raise AuthenticationError(
                f"No authentication tokens found for account {target.account_id}. "
                "Run 'raindrop-sync auth exchange' first."
            )

        target.store.initialize()
        cursor = None if full else target.store.most_recent_update()
        result = AccountSyncResult(account_id=target.account_id, cursor=cursor)

        if cursor:
            logger.info(f"📈 Fetching bookmarks updated after {cursor}")
        else:
            logger.info("🔄 Fetching all bookmarks")

        # Refreshed tokens are persisted as soon as they are issued, even if a
        # later page fails
        fetched = await client.fetch_all(
            target.credentials,
            tokens,
            since=cursor,
            on_tokens_refreshed=target.token_store.save,
        )
        result.fetched = len(fetched.bookmarks)
        result.pages = fetched.pages_fetched

        if fetched.updated_tokens is not None:
            result.tokens_refreshed = True
            logger.info("🔄 Refreshed auth tokens")

        logger.info(f"✅ Fetched {result.fetched} bookmark(s) in {result.pages} page(s)")

        batch_result = await self.save_in_batches(target.store, fetched.bookmarks)
        result.saved = batch_result.saved
        result.skipped = batch_result.skipped
        result.failed = batch_result.failed

        logger.info(f"💾 Saved {result.saved}, skipped {result.skipped} existing")
        return result

    async def save_in_batches(
        self, store: BookmarkStore, bookmarks: list[Bookmark]
    ) -> BatchResult:
        """Write bookmarks in fixed-size batches with a pause between them.

        A batch that fails as a whole is logged and counted as skipped; the
        following batches are still attempted.
        """
        batch_size = self.settings.sync.batch_size
        pause = self.settings.sync.batch_pause_seconds
        total = BatchResult()
        batch_count = (len(bookmarks) + batch_size - 1) // batch_size

        for number, start in enumerate(range(0, len(bookmarks), batch_size), 1):
            batch = bookmarks[start : start + batch_size]
            logger.debug(f"Processing batch {number}/{batch_count} ({len(batch)} items)")
            try:
                total += store.save_batch(batch)
            except StorageError as e:
                logger.error(f"❌ Error processing batch {number}: {e}")
                total += BatchResult(skipped=len(batch), failed=len(batch))

            if start + batch_size < len(bookmarks):
                await self.sleep(pause)

        return total
