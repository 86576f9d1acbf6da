"""Async client for the Raindrop.io REST API.

Only the bookmark list endpoint is covered. Pages are requested newest-created
first and every page is authenticated through the TokenManager, so a long walk
survives an access token expiring midway.

Incremental fetches stop at the first page containing a bookmark whose
``lastUpdate`` is at or before the cursor. Because pages are ordered by
*creation* date while the cutoff compares *modification* dates, an old
bookmark edited recently can sit beyond the boundary page and be missed. This
matches the behaviour existing consumers of the store rely on.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import httpx
from pydantic import ValidationError

from ..auth.oauth import TokenManager
from ..exceptions import ApiError, NetworkError
from ..models import Bookmark, RaindropCredentials, RaindropListResponse, TokenSet
from ..timestamps import is_newer

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://api.raindrop.io/rest/v1"
DEFAULT_PAGE_SIZE = 50
DEFAULT_MAX_PAGES = 100

# Collection 0 is Raindrop's pseudo-collection for "all bookmarks"
ALL_BOOKMARKS_COLLECTION = 0


@dataclass
class FetchResult:
    """Bookmarks collected by :meth:`RaindropClient.fetch_all`."""

    bookmarks: list[Bookmark] = field(default_factory=list)
    updated_tokens: TokenSet | None = None
    pages_fetched: int = 0
    reached_cursor: bool = False


class RaindropClient:
    """Paginated reader for a user's raindrops."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        token_manager: TokenManager,
        base_url: str = DEFAULT_API_BASE_URL,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_pages: int = DEFAULT_MAX_PAGES,
    ):
        """Initialize the client.

        Args:
            http_client: Async HTTP client shared with the token manager
            token_manager: Supplies a valid access token before each page
            base_url: REST API root
            page_size: Items requested per page
            max_pages: Hard cap on pages walked in one fetch
        """
        self.http_client = http_client
        self.token_manager = token_manager
        self.base_url = base_url.rstrip("/")
        self.page_size = page_size
        self.max_pages = max_pages

    async def get_page(
        self, access_token: str, page: int
    ) -> RaindropListResponse:
        """Fetch one page of bookmarks.

        Raises:
            NetworkError: On transport failure
            ApiError: On a non-2xx status or an unsuccessful/malformed body
        """
        url = f"{self.base_url}/raindrops/{ALL_BOOKMARKS_COLLECTION}"
        params: dict[str, Any] = {
            "page": page,
            "perpage": self.page_size,
            "sort": "-created",
        }
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

        try:
            response = await self.http_client.get(url, params=params, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            message = _api_error_message(e.response)
            raise ApiError(
                f"API request failed: {message}", status_code=e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            raise NetworkError(f"API request failed: {e}") from e

        try:
            body = RaindropListResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise ApiError(
                f"API request failed: malformed response ({e})",
                status_code=response.status_code,
            ) from e

        if not body.result:
            raise ApiError(
                f"API request failed: {_api_error_message(response)}",
                status_code=response.status_code,
            )
        return body

    async def fetch_all(
        self,
        credentials: RaindropCredentials,
        tokens: TokenSet,
        since: str | None = None,
        on_tokens_refreshed: Callable[[TokenSet], None] | None = None,
    ) -> FetchResult:
        """Walk the list endpoint and collect bookmarks.

        Args:
            credentials: Account credentials, used if a refresh is needed
            tokens: Current tokens
            since: Only keep bookmarks with ``lastUpdate`` strictly after this
                ISO-8601 cursor; stops at the first page that crosses it
            on_tokens_refreshed: Called with every new TokenSet as soon as it
                is issued, before the next page is requested

        Returns:
            FetchResult: Collected bookmarks and the last refreshed TokenSet,
            if any refresh happened

        Raises:
            AuthenticationError: If a token refresh fails
            NetworkError: On transport failure
            ApiError: On any unsuccessful page
        """
        result = FetchResult()
        current_tokens = tokens
        page = 0

        while page < self.max_pages:
            token_result = await self.token_manager.ensure_valid(
                credentials, current_tokens
            )
            if token_result.updated_tokens is not None:
                current_tokens = token_result.updated_tokens
                result.updated_tokens = token_result.updated_tokens
                if on_tokens_refreshed is not None:
                    on_tokens_refreshed(token_result.updated_tokens)

            body = await self.get_page(token_result.access_token, page)
            result.pages_fetched += 1

            try:
                bookmarks = [Bookmark.from_api(item) for item in body.items]
            except ValidationError as e:
                raise ApiError(f"API returned an invalid bookmark on page {page}: {e}") from e

            if since is not None:
                newer = [b for b in bookmarks if is_newer(b.last_update, since)]
                if len(newer) < len(bookmarks):
                    result.bookmarks.extend(newer)
                    result.reached_cursor = True
                    logger.debug(
                        f"Page {page} crosses cursor {since}: kept {len(newer)}/{len(bookmarks)}"
                    )
                    break
                bookmarks = newer

            result.bookmarks.extend(bookmarks)
            logger.debug(
                f"Fetched page {page} ({len(bookmarks)} items, {body.count} total)"
            )

            if (page + 1) * self.page_size >= body.count or not body.items:
                break
            page += 1
        else:
            logger.warning(
                f"⚠️  Stopped after {self.max_pages} pages; remaining bookmarks were not fetched"
            )

        return result


def _api_error_message(response: httpx.Response) -> str:
    try:
        body: Any = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        for key in ("errorMessage", "error"):
            if body.get(key):
                return str(body[key])
    return response.reason_phrase
