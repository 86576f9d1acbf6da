"""OAuth token lifecycle for Raindrop.io.

Raindrop access tokens expire; the refresh token is exchanged for a new pair
at ``POST /oauth/access_token``. The manager never mutates a TokenSet: it
returns new values and leaves persistence to the caller.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from ..exceptions import AuthenticationError
from ..models import RaindropCredentials, TokenResponse, TokenSet

logger = logging.getLogger(__name__)

DEFAULT_AUTH_BASE_URL = "https://raindrop.io"

# Tokens are treated as expired this long before the provider's own deadline
EXPIRY_MARGIN_MS = 5 * 60 * 1000


def _now_ms() -> int:
    return int(time.time() * 1000)


def build_authorize_url(
    credentials: RaindropCredentials,
    state: str | None = None,
    base_url: str = DEFAULT_AUTH_BASE_URL,
) -> str:
    """Build the URL a user opens to grant access.

    Args:
        credentials: Application credentials
        state: Optional opaque value echoed back to the redirect URI
        base_url: OAuth host

    Returns:
        str: Fully qualified authorize URL
    """
    params = {
        "client_id": credentials.client_id,
        "redirect_uri": credentials.redirect_uri,
        "response_type": "code",
    }
    if state:
        params["state"] = state
    return f"{base_url.rstrip('/')}/oauth/authorize?{urlencode(params)}"


def is_token_expired(tokens: TokenSet, now_ms: int | None = None) -> bool:
    """Return True once ``now`` is within the safety margin of expiry."""
    if now_ms is None:
        now_ms = _now_ms()
    return now_ms >= tokens.expires_at - EXPIRY_MARGIN_MS


@dataclass(frozen=True)
class TokenResult:
    """Outcome of :meth:`TokenManager.ensure_valid`."""

    access_token: str
    updated_tokens: TokenSet | None = None


class TokenManager:
    """Hand out access tokens that are valid for immediate use."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str = DEFAULT_AUTH_BASE_URL,
        clock: Callable[[], int] = _now_ms,
    ):
        """Initialize the token manager.

        Args:
            http_client: Async HTTP client used for token endpoint calls
            base_url: OAuth host
            clock: Returns the current time in epoch milliseconds
        """
        self.http_client = http_client
        self.base_url = base_url.rstrip("/")
        self.clock = clock

    @property
    def token_url(self) -> str:
        return f"{self.base_url}/oauth/access_token"

    async def ensure_valid(
        self, credentials: RaindropCredentials, tokens: TokenSet
    ) -> TokenResult:
        """Return a usable access token, refreshing it when expired.

        Failures are not retried here; the caller decides whether to abort or
        re-run the whole sync.

        Raises:
            AuthenticationError: If the refresh exchange fails
        """
        if not is_token_expired(tokens, self.clock()):
            return TokenResult(access_token=tokens.access_token)

        logger.info("🔄 Access token expired, refreshing")
        updated = await self.refresh(credentials, tokens.refresh_token)
        return TokenResult(access_token=updated.access_token, updated_tokens=updated)

    async def refresh(
        self, credentials: RaindropCredentials, refresh_token: str
    ) -> TokenSet:
        """Exchange a refresh token for a new TokenSet.

        Raises:
            AuthenticationError: If the exchange fails
        """
        data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": credentials.client_id,
            "client_secret": credentials.client_secret,
        }
        return await self._request_tokens(
            data, "Token refresh failed", previous_refresh_token=refresh_token
        )

    async def exchange_code(
        self, credentials: RaindropCredentials, code: str
    ) -> TokenSet:
        """Exchange an authorization code obtained from the authorize URL.

        Raises:
            AuthenticationError: If the exchange fails
        """
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": credentials.client_id,
            "client_secret": credentials.client_secret,
            "redirect_uri": credentials.redirect_uri,
        }
        return await self._request_tokens(data, "OAuth token exchange failed")

    async def _request_tokens(
        self,
        data: dict[str, str],
        failure_prefix: str,
        previous_refresh_token: str | None = None,
    ) -> TokenSet:
        try:
            response = await self.http_client.post(self.token_url, data=data)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            detail = _error_detail(e.response)
            logger.error(f"{failure_prefix}: {e.response.status_code} - {detail}")
            raise AuthenticationError(f"{failure_prefix}: {detail}") from e
        except httpx.HTTPError as e:
            logger.error(f"{failure_prefix}: {e}")
            raise AuthenticationError(f"{failure_prefix}: {e}") from e

        try:
            body = TokenResponse.model_validate(response.json())
            return body.to_token_set(previous_refresh_token, now_ms=self.clock())
        except (ValueError, ValidationError) as e:
            raise AuthenticationError(
                f"{failure_prefix}: malformed token response ({e})"
            ) from e


def _error_detail(response: httpx.Response) -> str:
    """Pull the provider's error message out of a failed response."""
    try:
        body: Any = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        for key in ("error_description", "error", "errorMessage"):
            if body.get(key):
                return str(body[key])
    return response.reason_phrase
