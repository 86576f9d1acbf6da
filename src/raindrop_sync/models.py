"""Pydantic schemas for Raindrop.io credentials, tokens and bookmarks.

This module provides the data validation layer shared by the auth, API,
storage and sync packages. Field aliases follow the provider's camelCase wire
format so raw API payloads and token files validate directly.
"""

import re
import time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .timestamps import parse_timestamp


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class RaindropCredentials(BaseSchema):
    """OAuth application credentials for one Raindrop.io account."""

    client_id: str = Field(..., description="Raindrop OAuth client ID")
    client_secret: str = Field(..., description="Raindrop OAuth client secret")
    redirect_uri: str = Field(
        default="http://localhost:3000/callback",
        description="OAuth redirect URI registered with the application",
    )

    def validate_credentials(self) -> bool:
        """Return True when both client ID and secret are present."""
        return bool(self.client_id and self.client_secret)


class TokenSet(BaseSchema):
    """Access/refresh token pair with its absolute expiry.

    ``expires_at`` is the wall-clock instant (epoch milliseconds) after which
    the access token must be treated as invalid.
    """

    access_token: str = Field(..., alias="accessToken")
    refresh_token: str = Field(..., alias="refreshToken")
    expires_at: int = Field(..., alias="expiresAt")

    def to_file_dict(self) -> dict[str, Any]:
        """Serialize using the camelCase keys of the token file."""
        return self.model_dump(by_alias=True)


class TokenResponse(BaseModel):
    """Body returned by the OAuth token endpoint."""

    model_config = ConfigDict(extra="ignore")

    access_token: str
    refresh_token: str | None = None
    expires_in: int
    token_type: str | None = None

    def to_token_set(
        self, previous_refresh_token: str | None = None, now_ms: int | None = None
    ) -> TokenSet:
        """Convert to a TokenSet anchored at ``now_ms``.

        A rotated refresh token replaces the old one; when the provider omits
        it the previous refresh token is kept.
        """
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        refresh_token = self.refresh_token or previous_refresh_token
        if not refresh_token:
            raise ValueError("Token response did not include a refresh token")
        return TokenSet(
            access_token=self.access_token,
            refresh_token=refresh_token,
            expires_at=now_ms + self.expires_in * 1000,
        )


class Bookmark(BaseModel):
    """A single raindrop (bookmark) as returned by the list endpoint.

    Only the fields the sync engine relies on are typed; the complete
    provider payload is preserved in ``metadata`` and is what gets stored.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: int = Field(..., alias="_id", description="Provider-assigned bookmark ID")
    link: str = Field(..., description="Bookmarked URL")
    title: str = Field(default="")
    created: str | None = None
    last_update: str = Field(..., alias="lastUpdate")
    metadata: dict[str, Any] = Field(default_factory=dict, exclude=True)

    @field_validator("title", mode="before")
    @classmethod
    def coerce_title(cls, v: Any) -> Any:
        """Raindrop occasionally returns null titles."""
        if v is None:
            return ""
        return v

    @field_validator("last_update")
    @classmethod
    def validate_last_update(cls, v: str) -> str:
        """The cursor logic compares these, so they must parse."""
        parse_timestamp(v)
        return v

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "Bookmark":
        """Build a bookmark from a raw API item, keeping the raw payload."""
        return cls.model_validate({**item, "metadata": dict(item)})

    @property
    def url(self) -> str:
        """Alias for ``link`` matching the storage column name."""
        return self.link


class StoredBookmark(BaseSchema):
    """Durable projection of a bookmark as read back from a store."""

    raindrop_id: int
    url: str
    title: str
    raindrop_metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def last_update(self) -> str | None:
        """Return the stored ``lastUpdate`` value, if any."""
        value = self.raindrop_metadata.get("lastUpdate")
        return str(value) if value is not None else None


class RaindropAccount(BaseModel):
    """One entry of a multi-account configuration file."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(..., description="Local account identifier")
    client_id: str = Field(..., alias="clientId")
    client_secret: str = Field(..., alias="clientSecret")
    redirect_uri: str = Field(
        default="http://localhost:3000/callback", alias="redirectUri"
    )
    access_token: str | None = Field(default=None, alias="accessToken")
    refresh_token: str | None = Field(default=None, alias="refreshToken")
    expires_at: int | None = Field(default=None, alias="expiresAt")

    @field_validator("id")
    @classmethod
    def validate_account_id(cls, v: str) -> str:
        """Account IDs become directory names, so keep them filesystem-safe."""
        if not v or not re.match(r"^[a-zA-Z0-9_-]+$", v):
            raise ValueError(
                f"Invalid account id: {v!r}. "
                "Use only alphanumeric characters, dashes, and underscores"
            )
        return v

    @property
    def credentials(self) -> RaindropCredentials:
        return RaindropCredentials(
            client_id=self.client_id,
            client_secret=self.client_secret,
            redirect_uri=self.redirect_uri,
        )

    @property
    def tokens(self) -> TokenSet | None:
        """Seed tokens from the config file, when all three parts are present."""
        if self.access_token and self.refresh_token and self.expires_at is not None:
            return TokenSet(
                access_token=self.access_token,
                refresh_token=self.refresh_token,
                expires_at=self.expires_at,
            )
        return None


class MultiAccountConfig(BaseModel):
    """List of independently synced accounts."""

    accounts: list[RaindropAccount] = Field(default_factory=list)

    @field_validator("accounts")
    @classmethod
    def validate_unique_ids(cls, v: list[RaindropAccount]) -> list[RaindropAccount]:
        """Each account owns an isolated storage directory keyed by its ID."""
        ids = [account.id for account in v]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"Duplicate account ids: {', '.join(duplicates)}")
        return v


class RaindropListResponse(BaseModel):
    """Envelope of ``GET /raindrops/{collection}``."""

    model_config = ConfigDict(extra="ignore")

    result: bool
    items: list[dict[str, Any]] = Field(default_factory=list)
    count: int = 0
