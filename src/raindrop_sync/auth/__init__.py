"""OAuth token management and token persistence for Raindrop.io accounts."""

from .oauth import (
    TokenManager,
    TokenResult,
    build_authorize_url,
    is_token_expired,
)
from .token_store import TokenStore

__all__ = [
    "TokenManager",
    "TokenResult",
    "TokenStore",
    "build_authorize_url",
    "is_token_expired",
]
