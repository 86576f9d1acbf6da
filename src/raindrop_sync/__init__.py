"""raindrop-sync: incremental Raindrop.io bookmark backup.

This package pulls a user's bookmarks from Raindrop.io and keeps a local copy
up to date with support for:
- OAuth access/refresh token management
- Incremental, cursor-bounded fetching of the bookmark list
- Idempotent storage in DuckDB or as one JSON file per bookmark
- Sequential sync of several accounts with per-account isolation
"""

__version__ = "0.1.0"
