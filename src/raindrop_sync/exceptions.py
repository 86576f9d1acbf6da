"""Exception hierarchy for raindrop-sync.

Authentication and fetch errors abort the sync of a single account; storage
errors on an individual record are counted as skips by the batch writer.
"""


class RaindropSyncError(Exception):
    """Base class for all raindrop-sync errors."""


class AuthenticationError(RaindropSyncError):
    """Token exchange or refresh failed, or no usable tokens exist."""


class NetworkError(RaindropSyncError):
    """Request-level transport failure (connection, timeout, protocol)."""


class ApiError(RaindropSyncError):
    """Non-2xx or unsuccessful response from the Raindrop API."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StorageError(RaindropSyncError):
    """I/O or schema failure in a bookmark or token store."""
