"""JSON file persistence for OAuth tokens.

Each account owns one ``tokens.json`` holding
``{"accessToken", "refreshToken", "expiresAt"}``. A missing file is the valid
"not yet authenticated" state and is never an error.
"""

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from ..exceptions import StorageError
from ..models import TokenSet

logger = logging.getLogger(__name__)


class TokenStore:
    """Load and save the token triple for a single account."""

    def __init__(self, path: Path | str):
        """Initialize the token store.

        Args:
            path: Location of the token JSON file
        """
        self.path = Path(path)

    def exists(self) -> bool:
        """Return True if a token file is present."""
        return self.path.is_file()

    def load(self) -> TokenSet | None:
        """Read tokens from disk.

        Returns:
            TokenSet | None: Stored tokens, or None when the file is absent

        Raises:
            StorageError: If the file exists but cannot be read or parsed
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to load tokens from {self.path}: {e}") from e

        try:
            return TokenSet.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            raise StorageError(f"Failed to load tokens from {self.path}: {e}") from e

    def save(self, tokens: TokenSet) -> None:
        """Replace the stored tokens.

        The new document is written next to the target and renamed into place
        so a crash never leaves a truncated token file behind.

        Raises:
            StorageError: If the file cannot be written
        """
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(
                json.dumps(tokens.to_file_dict(), indent=2), encoding="utf-8"
            )
            tmp_path.replace(self.path)
        except OSError as e:
            raise StorageError(f"Failed to save tokens to {self.path}: {e}") from e

        logger.debug(f"Saved tokens to {self.path}")

    def clear(self) -> None:
        """Delete the token file; a missing file is not an error."""
        try:
            self.path.unlink()
            logger.info(f"Removed tokens at {self.path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(f"Failed to clear tokens at {self.path}: {e}") from e
