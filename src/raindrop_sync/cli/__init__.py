"""raindrop-sync CLI package.

This package provides the command-line interface for syncing bookmarks,
managing OAuth tokens, and inspecting local storage.
"""

from .main import app, main

__all__ = ["app", "main"]
