"""Centralized logging setup for raindrop-sync."""

from .config import LoggingConfig, setup_logging

__all__ = ["LoggingConfig", "setup_logging"]
