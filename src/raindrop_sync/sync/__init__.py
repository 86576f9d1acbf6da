"""Incremental sync engine."""

from .orchestrator import (
    AccountSyncResult,
    SyncOrchestrator,
    SyncSummary,
    SyncTarget,
)

__all__ = ["AccountSyncResult", "SyncOrchestrator", "SyncSummary", "SyncTarget"]
