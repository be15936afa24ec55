"""Synchronization service orchestration."""

from .service import FileReport, SyncOutcome, SyncReport, SyncService

__all__ = ["FileReport", "SyncOutcome", "SyncReport", "SyncService"]
