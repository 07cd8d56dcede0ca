"""
Bill Sync Module.

Keeps the bill store synchronized with Congress.gov.

Components:
- BillImportOrchestrator: Sweep across sessions, subtypes and time windows
- BillSynchronizer: Per-bill create/update/skip with child replacement
- reconcile_dates / classify_status / categorize: Pure classifiers
- ErrorTracker: Per-bill error collection
- run_scheduled_import: Entry point for the external scheduler
"""

from legisync.services.bill_sync.category import categorize, importance_score, rank_trending
from legisync.services.bill_sync.dates import reconcile_dates
from legisync.services.bill_sync.error_tracker import ErrorTracker
from legisync.services.bill_sync.import_orchestrator import BillImportOrchestrator, ImportResult
from legisync.services.bill_sync.record_synchronizer import BillSynchronizer, SyncAction, SyncOutcome
from legisync.services.bill_sync.scheduled import ScheduledImportResult, run_scheduled_import
from legisync.services.bill_sync.status import classify_status

__all__ = [
    "BillImportOrchestrator",
    "ImportResult",
    "BillSynchronizer",
    "SyncAction",
    "SyncOutcome",
    "ErrorTracker",
    "reconcile_dates",
    "classify_status",
    "categorize",
    "importance_score",
    "rank_trending",
    "run_scheduled_import",
    "ScheduledImportResult",
]
