"""
Bill Import Orchestrator.

Drives one sweep across sessions, bill subtypes and month windows:

1. Acquire the sweep lock (abort as "locked" if held elsewhere)
2. Pre-flight liveness probe against Congress.gov
3. For each session (newest first) and subtype: list bills, then sync them
   in small concurrent batches with a pause between batches
4. Collect per-bill errors without aborting the sweep
5. Release the lock on every exit path
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from legisync.core.config import BILL_TYPES
from legisync.core.exceptions import UpstreamUnavailable
from legisync.integrations.congress.client import CongressClient
from legisync.integrations.congress.fetchers import PAGE_LIMIT, fetch_bills_for_type
from legisync.integrations.congress.processors import format_bill_number
from legisync.services.bill_sync.error_tracker import ErrorTracker
from legisync.services.bill_sync.record_synchronizer import (
    BillSynchronizer,
    SyncAction,
    SyncOutcome,
)
from legisync.services.locks.manager import LockManager
from legisync.services.sync_status import ImportPhase, ImportStatusTracker, import_status

logger = logging.getLogger(__name__)

MAX_ERRORS_IN_RESULT = 50


@dataclass
class ImportResult:
    """Summary returned by every sweep."""
    status: str  # "success" | "error" | "locked"
    imported: int = 0
    updated: int = 0
    skipped: int = 0
    fetched: int = 0
    failed: int = 0
    dropped_children: int = 0
    status_fallbacks: int = 0
    errors: List[str] = field(default_factory=list)
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def congress_range(start_congress: int, end_congress: int) -> List[int]:
    """
    Sessions to sweep, newest first.

    Example:
        >>> congress_range(119, 118)
        [119, 118]
    """
    high, low = max(start_congress, end_congress), min(start_congress, end_congress)
    return list(range(high, low - 1, -1))


class BillImportOrchestrator:
    """
    Orchestrates bill import sweeps.

    One sweep-scoped lease (``import_bills_{start}_{end}``) serializes
    concurrent invocations; failure to acquire it aborts immediately.
    """

    def __init__(
        self,
        client: CongressClient,
        synchronizer: BillSynchronizer,
        lock_manager: LockManager,
        bill_types: Sequence[str] = BILL_TYPES,
        batch_size: int = 2,
        batch_delay: float = 0.5,
        page_limit: int = PAGE_LIMIT,
        status_tracker: Optional[ImportStatusTracker] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            client: Congress.gov client
            synchronizer: Per-bill synchronizer
            lock_manager: Lease-based lock manager
            bill_types: Subtypes swept by default, in order
            batch_size: Bills synced concurrently per batch
            batch_delay: Pause between batches (seconds)
            page_limit: Page size for the list endpoint
            status_tracker: Progress tracker (defaults to the process-wide one)
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")

        self.client = client
        self.synchronizer = synchronizer
        self.lock_manager = lock_manager
        self.bill_types = list(bill_types)
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.page_limit = page_limit
        self.status = status_tracker or import_status

    def lock_key(self, start_congress: int, end_congress: int) -> str:
        return self.lock_manager.key("import_bills", start_congress, end_congress)

    def _resolve_types(self, bill_types: Optional[Sequence[str]]) -> List[str]:
        if not bill_types:
            return list(self.bill_types)
        resolved = [t.lower() for t in bill_types]
        unknown = [t for t in resolved if t not in BILL_TYPES]
        if unknown:
            raise ValueError(f"Unknown bill type(s): {', '.join(unknown)}")
        return resolved

    async def import_bills(
        self,
        start_congress: int = 119,
        end_congress: int = 119,
        bill_types: Optional[Sequence[str]] = None,
    ) -> ImportResult:
        """
        Run one sweep.

        Args:
            start_congress: First (newest) session
            end_congress: Last (oldest) session
            bill_types: Subtypes to sweep (defaults to all)

        Returns:
            ImportResult with status "success", "error" or "locked"

        Raises:
            ValueError: If an unknown bill type is requested
        """
        types = self._resolve_types(bill_types)
        lock_key = self.lock_key(start_congress, end_congress)

        if not await self.lock_manager.acquire(lock_key):
            logger.info(f"🔒 Another import process is running ({lock_key})")
            # A sweep live in this process keeps its progress
            if not self.status.is_running():
                self.status.mark_locked()
            return ImportResult(status="locked", message=f"Resource is locked: {lock_key}")

        self.status.start()
        result = ImportResult(status="success")
        errors = ErrorTracker()

        try:
            self.status.update_phase(ImportPhase.PREFLIGHT, "Checking Congress.gov availability...")
            await self.client.probe()

            logger.info(f"🚀 Starting bill import for Congresses {end_congress} to {start_congress}")

            for congress in congress_range(start_congress, end_congress):
                logger.info(f"📜 Processing the {congress}th Congress")
                for bill_type in types:
                    await self._import_type(congress, bill_type, result, errors)

            self.status.complete(success=True)
            logger.info(
                f"✅ Import finished: {result.imported} imported, {result.updated} updated, "
                f"{result.skipped} skipped, {result.failed} failed"
            )

        except UpstreamUnavailable as e:
            logger.error(f"❌ Pre-flight check failed: {e}")
            result.status = "error"
            result.message = str(e)
            self.status.add_error(str(e))
            self.status.complete(success=False)

        except Exception as e:
            logger.error(f"❌ Import failed: {e}", exc_info=True)
            result.status = "error"
            result.message = str(e)
            self.status.add_error(str(e))
            self.status.complete(success=False)

        finally:
            await self.lock_manager.release(lock_key)

        result.errors = errors.get_summary().get_error_messages(limit=MAX_ERRORS_IN_RESULT)
        return result

    async def _import_type(self, congress: int, bill_type: str, result: ImportResult, errors: ErrorTracker):
        """List and sync one subtype of one session; listing errors are collected."""
        self.status.update_scope(congress, bill_type)
        self.status.update_phase(ImportPhase.FETCHING, f"Fetching {bill_type.upper()} bills ({congress}th Congress)")

        try:
            bills = await fetch_bills_for_type(self.client, congress, bill_type, limit=self.page_limit)
        except Exception as e:
            errors.track_listing_error(congress, bill_type, e)
            self.status.add_error(f"{bill_type}/{congress}: {e}")
            return

        result.fetched += len(bills)
        self.status.increment("fetched", len(bills))

        if not bills:
            return

        self.status.update_phase(ImportPhase.SYNCING, f"Syncing {len(bills)} {bill_type.upper()} bills")
        total_batches = (len(bills) + self.batch_size - 1) // self.batch_size

        for index in range(0, len(bills), self.batch_size):
            batch = bills[index:index + self.batch_size]
            logger.debug(f"Processing batch {index // self.batch_size + 1} of {total_batches}")

            outcomes = await asyncio.gather(
                *(self._sync_one(congress, bill_type, bill, errors) for bill in batch)
            )
            for outcome in outcomes:
                self._record(outcome, result)

            if self.batch_delay:
                await asyncio.sleep(self.batch_delay)

    async def _sync_one(
        self,
        congress: int,
        bill_type: str,
        payload: Dict[str, Any],
        errors: ErrorTracker,
    ) -> Optional[SyncOutcome]:
        """Sync one bill, converting any failure into a tracked error."""
        try:
            return await self.synchronizer.sync(congress, bill_type, payload)
        except Exception as e:
            number = format_bill_number(bill_type, payload.get("number", "?"))
            errors.track_bill_error(number, e, context={"congress": congress, "bill_type": bill_type})
            self.status.add_error(f"{number}: {e}")
            return None

    def _record(self, outcome: Optional[SyncOutcome], result: ImportResult):
        if outcome is None:
            result.failed += 1
            self.status.increment("failed")
            return

        if outcome.action == SyncAction.CREATED:
            result.imported += 1
            self.status.increment("created")
        elif outcome.action == SyncAction.UPDATED:
            result.updated += 1
            self.status.increment("updated")
        else:
            result.skipped += 1
            self.status.increment("skipped")

        result.dropped_children += outcome.dropped_total
        self.status.increment("dropped_children", outcome.dropped_total)
        if outcome.status_fallback:
            result.status_fallbacks += 1
            self.status.increment("status_fallbacks")
