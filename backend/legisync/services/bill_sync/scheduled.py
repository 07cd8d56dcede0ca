"""
Scheduled import entry point.

Invoked by an external scheduler on a fixed interval. Cleans up stale
per-bill leases, refuses to start while a recent sweep still holds its lease,
force-releases leases that have been held implausibly long, then runs a
two-session sweep.
"""

import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from legisync.models.bill import Bill
from legisync.services.bill_sync.import_orchestrator import BillImportOrchestrator, ImportResult
from legisync.services.locks.manager import LockManager
from legisync.utils.dates import as_utc, utcnow

logger = logging.getLogger(__name__)

IMPORT_LOCK_PREFIX = "import_bills_"


@dataclass
class ScheduledImportResult:
    status: str  # "success" | "error" | "locked"
    message: str
    result: Optional[ImportResult] = None
    execution_time: float = 0.0
    final_bill_count: int = 0
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


async def count_bills(session_maker: async_sessionmaker[AsyncSession]) -> int:
    """Number of stored bills; doubles as a database connectivity check."""
    async with session_maker() as session:
        return (await session.execute(select(func.count()).select_from(Bill))).scalar_one()


async def reap_stale_leases(
    lock_manager: LockManager,
    older_than: timedelta,
    clock: Callable[[], datetime] = utcnow,
) -> int:
    """
    Release leases older than ``older_than``, except sweep leases.

    Sweep leases are left to the force-release threshold so a long sweep
    still blocks the scheduler until it is implausibly old.
    """
    removed = 0
    for lease in await lock_manager.active_leases():
        if lease.key.startswith(IMPORT_LOCK_PREFIX):
            continue
        if clock() - as_utc(lease.acquired_at) > older_than:
            await lock_manager.release(lease.key)
            removed += 1
    if removed:
        logger.info(f"🧹 Reaped {removed} stale lease(s)")
    return removed


async def run_scheduled_import(
    orchestrator: BillImportOrchestrator,
    lock_manager: LockManager,
    session_maker: async_sessionmaker[AsyncSession],
    start_congress: int = 119,
    end_congress: int = 118,
    stale_after: timedelta = timedelta(minutes=10),
    force_after: timedelta = timedelta(minutes=30),
    clock: Callable[[], datetime] = utcnow,
) -> ScheduledImportResult:
    """
    Run the scheduled sweep.

    Args:
        orchestrator: Import orchestrator
        lock_manager: Lock manager sharing the orchestrator's lease store
        session_maker: Session factory (connectivity check, bill count)
        start_congress: Newest session to sweep
        end_congress: Oldest session to sweep
        stale_after: Non-import leases older than this are reaped up front
        force_after: Import leases older than this are force-released

    Returns:
        ScheduledImportResult; never raises
    """
    logger.info("=== SCHEDULED IMPORT STARTED ===")
    try:
        initial_count = await count_bills(session_maker)
        logger.info(f"Database connectivity: OK ({initial_count} bills)")

        await reap_stale_leases(lock_manager, stale_after, clock)

        for lease in await lock_manager.active_leases(IMPORT_LOCK_PREFIX):
            age = clock() - as_utc(lease.acquired_at)
            age_minutes = int(age.total_seconds() // 60)
            logger.info(f"Found active import lock: {lease.key} ({age_minutes} minutes old)")

            if age <= force_after:
                return ScheduledImportResult(
                    status="locked",
                    message="Another import process is currently running",
                    details={
                        "lock_key": lease.key,
                        "locked_at": as_utc(lease.acquired_at).isoformat(),
                        "age_minutes": age_minutes,
                    },
                )

            logger.warning(f"⚠️ Lock {lease.key} is very old, forcing cleanup")
            await lock_manager.release(lease.key)

        started = time.monotonic()
        result = await orchestrator.import_bills(start_congress, end_congress)
        execution_time = time.monotonic() - started

        final_count = await count_bills(session_maker)
        logger.info(f"=== SCHEDULED IMPORT COMPLETED === ({final_count} bills, {execution_time:.1f}s)")

        if result.status == "success":
            message = "Import completed successfully"
        else:
            message = result.message or f"Import finished with status {result.status}"

        return ScheduledImportResult(
            status=result.status,
            message=message,
            result=result,
            execution_time=execution_time,
            final_bill_count=final_count,
        )

    except Exception as e:
        logger.error(f"=== SCHEDULED IMPORT FAILED === {e}", exc_info=True)
        return ScheduledImportResult(status="error", message=str(e))
