"""
Lease-based Lock Manager.

Cross-process mutual exclusion over a shared lease table. Every acquire
first reaps leases older than the staleness threshold, so a crashed holder
cannot block a resource forever.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import AsyncIterator, Callable, List, Optional

from legisync.core.exceptions import LockContention
from legisync.core.interfaces.lease_store import Lease, LeaseStore
from legisync.utils.dates import utcnow

logger = logging.getLogger(__name__)


class LockManager:
    """
    Acquires and releases named leases.

    Release is unconditional by key: there is no ownership token, so a
    key must only be held by one caller for a bounded window.
    """

    def __init__(
        self,
        store: LeaseStore,
        stale_after: timedelta = timedelta(minutes=5),
        poll_interval: float = 1.0,
        default_timeout: float = 5.0,
        key_separator: str = "_",
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize lock manager.

        Args:
            store: Lease persistence backend
            stale_after: Age after which a lease is presumed abandoned
            poll_interval: Seconds between checks while a key is held elsewhere
            default_timeout: Seconds to wait when ``acquire`` gets no timeout
            key_separator: Joins parts in ``key()``
            clock: Source of "now" (UTC)
        """
        self.store = store
        self.stale_after = stale_after
        self.poll_interval = poll_interval
        self.default_timeout = default_timeout
        self.key_separator = key_separator
        self.clock = clock

    def key(self, *parts: object) -> str:
        """
        Build a lock key.

        Example:
            >>> manager.key("import_bills", 119, 118)
            'import_bills_119_118'
        """
        return self.key_separator.join(str(part) for part in parts)

    async def reap_stale(self, older_than: Optional[timedelta] = None) -> int:
        """Delete leases older than the staleness threshold."""
        cutoff = self.clock() - (older_than or self.stale_after)
        removed = await self.store.delete_older_than(cutoff)
        if removed:
            logger.info(f"🧹 Reaped {removed} stale lease(s) older than {cutoff.isoformat()}")
        return removed

    async def acquire(self, key: str, timeout: Optional[float] = None) -> bool:
        """
        Try to take the lease for ``key``.

        Inserts a lease row; if the key is held, polls until the row
        disappears or the timeout elapses, retrying the insert when free.

        Args:
            key: Lock key
            timeout: Seconds to wait before giving up

        Returns:
            True if the lease was acquired, False on timeout or store error
        """
        timeout = self.default_timeout if timeout is None else timeout
        deadline = time.monotonic() + timeout

        try:
            await self.reap_stale()

            if await self.store.insert(key, self.clock()):
                logger.info(f"🔒 Lock acquired: {key}")
                return True

            while time.monotonic() < deadline:
                await asyncio.sleep(self.poll_interval)
                if await self.store.exists(key):
                    continue
                if await self.store.insert(key, self.clock()):
                    logger.info(f"🔒 Lock acquired after retry: {key}")
                    return True

            logger.info(f"⏳ Failed to acquire lock: {key} (timeout after {timeout}s)")
            return False

        except Exception as e:
            logger.error(f"❌ Error acquiring lock {key}: {e}", exc_info=True)
            return False

    async def release(self, key: str) -> None:
        """Delete the lease for ``key``. Errors are logged, not raised."""
        try:
            await self.store.delete(key)
            logger.info(f"🔓 Lock released: {key}")
        except Exception as e:
            logger.error(f"❌ Error releasing lock {key}: {e}", exc_info=True)

    async def active_leases(self, prefix: str = "") -> List[Lease]:
        """List currently held leases whose key starts with ``prefix``."""
        return await self.store.list_leases(prefix)

    @asynccontextmanager
    async def hold(self, key: str, timeout: Optional[float] = None) -> AsyncIterator[str]:
        """
        Hold a lease for the duration of a block.

        Raises:
            LockContention: If the lease could not be acquired

        Example:
            >>> async with manager.hold(manager.key("generate_analysis", bill_id)):
            ...     await do_work()
        """
        if not await self.acquire(key, timeout):
            raise LockContention(key)
        try:
            yield key
        finally:
            await self.release(key)
