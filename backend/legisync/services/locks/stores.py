"""
Lease store implementations.

- SQLLeaseStore: the ``system_locks`` table, shared by every process
- InMemoryLeaseStore: dict-backed, for tests and single-process runs
"""

import logging
from datetime import datetime
from typing import Dict, List

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from legisync.core.interfaces.lease_store import Lease, LeaseStore
from legisync.models.lock import SystemLock
from legisync.utils.dates import as_utc

logger = logging.getLogger(__name__)


class SQLLeaseStore(LeaseStore):
    """Lease store backed by the ``system_locks`` table."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def insert(self, key: str, acquired_at: datetime) -> bool:
        async with self.session_maker() as session:
            session.add(SystemLock(lock_key=key, locked_at=acquired_at))
            try:
                await session.commit()
                return True
            except IntegrityError:
                # Unique violation on lock_key: someone else holds it
                await session.rollback()
                return False

    async def exists(self, key: str) -> bool:
        async with self.session_maker() as session:
            result = await session.execute(
                select(SystemLock.id).where(SystemLock.lock_key == key)
            )
            return result.first() is not None

    async def delete(self, key: str) -> None:
        async with self.session_maker() as session:
            await session.execute(delete(SystemLock).where(SystemLock.lock_key == key))
            await session.commit()

    async def delete_older_than(self, cutoff: datetime) -> int:
        async with self.session_maker() as session:
            result = await session.execute(
                delete(SystemLock).where(SystemLock.locked_at < cutoff)
            )
            await session.commit()
            return result.rowcount or 0

    async def list_leases(self, prefix: str = "") -> List[Lease]:
        async with self.session_maker() as session:
            stmt = select(SystemLock).order_by(SystemLock.locked_at)
            if prefix:
                stmt = stmt.where(SystemLock.lock_key.startswith(prefix, autoescape=True))
            result = await session.execute(stmt)
            return [
                Lease(key=row.lock_key, acquired_at=as_utc(row.locked_at))
                for row in result.scalars()
            ]


class InMemoryLeaseStore(LeaseStore):
    """
    Dict-backed lease store.

    Check-and-set in ``insert`` runs without awaiting, so it is atomic
    within one event loop.
    """

    def __init__(self):
        self._leases: Dict[str, datetime] = {}

    async def insert(self, key: str, acquired_at: datetime) -> bool:
        if key in self._leases:
            return False
        self._leases[key] = acquired_at
        return True

    async def exists(self, key: str) -> bool:
        return key in self._leases

    async def delete(self, key: str) -> None:
        self._leases.pop(key, None)

    async def delete_older_than(self, cutoff: datetime) -> int:
        stale = [key for key, acquired_at in self._leases.items() if acquired_at < cutoff]
        for key in stale:
            del self._leases[key]
        return len(stale)

    async def list_leases(self, prefix: str = "") -> List[Lease]:
        return [
            Lease(key=key, acquired_at=acquired_at)
            for key, acquired_at in sorted(self._leases.items(), key=lambda item: item[1])
            if key.startswith(prefix)
        ]
