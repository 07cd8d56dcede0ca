"""
Abstract Lease Store Interface.
Defines the contract that every lock backend must implement.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List


@dataclass(frozen=True)
class Lease:
    """A held lock: one row per key."""
    key: str
    acquired_at: datetime


class LeaseStore(ABC):
    """
    Abstract base class for lease persistence.

    The store is the only state shared between processes. It must
    guarantee that at most one lease exists per key, so that a
    conflicting ``insert`` reports failure instead of overwriting.
    """

    @abstractmethod
    async def insert(self, key: str, acquired_at: datetime) -> bool:
        """
        Inserts a lease row for ``key``.

        Returns:
            True if the row was created, False if a lease for the key already exists
        """
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Returns True if a lease is currently held for ``key``."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Deletes the lease for ``key`` (no-op if absent)."""
        pass

    @abstractmethod
    async def delete_older_than(self, cutoff: datetime) -> int:
        """
        Deletes every lease acquired before ``cutoff``.

        Returns:
            Number of leases removed
        """
        pass

    @abstractmethod
    async def list_leases(self, prefix: str = "") -> List[Lease]:
        """Returns all leases whose key starts with ``prefix``."""
        pass
