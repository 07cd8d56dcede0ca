"""
Cross-process mutual exclusion via a shared lease table.
"""

from legisync.services.locks.manager import LockManager
from legisync.services.locks.stores import InMemoryLeaseStore, SQLLeaseStore

__all__ = ["LockManager", "SQLLeaseStore", "InMemoryLeaseStore"]
