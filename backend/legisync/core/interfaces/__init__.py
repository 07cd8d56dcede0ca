from .lease_store import Lease, LeaseStore

__all__ = ["Lease", "LeaseStore"]
