"""API endpoint routers."""

from legisync.api.endpoints import bills, health, imports, sync_status

__all__ = ["bills", "health", "imports", "sync_status"]
