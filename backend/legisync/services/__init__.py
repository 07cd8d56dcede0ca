"""Services layer: locking, bill sync, enrichment, status tracking."""
