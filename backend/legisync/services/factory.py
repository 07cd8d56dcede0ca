"""
Service Factory.
Builds the process-wide service graph from settings.
"""

import logging
from datetime import timedelta
from functools import lru_cache

from legisync.core.config import get_settings
from legisync.db.session import async_session_maker
from legisync.integrations.congress.client import CongressClient
from legisync.services.bill_sync.import_orchestrator import BillImportOrchestrator
from legisync.services.bill_sync.record_synchronizer import BillSynchronizer
from legisync.services.dispatch import BackgroundDispatcher
from legisync.services.enrichment import BillAnalysisGenerator
from legisync.services.locks.manager import LockManager
from legisync.services.locks.stores import SQLLeaseStore

logger = logging.getLogger(__name__)


@lru_cache
def get_lock_manager() -> LockManager:
    """Lock manager over the ``system_locks`` table."""
    settings = get_settings()
    return LockManager(
        SQLLeaseStore(async_session_maker),
        stale_after=timedelta(minutes=settings.lock_stale_minutes),
        poll_interval=settings.lock_poll_seconds,
        default_timeout=settings.lock_timeout_seconds,
    )


@lru_cache
def get_congress_client() -> CongressClient:
    return CongressClient.from_settings(get_settings())


@lru_cache
def get_dispatcher() -> BackgroundDispatcher:
    return BackgroundDispatcher(max_concurrency=get_settings().enrichment_concurrency)


@lru_cache
def get_analysis_generator() -> BillAnalysisGenerator:
    settings = get_settings()
    return BillAnalysisGenerator(
        async_session_maker,
        get_lock_manager(),
        max_chars=settings.analysis_max_chars,
    )


@lru_cache
def get_import_orchestrator() -> BillImportOrchestrator:
    """
    Fully wired import orchestrator.

    Example:
        >>> orchestrator = get_import_orchestrator()
        >>> result = await orchestrator.import_bills(119, 118)
    """
    settings = get_settings()
    synchronizer = BillSynchronizer(
        get_congress_client(),
        async_session_maker,
        enrich=get_analysis_generator().generate,
        dispatcher=get_dispatcher(),
    )
    logger.info("🔌 Import orchestrator initialized")
    return BillImportOrchestrator(
        get_congress_client(),
        synchronizer,
        get_lock_manager(),
        batch_size=settings.import_batch_size,
        batch_delay=settings.import_batch_delay,
        page_limit=settings.import_page_limit,
    )
