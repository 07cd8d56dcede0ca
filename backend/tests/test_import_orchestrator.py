"""
Tests for the import sweep orchestrator, the scheduled entry point and
the error tracker.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import select

from legisync.core.exceptions import FatalFailure
from legisync.models.bill import Bill
from legisync.services.bill_sync import import_orchestrator as orchestrator_module
from legisync.services.bill_sync.error_tracker import ErrorTracker
from legisync.services.bill_sync.import_orchestrator import (
    BillImportOrchestrator,
    ImportResult,
    congress_range,
)
from legisync.services.bill_sync.record_synchronizer import BillSynchronizer, SyncAction, SyncOutcome
from legisync.services.bill_sync.scheduled import run_scheduled_import
from legisync.services.locks import LockManager
from legisync.services.sync_status import ImportPhase, import_status


def outcome(number, action, dropped=None, status_fallback=False):
    return SyncOutcome(
        bill_number=number,
        action=action,
        dropped=dropped or {},
        status_fallback=status_fallback,
    )


@pytest.fixture
def synchronizer():
    mock = MagicMock()
    mock.sync = AsyncMock()
    return mock


@pytest.fixture
def orchestrator(congress_client, synchronizer, lock_manager):
    return BillImportOrchestrator(
        congress_client,
        synchronizer,
        lock_manager,
        bill_types=["hr"],
        batch_size=2,
        batch_delay=0,
    )


@pytest.fixture
def listed_bills(monkeypatch):
    """Replace the list sweep with a per-(congress, type) table."""
    listings = {}

    async def fake_fetch(client, congress, bill_type, limit=250, **kwargs):
        value = listings.get((congress, bill_type), [])
        if isinstance(value, Exception):
            raise value
        return value

    monkeypatch.setattr(orchestrator_module, "fetch_bills_for_type", fake_fetch)
    return listings


class TestCongressRange:

    def test_newest_first(self):
        assert congress_range(119, 117) == [119, 118, 117]
        assert congress_range(117, 119) == [119, 118, 117]
        assert congress_range(119, 119) == [119]


@pytest.mark.asyncio
class TestBillImportOrchestrator:

    async def test_counts_outcomes(self, orchestrator, synchronizer, listed_bills):
        listed_bills[(119, "hr")] = [{"number": "1"}, {"number": "2"}, {"number": "3"}]
        synchronizer.sync.side_effect = [
            outcome("HR1", SyncAction.CREATED, dropped={"sponsors": 2}),
            outcome("HR2", SyncAction.UPDATED, status_fallback=True),
            outcome("HR3", SyncAction.SKIPPED),
        ]

        result = await orchestrator.import_bills(119, 119)

        assert result.status == "success"
        assert (result.fetched, result.imported, result.updated, result.skipped) == (3, 1, 1, 1)
        assert result.dropped_children == 2
        assert result.status_fallbacks == 1
        assert result.errors == []

        status = import_status.get_status()
        assert status["phase"] == ImportPhase.COMPLETED
        assert status["progress"]["created"] == 1
        assert status["progress"]["status_fallbacks"] == 1

    async def test_bill_failure_does_not_abort_sweep(self, orchestrator, synchronizer, listed_bills):
        listed_bills[(119, "hr")] = [{"number": "1"}, {"number": "2"}, {"number": "3"}]
        synchronizer.sync.side_effect = [
            outcome("HR1", SyncAction.CREATED),
            FatalFailure("GET /bill/119/hr/2/actions failed after 3 attempt(s)"),
            outcome("HR3", SyncAction.CREATED),
        ]

        result = await orchestrator.import_bills(119, 119)

        assert result.status == "success"
        assert result.imported == 2
        assert result.failed == 1
        assert len(result.errors) == 1
        assert result.errors[0].startswith("HR2: ")
        assert synchronizer.sync.await_count == 3

    async def test_listing_failure_is_collected(self, congress_client, synchronizer, lock_manager, listed_bills):
        orchestrator = BillImportOrchestrator(
            congress_client, synchronizer, lock_manager, bill_types=["hr", "s"], batch_delay=0
        )
        listed_bills[(119, "hr")] = FatalFailure("listing down")
        listed_bills[(119, "s")] = [{"number": "5"}]
        synchronizer.sync.return_value = outcome("S5", SyncAction.CREATED)

        result = await orchestrator.import_bills(119, 119)

        assert result.status == "success"
        assert result.imported == 1
        assert result.errors == ["hr/119: listing down"]

    async def test_sweeps_sessions_newest_first(self, orchestrator, synchronizer, listed_bills):
        listed_bills[(119, "hr")] = [{"number": "1"}]
        listed_bills[(118, "hr")] = [{"number": "1"}]
        synchronizer.sync.return_value = outcome("HR1", SyncAction.CREATED)

        await orchestrator.import_bills(119, 118)

        congresses = [call.args[0] for call in synchronizer.sync.await_args_list]
        assert congresses == [119, 118]

    async def test_locked_when_sweep_lease_is_held(self, orchestrator, synchronizer, lock_manager, listed_bills):
        await lock_manager.acquire("import_bills_119_119", timeout=0)

        result = await orchestrator.import_bills(119, 119)

        assert result.status == "locked"
        assert "import_bills_119_119" in result.message
        synchronizer.sync.assert_not_awaited()
        assert import_status.get_status()["phase"] == ImportPhase.LOCKED

    async def test_locked_invocation_keeps_live_sweep_progress(
        self, orchestrator, synchronizer, lock_manager, listed_bills
    ):
        await lock_manager.acquire("import_bills_119_119", timeout=0)
        import_status.start()
        import_status.update_phase(ImportPhase.SYNCING, "Syncing 50 HR bills")
        import_status.increment("created", 42)
        import_status.add_error("HR9: boom")

        result = await orchestrator.import_bills(119, 119)

        assert result.status == "locked"
        status = import_status.get_status()
        assert status["phase"] == ImportPhase.SYNCING
        assert status["progress"]["created"] == 42
        assert [e["error"] for e in status["errors"]] == ["HR9: boom"]
        assert import_status.is_running()
        synchronizer.sync.assert_not_awaited()

    async def test_preflight_failure_is_error_and_releases_lock(
        self, orchestrator, synchronizer, fake_api, lease_store, listed_bills
    ):
        fake_api.probe_status = 503

        result = await orchestrator.import_bills(119, 119)

        assert result.status == "error"
        assert result.message == "Congress.gov API is currently unavailable"
        synchronizer.sync.assert_not_awaited()
        assert not await lease_store.exists("import_bills_119_119")
        assert import_status.get_status()["phase"] == ImportPhase.ERROR

    async def test_lock_released_after_success(self, orchestrator, lease_store, listed_bills):
        await orchestrator.import_bills(119, 119)

        assert not await lease_store.exists("import_bills_119_119")

    async def test_unknown_bill_type_is_rejected(self, orchestrator):
        with pytest.raises(ValueError):
            await orchestrator.import_bills(119, 119, bill_types=["xx"])

    async def test_end_to_end_sweep(self, congress_client, session_maker, lock_manager, fake_api, clock):
        fake_api.add("/bill/118/hr", {"bills": [{
            "number": "7",
            "title": "Sweep Act",
            "summary": "Summary text.",
            "updateDate": "2024-01-10",
            "sponsors": [{"fullName": "Rep. Doe", "party": "D", "state": "CA"}],
            "cosponsors": {"count": 0},
            "committees": {"count": 0},
            "actions": [{"actionDate": "2024-01-05", "text": "Introduced in House"}],
        }]})
        synchronizer = BillSynchronizer(congress_client, session_maker, clock=clock)
        orchestrator = BillImportOrchestrator(
            congress_client, synchronizer, lock_manager, bill_types=["hr"], batch_delay=0
        )

        first = await orchestrator.import_bills(118, 118)
        second = await orchestrator.import_bills(118, 118)

        assert first.status == "success"
        assert first.imported == 1
        assert second.skipped == 1

        async with session_maker() as session:
            bills = (await session.execute(select(Bill))).scalars().all()
        assert [bill.number for bill in bills] == ["HR7"]
        assert bills[0].summary == "Summary text."


@pytest.mark.asyncio
class TestScheduledImport:

    @pytest.fixture
    def orchestrator(self):
        mock = MagicMock()
        mock.import_bills = AsyncMock(return_value=ImportResult(status="success", imported=2))
        return mock

    async def test_runs_two_session_sweep(self, orchestrator, lock_manager, session_maker):
        result = await run_scheduled_import(orchestrator, lock_manager, session_maker)

        assert result.status == "success"
        assert result.message == "Import completed successfully"
        assert result.result.imported == 2
        assert result.final_bill_count == 0
        orchestrator.import_bills.assert_awaited_once_with(119, 118)

    async def test_recent_import_lease_blocks(self, orchestrator, lease_store, session_maker, clock):
        manager = LockManager(lease_store, clock=clock)
        await lease_store.insert("import_bills_119_118", clock() - timedelta(minutes=3))

        result = await run_scheduled_import(orchestrator, manager, session_maker, clock=clock)

        assert result.status == "locked"
        assert result.details["lock_key"] == "import_bills_119_118"
        assert result.details["age_minutes"] == 3
        orchestrator.import_bills.assert_not_awaited()

    async def test_very_old_lease_is_force_released(self, orchestrator, lease_store, session_maker, clock):
        manager = LockManager(lease_store, clock=clock)
        await lease_store.insert("import_bills_119_118", clock() - timedelta(minutes=45))

        result = await run_scheduled_import(orchestrator, manager, session_maker, clock=clock)

        assert result.status == "success"
        assert not await lease_store.exists("import_bills_119_118")
        orchestrator.import_bills.assert_awaited_once_with(119, 118)

    async def test_import_lease_past_reap_age_still_blocks(self, orchestrator, lease_store, session_maker, clock):
        manager = LockManager(lease_store, clock=clock)
        await lease_store.insert("import_bills_119_118", clock() - timedelta(minutes=15))

        result = await run_scheduled_import(orchestrator, manager, session_maker, clock=clock)

        assert result.status == "locked"
        assert result.details["age_minutes"] == 15
        assert await lease_store.exists("import_bills_119_118")
        orchestrator.import_bills.assert_not_awaited()

    async def test_stale_leases_are_reaped_first(self, orchestrator, lease_store, session_maker, clock):
        manager = LockManager(lease_store, clock=clock)
        await lease_store.insert("generate_analysis_x", clock() - timedelta(minutes=15))
        await lease_store.insert("generate_analysis_y", clock() - timedelta(minutes=2))

        await run_scheduled_import(orchestrator, manager, session_maker, clock=clock)

        assert not await lease_store.exists("generate_analysis_x")
        assert await lease_store.exists("generate_analysis_y")

    async def test_failures_become_error_result(self, orchestrator, lock_manager, session_maker):
        orchestrator.import_bills.side_effect = RuntimeError("boom")

        result = await run_scheduled_import(orchestrator, lock_manager, session_maker)

        assert result.status == "error"
        assert result.message == "boom"

    async def test_error_result_keeps_orchestrator_message(self, orchestrator, lock_manager, session_maker):
        orchestrator.import_bills.return_value = ImportResult(status="error", message="upstream down")

        result = await run_scheduled_import(orchestrator, lock_manager, session_maker)

        assert result.status == "error"
        assert result.message == "upstream down"


class TestErrorTracker:

    def test_summary_lists_listing_errors_first(self):
        tracker = ErrorTracker()
        tracker.track_bill_error("HR1", ValueError("bad payload"), context={"congress": 119})
        tracker.track_listing_error(119, "s", RuntimeError("timeout"))

        summary = tracker.get_summary()

        assert tracker.has_errors()
        assert summary.total == 2
        assert summary.get_error_messages() == ["s/119: timeout", "HR1: bad payload"]
        assert summary.get_error_messages(limit=1) == ["s/119: timeout"]

    def test_clear(self):
        tracker = ErrorTracker()
        tracker.track_bill_error("HR1", ValueError("bad"))
        tracker.clear()
        assert not tracker.has_errors()


def test_result_to_dict():
    data = ImportResult(status="locked", message="busy").to_dict()
    assert data["status"] == "locked"
    assert data["errors"] == []
