"""
Tests for settings, the import status tracker and the background dispatcher.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from legisync.core.config import Settings, clear_settings_cache, get_settings
from legisync.core.exceptions import ConfigurationMissing
from legisync.services.dispatch import BackgroundDispatcher
from legisync.services.sync_status import ImportPhase, ImportStatusTracker, import_status


class TestSettings:

    def test_missing_required_setting(self, monkeypatch):
        monkeypatch.delenv("CONGRESS_API_KEY", raising=False)
        clear_settings_cache()
        try:
            with pytest.raises(ConfigurationMissing) as exc_info:
                get_settings()
            assert "CONGRESS_API_KEY" in str(exc_info.value)
        finally:
            monkeypatch.undo()
            clear_settings_cache()

    def test_defaults(self):
        settings = get_settings()

        assert settings.congress_api_url == "https://api.congress.gov/v3"
        assert settings.lock_stale_minutes == 5.0
        assert settings.fetch_max_attempts == 3
        assert settings.import_batch_size == 2
        assert settings.enrichment_concurrency == 4

    def test_postgres_url_uses_async_driver(self):
        settings = Settings(
            CONGRESS_API_KEY="k",
            LLM_API_URL="http://llm",
            LLM_API_KEY="k",
            DATABASE_URL="postgresql://user:pw@db:5432/legisync",
        )
        assert settings.async_database_url == "postgresql+psycopg://user:pw@db:5432/legisync"

    def test_cors_origins_list(self):
        settings = Settings(
            CONGRESS_API_KEY="k",
            LLM_API_URL="http://llm",
            LLM_API_KEY="k",
            CORS_ORIGINS="http://a.test, http://b.test",
        )
        assert settings.cors_origins_list == ["http://a.test", "http://b.test"]


class TestImportStatusTracker:

    def test_is_singleton(self):
        assert ImportStatusTracker() is import_status

    def test_lifecycle(self):
        import_status.start()
        assert import_status.is_running()
        assert import_status.get_status()["phase"] == ImportPhase.STARTING

        import_status.update_phase(ImportPhase.SYNCING, "Syncing")
        import_status.increment("created", 2)
        import_status.increment("failed")
        import_status.add_error("HR2: boom")
        import_status.complete(success=True)

        status = import_status.get_status()
        assert status["phase"] == ImportPhase.COMPLETED
        assert status["progress"]["created"] == 2
        assert status["progress"]["failed"] == 1
        assert status["errors"][0]["error"] == "HR2: boom"
        assert status["duration_seconds"] >= 0
        assert not import_status.is_running()

    def test_get_status_returns_a_copy(self):
        snapshot = import_status.get_status()
        snapshot["progress"]["created"] = 99
        assert import_status.get_status()["progress"]["created"] == 0

    def test_locked_is_not_running(self):
        import_status.start()
        import_status.mark_locked()
        assert import_status.get_status()["phase"] == ImportPhase.LOCKED
        assert not import_status.is_running()


@pytest.mark.asyncio
class TestBackgroundDispatcher:

    async def test_dispatch_and_drain(self):
        dispatcher = BackgroundDispatcher()
        done = asyncio.Event()

        async def work(value):
            await asyncio.sleep(0)
            done.set()
            return value

        task = dispatcher.dispatch("work", work, 42)
        await dispatcher.drain()

        assert done.is_set()
        assert task.result() == 42
        assert dispatcher.pending == 0

    async def test_failures_are_contained(self):
        dispatcher = BackgroundDispatcher()
        failing = AsyncMock(side_effect=RuntimeError("boom"))

        task = dispatcher.dispatch("failing", failing, "x")
        await dispatcher.drain()

        assert task.result() is None
        failing.assert_awaited_once_with("x")

    async def test_concurrency_is_bounded(self):
        dispatcher = BackgroundDispatcher(max_concurrency=3)
        running = 0
        peak = 0

        async def enrich(_):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.001)
            running -= 1

        tasks = [dispatcher.dispatch(f"enrich_{i}", enrich, i) for i in range(50)]
        assert dispatcher.pending == 50

        await dispatcher.drain()

        assert peak == 3
        assert all(task.done() for task in tasks)

    async def test_failed_task_frees_its_slot(self):
        dispatcher = BackgroundDispatcher(max_concurrency=1)
        after = AsyncMock(return_value="ok")

        dispatcher.dispatch("failing", AsyncMock(side_effect=RuntimeError("boom")))
        task = dispatcher.dispatch("after", after)
        await dispatcher.drain()

        assert task.result() == "ok"


def test_dispatcher_rejects_zero_concurrency():
    with pytest.raises(ValueError):
        BackgroundDispatcher(max_concurrency=0)
