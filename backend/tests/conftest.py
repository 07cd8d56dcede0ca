"""
Shared fixtures.

Required settings get harmless defaults before any application module is
imported; the default database is an in-memory SQLite.
"""

import os

os.environ.setdefault("CONGRESS_API_KEY", "test-congress-key")
os.environ.setdefault("LLM_API_URL", "http://llm.test/v1")
os.environ.setdefault("LLM_API_KEY", "test-llm-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import Any, Callable, Dict, List, Optional  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402

from legisync.db.base import Base  # noqa: E402
from legisync.db.session import build_engine, build_session_maker  # noqa: E402
from legisync.integrations.congress.client import CongressClient  # noqa: E402
from legisync.integrations.congress.retry import RetryPolicy  # noqa: E402
from legisync.services.locks.manager import LockManager  # noqa: E402
from legisync.services.locks.stores import InMemoryLeaseStore  # noqa: E402
from legisync.services.sync_status import import_status  # noqa: E402

import legisync.models  # noqa: E402,F401

API_BASE = "https://api.congress.gov/v3"
PROBE_PATH = "/probe"


async def no_sleep(_seconds: float) -> None:
    return None


class FakeCongressAPI:
    """
    Routes MockTransport requests by path.

    A route is either a JSON body (served with 200) or a callable taking
    the request and returning an ``httpx.Response``.
    """

    def __init__(self):
        self.routes: Dict[str, Any] = {}
        self.calls: List[str] = []
        self.requests: List[httpx.Request] = []
        self.probe_status = 200

    def add(self, path: str, route: Any) -> None:
        self.routes[path] = route

    def calls_to(self, path: str) -> int:
        return self.calls.count(path)

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/v3")
        self.calls.append(path)
        self.requests.append(request)

        if path == PROBE_PATH:
            return httpx.Response(self.probe_status, json={})

        route = self.routes.get(path)
        if route is None:
            return httpx.Response(404, json={"error": f"No route for {path}"})
        if callable(route):
            return route(request)
        return httpx.Response(200, json=route)


class FixedClock:
    """Settable clock for lease and category tests."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


@pytest.fixture
def fake_api() -> FakeCongressAPI:
    return FakeCongressAPI()


@pytest.fixture
def fast_retry() -> RetryPolicy:
    return RetryPolicy(max_attempts=3, base_delay=0.01, sleep=no_sleep)


@pytest.fixture
async def congress_client(fake_api, fast_retry):
    client = CongressClient(
        api_key="test-key",
        api_base_url=API_BASE,
        probe_path=PROBE_PATH,
        retry_policy=fast_retry,
        transport=httpx.MockTransport(fake_api.handler),
    )
    yield client
    await client.close()


@pytest.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def lease_store() -> InMemoryLeaseStore:
    return InMemoryLeaseStore()


@pytest.fixture
def lock_manager(lease_store) -> LockManager:
    return LockManager(lease_store, poll_interval=0.01, default_timeout=0.05)


@pytest.fixture(autouse=True)
def reset_import_status():
    import_status.reset()
    yield
    import_status.reset()


def make_response(status_code: int, body: Optional[dict] = None) -> Callable[[httpx.Request], httpx.Response]:
    """Route helper returning a fixed status."""
    def _route(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=body or {})
    return _route
