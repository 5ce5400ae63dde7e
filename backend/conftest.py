import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from genstudio.main import create_app
from genstudio.services.job_tracking.initiator import JobInitiator
from genstudio.services.job_tracking.reader import StatusReader
from genstudio.services.job_tracking.recorder import JobRecorder
from genstudio.services.job_tracking.scheduler import LocalScheduler
from genstudio.services.job_tracking.store import MemoryStore


class FakeClock:
    """Manually advanced monotonic clock for TTL tests"""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSleep:
    """Records requested sleeps instead of waiting"""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    """Fresh in-memory job store with a controllable clock."""
    return MemoryStore(list_ttl_seconds=3600, clock=clock)


@pytest.fixture
def fake_sleep():
    return FakeSleep()


@pytest.fixture
def reader(store):
    return StatusReader(store)


@pytest.fixture
def recorder_factory(store):
    def _make(job_id: str) -> JobRecorder:
        return JobRecorder(store, job_id, ttl_seconds=3600)
    return _make


@pytest_asyncio.fixture
async def scheduler(store, fake_sleep):
    """Local scheduler whose workers never really sleep."""
    scheduler = LocalScheduler(store, sleep=fake_sleep)
    yield scheduler
    await scheduler.shutdown()


@pytest.fixture
def initiator(store, scheduler):
    return JobInitiator(store, scheduler)


@pytest_asyncio.fixture
async def async_client(store, scheduler, initiator, reader):
    """Create an async HTTP client wired to the test store."""
    app = create_app()
    app.state.store = store
    app.state.scheduler = scheduler
    app.state.initiator = initiator
    app.state.reader = reader

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture(autouse=True)
def no_vendor_keys(monkeypatch):
    """Tests never talk to real vendors."""
    from genstudio.core.config import settings

    for name in ("STABILITY_API_KEY", "RUNWAY_API_KEY", "CREATOMATE_API_KEY", "GEMINI_API_KEY", "PEXELS_API_KEY"):
        monkeypatch.setattr(settings, name, "")
