"""Pytest configuration and fixtures."""
import pytest
from fastapi.testclient import TestClient

from examgate.app import create_app
from examgate.config import Settings
from examgate.sql_store import SqlExamStore
from examgate.store import MemoryExamStore

ADMIN_AUTH = ("admin", "test-password")
T0 = 1_700_000_000_000


class FakeClock:
    """Controllable epoch-millisecond clock."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        ADMIN_USERNAME=ADMIN_AUTH[0],
        ADMIN_PASSWORD=ADMIN_AUTH[1],
        DATABASE_URL=f"sqlite:///{tmp_path / 'examgate.db'}",
        OPENAI_API_KEY="",
        _env_file=None,
    )


@pytest.fixture(params=["memory", "sql"])
def store(request, clock, settings):
    """Every store test runs against both backends."""
    if request.param == "memory":
        backend = MemoryExamStore(clock=clock)
    else:
        backend = SqlExamStore(settings.DATABASE_URL, clock=clock)
    backend.init()
    yield backend
    backend.close()


@pytest.fixture
def app(settings, store):
    return create_app(settings, store=store)


@pytest.fixture
def client(app) -> TestClient:
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def admin_client(client: TestClient) -> TestClient:
    """Create test client carrying the admin credential."""
    client.auth = ADMIN_AUTH
    return client


@pytest.fixture
def token(store) -> str:
    """Token of a freshly created session."""
    return store.create_session("Ada Lovelace").token
