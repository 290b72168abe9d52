import pytest
from fastapi.testclient import TestClient

from cvetracker.config import Settings
from cvetracker.database import init_db, make_engine, make_session_factory
from cvetracker.main import create_app
from cvetracker.services.registry import InMemoryUserRegistry, SqlUserRegistry
from cvetracker.services.store import InMemoryVulnerabilityStore, SqlVulnerabilityStore


@pytest.fixture
def engine():
    """Engine for a fresh in-memory SQLite database with the tables created."""
    engine = make_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture(params=["memory", "database"])
def backend(request, session_factory):
    """(store, registry) pair for each storage medium."""
    if request.param == "memory":
        return InMemoryVulnerabilityStore(), InMemoryUserRegistry()
    return SqlVulnerabilityStore(session_factory), SqlUserRegistry(session_factory)


@pytest.fixture
def store(backend):
    return backend[0]


@pytest.fixture
def registry(backend):
    return backend[1]


@pytest.fixture
def client(store, registry):
    app = create_app(Settings(store_backend=store.backend), store=store, registry=registry)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def sample_vuln():
    return {"name": "  CVE-X  ", "severity": "7.2", "description": " desc "}
