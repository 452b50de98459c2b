"""Pytest configuration and shared fixtures."""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from auth.middleware.auth_middleware import reset_identity_cache
from config import reset_settings
# Import all models to ensure they are registered with Base.metadata
from shared.models.entities import Base
from tests.helpers.tpma_fakes import TPMA_BASE_URL, FakeTPMA
from tpma.client import TPMAClient
from tpma.request_gate import FetchGate, reset_fetch_gate


@pytest.fixture(autouse=True)
def reset_singletons():
    """Process-wide settings, fetch gate and identity cache start fresh for every test."""
    reset_settings()
    reset_fetch_gate()
    reset_identity_cache()
    yield
    reset_settings()
    reset_fetch_gate()
    reset_identity_cache()


@pytest.fixture
def db_engine():
    # One shared connection so the TestClient threadpool sees the same in-memory database
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """
    Create a test database session with in-memory SQLite.

    Each test function gets a fresh database.
    """
    SessionLocal = sessionmaker(bind=db_engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def fake_tpma():
    return FakeTPMA()


@pytest.fixture
def tpma_client(fake_tpma):
    """TPMA client wired to the fake API, with retry delays disabled."""
    client = TPMAClient(
        TPMA_BASE_URL,
        token="test-token",
        initial_retry_delay=0,
        transport=fake_tpma.transport(),
    )
    yield client
    client.close()


@pytest.fixture
def gate():
    """Fetch gate that never throttles."""
    return FetchGate(min_interval=0)


AUTH_HEADERS = {"Authorization": "Bearer test-token"}


@pytest.fixture
def app(db_session, tpma_client):
    """The FastAPI app with the database and TPMA client swapped for test doubles."""
    from auth.middleware.auth_middleware import get_tpma_client
    from database import get_db
    from main import app

    def override_get_db():
        yield db_session

    def override_get_tpma_client():
        yield tpma_client

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_tpma_client] = override_get_tpma_client
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """Authenticated test client for the FastAPI app."""
    return TestClient(app, headers=AUTH_HEADERS)


@pytest.fixture
def as_supervisor(fake_tpma):
    fake_tpma.add("GET", "/api/verify", {"role": "supervisor", "identifier": "sup-1"})


@pytest.fixture
def as_trainee(fake_tpma):
    fake_tpma.add("GET", "/api/verify", {"role": "teacherTrainee", "identifier": "t1"})
