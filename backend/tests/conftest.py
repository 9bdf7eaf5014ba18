"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.helpers import get_cet_client
from api.historical_sync import get_event_logger, get_record_source
from api.records import get_record_change_service
from database import Base, get_db
from main import app
from services.event_logger import EventLogger
from services.record_change_service import RecordChangeService
# Pytest fixtures - imported to make them available to tests
from tests.fixtures import (  # noqa: F401
    connection,
    event_configuration,
    incomplete_connection,
    profile_configuration,
)
from tests.fixtures.mocks import (
    SAMPLE_LEAD,
    MockCetClient,
    MockRecordSource,
    SynchronousExecutor,
)


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite engine shared by every session in a test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="session_factory")
def session_factory_fixture(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(name="db")
def db_fixture(session_factory):
    """Create an in-memory SQLite database for testing."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(name="event_logger")
def event_logger_fixture(session_factory):
    """Event logger that writes synchronously to the test database."""
    return EventLogger(session_factory=session_factory, executor=SynchronousExecutor())


@pytest.fixture(name="mock_cet_client")
def mock_cet_client_fixture():
    return MockCetClient()


@pytest.fixture(name="mock_record_source")
def mock_record_source_fixture():
    """Record source serving one sample lead and one lead without an email."""
    return MockRecordSource([
        SAMPLE_LEAD,
        {"Id": "00Q000000000002", "Email": None, "FirstName": "Nobody"},
    ])


@pytest.fixture(name="client")
def client_fixture(db, event_logger, mock_cet_client, mock_record_source):
    """Create a test client with the test database and mocked externals."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    def override_get_record_change_service():
        return RecordChangeService(cet_client=mock_cet_client, event_logger=event_logger)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_record_change_service] = override_get_record_change_service
    app.dependency_overrides[get_record_source] = lambda: mock_record_source
    app.dependency_overrides[get_event_logger] = lambda: event_logger
    app.dependency_overrides[get_cet_client] = lambda: mock_cet_client
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
