"""Shared test fixtures and configuration for backend tests."""
import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.sessions.clock import ManualClock
from app.sessions.router import (
    get_session_store,
    get_upload_limit,
    set_session_store,
    set_upload_limit,
)
from app.sessions.store import InMemorySessionStore


@pytest.fixture
def api_client():
    """Provide a TestClient for the main FastAPI app.

    The client is not entered as a context manager, so the app lifespan does
    not run; tests install their own store via ``session_store``.
    """
    return TestClient(app)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def store(clock: ManualClock) -> InMemorySessionStore:
    """A fresh store on a manual clock with the default 5 minute TTL."""
    return InMemorySessionStore(ttl_seconds=300, clock=clock)


@pytest.fixture
def session_store(store: InMemorySessionStore):
    """Install ``store`` into the router for the duration of a test."""
    original_store = get_session_store()
    original_limit = get_upload_limit()
    set_session_store(store)
    yield store
    set_session_store(original_store)
    set_upload_limit(original_limit)
