"""Test fixtures: in-memory SQLite database, FastAPI TestClient, mocked upstreams."""

from __future__ import annotations

import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["OPTIMUS_API_URL"] = "https://optimus.test/api/trucks"
os.environ["OPTIMUS_BEARER_TOKEN"] = "test-token"

import httpx
import pytest
from sqlalchemy.orm import sessionmaker

from trucktracker.db.models import TrackerData
from trucktracker.db.session import Base, make_engine
from trucktracker.deps import get_db
from trucktracker.main import app
from trucktracker.services.geocoder import GeocodeResolver
from trucktracker.services.ingestion import IngestionPipeline
from trucktracker.services.normalizer import TelemetryNormalizer
from trucktracker.services.telemetry_client import TelemetryClient


# In-memory SQLite engine shared across a test session
_engine = make_engine("sqlite://")
TestSession = sessionmaker(autocommit=False, autoflush=False, bind=_engine)


def _override_get_db():
    db = TestSession()
    try:
        yield db
    finally:
        db.close()


# Apply dependency override once
app.dependency_overrides[get_db] = _override_get_db


@pytest.fixture(scope="session", autouse=True)
def _create_tables():
    """Create all tables once before the test session."""
    Base.metadata.create_all(bind=_engine)
    yield
    Base.metadata.drop_all(bind=_engine)


@pytest.fixture(autouse=True)
def _clean_tables():
    yield
    with _engine.begin() as conn:
        conn.execute(TrackerData.__table__.delete())


@pytest.fixture
def db():
    session = TestSession()
    try:
        yield session
    finally:
        session.close()


# ── Upstream fakes ─────────────────────────────────────────


def upstream(body=None, status_code=200, calls=None):
    """Handler for the Optimus API answering ``body`` as JSON."""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return httpx.Response(status_code, json=body)

    return handler


def geocode_ok(name="Alexanderplatz, Berlin", calls=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return httpx.Response(200, json={"display_name": name})

    return handler


def geocode_down(calls=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        raise httpx.ConnectError("geocoder unreachable", request=request)

    return handler


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def make_pipeline():
    """Build an IngestionPipeline wired to mocked upstreams and the test DB."""

    def _make(upstream_handler, geocode_handler=None, store=None, clock=None):
        client = TelemetryClient(
            url="https://optimus.test/api/trucks",
            token="test-token",
            client=mock_client(upstream_handler),
        )
        geocoder = GeocodeResolver(
            base_url="https://geo.test",
            client=mock_client(geocode_handler or geocode_down()),
        )
        return IngestionPipeline(
            client=client,
            geocoder=geocoder,
            normalizer=TelemetryNormalizer(clock) if clock else None,
            store=store,
            session_factory=TestSession,
        )

    return _make
