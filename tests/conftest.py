"""Pytest configuration and fixtures."""

import os

# Set test environment variables before any imports that might use them
os.environ["FLEET_DATABASE_URL"] = "sqlite://"
os.environ["FLEET_JWT_SECRET"] = "test-secret-not-for-production"
os.environ["FLEET_ADMIN_PASSWORD"] = "correct horse"
os.environ.pop("FLEET_ADMIN_PASSWORD_HASH", None)
os.environ.pop("GOOGLE_MAPS_API_KEY", None)

from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401  registers tables on Base.metadata
from database import Base, get_db
from main import app
from settings_auth import login_throttle, reset_password_cache
from services.location.providers import GeocodingProvider, ProviderError
from services.location.results import LocationSuggestion, ResolvedLocation

ADMIN_PASSWORD = "correct horse"


@pytest.fixture
def db_session():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    login_throttle.clear()
    reset_password_cache()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        login_throttle.clear()


@pytest.fixture
def admin_client(client):
    """Client holding a valid settings session."""
    response = client.post("/api/settings/auth/login", json={"password": ADMIN_PASSWORD})
    assert response.status_code == 200
    client.headers["Authorization"] = f"Bearer {response.json()['token']}"
    return client


@pytest.fixture
def google_key(monkeypatch):
    monkeypatch.setenv("GOOGLE_MAPS_API_KEY", "test-google-key")
    return "test-google-key"


class StubProvider(GeocodingProvider):
    """In-memory provider that records calls and can be told to fail."""

    def __init__(
        self,
        name: str = "stub",
        suggestions: Optional[list] = None,
        geocoded: Optional[ResolvedLocation] = None,
        label: Optional[str] = None,
        details: Optional[tuple] = None,
        fail: bool = False,
    ):
        super().__init__()
        self.name = name
        self.suggestions = suggestions or []
        self.geocoded = geocoded
        self.label = label
        self.details_result = details
        self.fail = fail
        self.calls = []

    def _maybe_fail(self, op):
        if self.fail:
            raise ProviderError(f"{self.name}: {op} failed")

    async def search(self, text):
        self.calls.append(("search", text))
        self._maybe_fail("search")
        return list(self.suggestions)

    async def geocode(self, text):
        self.calls.append(("geocode", text))
        self._maybe_fail("geocode")
        return self.geocoded

    async def reverse(self, lat, lon):
        self.calls.append(("reverse", lat, lon))
        self._maybe_fail("reverse")
        return self.label

    async def details(self, provider_ref):
        self.calls.append(("details", provider_ref))
        self._maybe_fail("details")
        return self.details_result


KOCHI = LocationSuggestion("Kochi, Kerala, India", latitude=9.9312, longitude=76.2673)
ERNAKULAM = LocationSuggestion("Ernakulam, Kerala, India", latitude=9.9816, longitude=76.2999)
