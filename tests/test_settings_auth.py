"""Tests for the settings password gate."""

from datetime import datetime, timedelta, timezone

import jwt

from conftest import ADMIN_PASSWORD
from settings_auth import (
    JWT_ALGORITHM,
    JWT_SECRET,
    LoginThrottle,
    SESSION_COOKIE,
    create_session_token,
    decode_session_token,
    hash_password,
    reset_password_cache,
    verify_admin_password,
)


class FakeClock:

    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestLoginThrottle:

    def test_locks_after_three_failures(self):
        throttle = LoginThrottle(clock=FakeClock())

        assert throttle.record_failure("a") == 2
        assert throttle.record_failure("a") == 1
        assert throttle.record_failure("a") == 0
        assert throttle.lockout_remaining("a") == 30

    def test_lockout_expires(self):
        clock = FakeClock()
        throttle = LoginThrottle(clock=clock)
        for _ in range(3):
            throttle.record_failure("a")

        clock.now += 31

        assert throttle.lockout_remaining("a") == 0
        assert throttle.record_failure("a") == 2

    def test_clients_are_independent(self):
        throttle = LoginThrottle(clock=FakeClock())
        for _ in range(3):
            throttle.record_failure("a")

        assert throttle.lockout_remaining("b") == 0


class TestSessionTokens:

    def test_round_trip(self):
        session = decode_session_token(create_session_token())

        assert session is not None
        assert 3590 <= session.remaining_seconds <= 3600

    def test_expired(self):
        token = create_session_token(now=datetime.now(timezone.utc) - timedelta(hours=2))

        assert decode_session_token(token) is None

    def test_wrong_scope(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"scope": "other", "iat": now, "exp": now + timedelta(hours=1)},
            JWT_SECRET, algorithm=JWT_ALGORITHM,
        )

        assert decode_session_token(token) is None

    def test_garbage(self):
        assert decode_session_token("not-a-token") is None
        assert decode_session_token(None) is None


class TestPassword:

    def test_configured_hash_wins(self, monkeypatch):
        monkeypatch.setenv("FLEET_ADMIN_PASSWORD_HASH", hash_password("from-hash"))
        reset_password_cache()
        try:
            assert verify_admin_password("from-hash")
            assert not verify_admin_password(ADMIN_PASSWORD)
        finally:
            reset_password_cache()

    def test_empty_password_rejected(self):
        assert not verify_admin_password("")


class TestLoginEndpoint:

    def test_success_sets_cookie(self, client):
        response = client.post("/api/settings/auth/login", json={"password": ADMIN_PASSWORD})

        assert response.status_code == 200
        body = response.json()
        assert body["authenticated"] is True
        assert body["expires_in"] == 3600
        assert SESSION_COOKIE in response.cookies

    def test_wrong_password_counts_down(self, client):
        first = client.post("/api/settings/auth/login", json={"password": "nope"})
        second = client.post("/api/settings/auth/login", json={"password": "nope"})

        assert first.status_code == 401
        assert first.json()["detail"] == "Incorrect password. 2 attempts remaining."
        assert second.json()["detail"] == "Incorrect password. 1 attempts remaining."

    def test_third_failure_locks_out(self, client):
        for _ in range(2):
            client.post("/api/settings/auth/login", json={"password": "nope"})

        third = client.post("/api/settings/auth/login", json={"password": "nope"})
        correct = client.post("/api/settings/auth/login", json={"password": ADMIN_PASSWORD})

        assert third.status_code == 429
        assert third.json()["detail"] == "Too many failed attempts. Please try again later."
        assert correct.status_code == 429

    def test_status(self, client):
        assert client.get("/api/settings/auth/status").json() == {"authenticated": False, "expires_in": None}

        token = client.post("/api/settings/auth/login", json={"password": ADMIN_PASSWORD}).json()["token"]
        status = client.get("/api/settings/auth/status", headers={"Authorization": f"Bearer {token}"}).json()

        assert status["authenticated"] is True

    def test_mutations_require_session(self, client):
        response = client.post("/api/cars", json={
            "make": "Toyota", "model": "Innova", "year": 2021, "license_plate": "KL-07-AB-1234",
        })

        assert response.status_code == 401
        assert response.json()["detail"] == "Administrator access required"
