"""Tests for HTTP Basic Auth middleware."""

import base64
from unittest.mock import patch

from fastapi import FastAPI
from fastapi.testclient import TestClient

from regwatch.api.app import BasicAuthMiddleware

_TEST_USER = b"testuser"
_TEST_PASS = b"testpass123"


def _build_app() -> FastAPI:
    """Build a minimal app with BasicAuthMiddleware for testing."""
    app = FastAPI()
    app.add_middleware(BasicAuthMiddleware)

    @app.get("/regulatory/stats")
    async def stats_route() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/cron/regulatory-sync")
    async def cron_route() -> dict[str, str]:
        return {"status": "cron"}

    return app


def _auth_header(username: str, password: str) -> dict[str, str]:
    """Build a Basic Auth header."""
    creds = base64.b64encode(f"{username}:{password}".encode()).decode()
    return {"Authorization": f"Basic {creds}"}


@patch("regwatch.api.app.AUTH_USERNAME", _TEST_USER)
@patch("regwatch.api.app.AUTH_PASSWORD", _TEST_PASS)
def test_valid_credentials_pass() -> None:
    client = TestClient(_build_app())
    response = client.get("/regulatory/stats", headers=_auth_header("testuser", "testpass123"))
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@patch("regwatch.api.app.AUTH_USERNAME", _TEST_USER)
@patch("regwatch.api.app.AUTH_PASSWORD", _TEST_PASS)
def test_missing_auth_header_returns_401() -> None:
    """No Authorization header returns 401 with WWW-Authenticate."""
    client = TestClient(_build_app())
    response = client.get("/regulatory/stats")
    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Basic"


@patch("regwatch.api.app.AUTH_USERNAME", _TEST_USER)
@patch("regwatch.api.app.AUTH_PASSWORD", _TEST_PASS)
def test_invalid_credentials_returns_401() -> None:
    client = TestClient(_build_app())
    response = client.get("/regulatory/stats", headers=_auth_header("testuser", "wrong"))
    assert response.status_code == 401


@patch("regwatch.api.app.AUTH_USERNAME", _TEST_USER)
@patch("regwatch.api.app.AUTH_PASSWORD", _TEST_PASS)
def test_malformed_base64_returns_401() -> None:
    client = TestClient(_build_app())
    response = client.get("/regulatory/stats", headers={"Authorization": "Basic !!!not-base64!!!"})
    assert response.status_code == 401


@patch("regwatch.api.app.AUTH_USERNAME", _TEST_USER)
@patch("regwatch.api.app.AUTH_PASSWORD", _TEST_PASS)
def test_cron_path_bypasses_basic_auth() -> None:
    """Cron endpoints check their own bearer secret."""
    client = TestClient(_build_app())
    response = client.get("/cron/regulatory-sync")
    assert response.status_code == 200
    assert response.json() == {"status": "cron"}
