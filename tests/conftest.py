"""
tests/conftest.py -- Shared test fixtures for TaskGate integration tests.

This module provides:
  - _memory_url(): unique named shared-memory SQLite URL per fixture instance
  - _patch_auth_lifespan() / _patch_tasks_lifespan(): wire test collaborators
    into app.state, bypassing real startup
  - auth_client: TestClient for the auth service with a fresh store and limiter
  - tasks_client: TestClient for the tasks service whose authorization client
    talks to auth_client -- the real inter-service path, minus the socket
  - make_user: register a user through the auth API and return (token, user_id)

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.

Every fixture here is function-scoped. The attempt limiter allows 5 attempts
per client address and every TestClient request comes from "testclient", so
sharing one limiter across tests would make test order matter.

JWT_SECRET and BCRYPT_ROUNDS must be set before any project import:
get_settings() is read once at module load by auth/tokens.py and
auth/credentials.py.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager
from urllib.parse import urlsplit

# CRITICAL: Set before any auth/core import.
os.environ.setdefault("JWT_SECRET", "taskgate-test-suite-signing-key-0123456789abcdef")
os.environ.setdefault("BCRYPT_ROUNDS", "4")  # bcrypt minimum -- keeps the suite fast

import pytest
from fastapi.testclient import TestClient

from api.auth_app import app as auth_app
from api.limiter import limiter as request_limiter
from api.tasks_app import app as tasks_app
from auth.limiter import AttemptLimiter
from auth.store import UserStore
from tasks.authz import AuthServiceClient
from tasks.store import TaskStore

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _memory_url(prefix: str) -> str:
    return f"sqlite:///file:{prefix}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


class ForwardingSession:
    """requests.Session stand-in that routes /verify calls into a TestClient.

    AuthServiceClient only calls get() and close(); the httpx response the
    TestClient returns has the same status_code / json() surface as a
    requests.Response.
    """

    def __init__(self, client: TestClient) -> None:
        self._client = client
        self.calls = 0

    def get(self, url: str, headers: dict | None = None, timeout: float | None = None):
        self.calls += 1
        return self._client.get(urlsplit(url).path, headers=headers)

    def close(self) -> None:
        pass


def _patch_auth_lifespan(user_store: UserStore, attempt_limiter: AttemptLimiter):
    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.attempt_limiter = attempt_limiter
        yield

    return test_lifespan


def _patch_tasks_lifespan(task_store: TaskStore, auth_client: AuthServiceClient):
    @asynccontextmanager
    async def test_lifespan(app):
        app.state.task_store = task_store
        app.state.auth_client = auth_client
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore(db_url=_memory_url("test_auth"))
    yield store
    store.close()


@pytest.fixture
def task_store() -> Generator[TaskStore, None, None]:
    store = TaskStore(db_url=_memory_url("test_tasks"))
    yield store
    store.close()


@pytest.fixture
def attempt_limiter() -> AttemptLimiter:
    return AttemptLimiter(max_attempts=5, window_seconds=15 * 60)


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------


@pytest.fixture
def auth_client(user_store: UserStore, attempt_limiter: AttemptLimiter) -> Generator[TestClient, None, None]:
    """TestClient for the auth service backed by isolated in-memory state."""
    auth_app.router.lifespan_context = _patch_auth_lifespan(user_store, attempt_limiter)
    with TestClient(auth_app, raise_server_exceptions=True) as client:
        yield client


@pytest.fixture
def verify_session(auth_client: TestClient) -> ForwardingSession:
    return ForwardingSession(auth_client)


@pytest.fixture
def tasks_client(task_store: TaskStore, verify_session: ForwardingSession) -> Generator[TestClient, None, None]:
    """TestClient for the tasks service, authorizing through the auth_client app.

    No verification cache: every request re-verifies, which is what the
    tests that count verify calls rely on.
    """
    authz = AuthServiceClient("http://auth.test", timeout=3.0, session=verify_session)
    tasks_app.router.lifespan_context = _patch_tasks_lifespan(task_store, authz)
    request_limiter.reset()
    with TestClient(tasks_app, raise_server_exceptions=True) as client:
        yield client


@pytest.fixture
def make_user(auth_client: TestClient) -> Callable[..., tuple[str, int]]:
    """Return a helper that registers a user and yields (token, user_id).

    Each call spends one attempt from the limiter budget of 5.
    """

    def _make(username: str, password: str = "password123") -> tuple[str, int]:
        resp = auth_client.post("/register", json={"username": username, "password": password})
        assert resp.status_code == 201, f"register failed: {resp.status_code} {resp.text}"
        data = resp.json()
        return data["token"], data["user"]["id"]

    return _make


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(name="bearer")
def bearer_fixture() -> Callable[[str], dict[str, str]]:
    return bearer
