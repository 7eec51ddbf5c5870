"""
Shared pytest fixtures and configuration for AccessiList tests.

Provides temporary session directories, a fake clock, a configured app and
a CSRF-aware test client.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

# CRITICAL: Set environment variables BEFORE any imports that might load accessilist.api.app
# This ensures rate limiting is disabled before the app's limiters are built
os.environ["DISABLE_RATE_LIMIT"] = "1"
os.environ["ACCESSILIST_RUNTIME_MODE"] = "local"
os.environ["ACCESSILIST_CSRF_SECRET"] = "test-secret"

import pytest
from fastapi.testclient import TestClient

from accessilist.api.app import create_app
from accessilist.config.checklist_types import builtin_registry
from accessilist.config.runtime import RuntimeMode, get_runtime_config
from accessilist.state.session_store import SessionStore
from accessilist.utils.time_provider import FakeTimeProvider

if TYPE_CHECKING:
    from pathlib import Path

    from fastapi import FastAPI

    from accessilist.config.runtime import RuntimeConfig

# 2024-01-15 12:00:00 UTC
FIXED_NOW = 1_705_320_000.0


def pytest_configure(config: Any) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "property: marks property-based tests")
    config.addinivalue_line("markers", "security: marks security-related tests")


# ============================================================
# Clock and Storage Fixtures
# ============================================================


@pytest.fixture
def fake_clock() -> FakeTimeProvider:
    """Manually driven clock starting at a fixed instant."""
    return FakeTimeProvider(start_time=FIXED_NOW)


@pytest.fixture
def sessions_dir(tmp_path: Path) -> Path:
    """Empty directory for session files."""
    path = tmp_path / "saves"
    path.mkdir()
    return path


@pytest.fixture
def store(sessions_dir: Path, fake_clock: FakeTimeProvider) -> SessionStore:
    """Session store over a temporary directory with the fake clock."""
    return SessionStore(sessions_dir, registry=builtin_registry(), time_provider=fake_clock)


# ============================================================
# Application Fixtures
# ============================================================


@pytest.fixture
def runtime_config(tmp_path: Path, sessions_dir: Path) -> RuntimeConfig:
    """Local-mode configuration pointing at temporary directories."""
    config = get_runtime_config(RuntimeMode.LOCAL)
    config.storage.sessions_dir = str(sessions_dir)
    config.storage.rate_limit_dir = str(tmp_path / "rate_limits")
    return config


@pytest.fixture
def app(
    runtime_config: RuntimeConfig, store: SessionStore, fake_clock: FakeTimeProvider
) -> FastAPI:
    """App wired to the temporary store and fake clock."""
    return create_app(runtime_config, store=store, time_provider=fake_clock)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Test client with a CSRF token already fetched (cookie in the jar)."""
    test_client = TestClient(app)
    token = test_client.get("/api/csrf-token").json()["data"]["token"]
    test_client.headers["X-CSRF-Token"] = token
    return test_client


@pytest.fixture
def anonymous_client(app: FastAPI) -> TestClient:
    """Test client without any CSRF token."""
    return TestClient(app)


@pytest.fixture
def isolate_environment() -> Any:
    """Snapshot os.environ and restore it after the test."""
    original_env = dict(os.environ)

    yield

    os.environ.clear()
    os.environ.update(original_env)
