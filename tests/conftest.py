"""Pytest configuration and fixtures."""

from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient

from helpers import SleepRecorder
from recipe_ai.config import Settings
from recipe_ai.main import app
from recipe_ai.middleware.rate_limit import limiter


@pytest.fixture(autouse=True)
def _no_ambient_gemini_key(monkeypatch):
    """Keep a developer's real key out of the tests."""
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)


@pytest.fixture
def make_settings(tmp_path):
    """Settings isolated from .env files; keyword overrides apply on top."""

    def _make(**overrides: Any) -> Settings:
        values: Dict[str, Any] = {"gemini_api_key_file": str(tmp_path / "missing.env")}
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def client():
    """Create test client."""
    limiter.reset()
    yield TestClient(app)
    app.dependency_overrides.clear()
