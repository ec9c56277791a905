"""
Shared test fixtures and configuration for pytest.
"""

from __future__ import annotations

import itertools
import os
import sys
from typing import Any

import pytest

# Ensure project root is importable
_project_root = os.path.join(os.path.dirname(__file__), "..")
sys.path.insert(0, _project_root)

# Force demo mode with a store path that never exists, so the demo
# source always serves the synthetic dataset.
os.environ["DEMO_MODE"] = "true"
os.environ["TELEMETRY_STORE_PATH"] = "data/__missing_test_store__.json"
os.environ["JWT_SECRET"] = "test-secret"


@pytest.fixture
def make_signal():
    """Factory for raw signal records."""
    counter = itertools.count(1)

    def _make(
        type_tag: str,
        payload: Any = None,
        *,
        ts: str = "2026-09-01T10:00:00Z",
        session_id: str | None = "s1",
        event_id: str | None = None,
    ) -> dict[str, Any]:
        return {
            "event_id": event_id or f"evt-{next(counter)}",
            "ts": ts,
            "session_id": session_id,
            "type": type_tag,
            "payload": payload,
        }

    return _make


@pytest.fixture
def demo_source():
    """Provide a DemoTelemetrySource backed by the synthetic dataset."""
    from config.settings import get_settings
    get_settings.cache_clear()
    from services.demo_source import DemoTelemetrySource
    yield DemoTelemetrySource()
    get_settings.cache_clear()


@pytest.fixture
def store_file(tmp_path, monkeypatch):
    """Point TELEMETRY_STORE_PATH at a temp file; yields the path."""
    path = tmp_path / "telemetry.json"
    monkeypatch.setenv("TELEMETRY_STORE_PATH", str(path))
    from config.settings import get_settings
    get_settings.cache_clear()
    yield path
    get_settings.cache_clear()
