"""
Pytest configuration and shared fixtures for autopilot_tools tests.
"""

import os
import sys
from pathlib import Path
from typing import Any, Callable, Optional
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from autopilot_tools.graph import GraphSession


# ============================================================================
# HTTP Fixtures
# ============================================================================

@pytest.fixture
def make_response() -> Callable[..., MagicMock]:
    """Factory for fake `requests.Response` objects."""

    def _make(status: int = 200, payload: Any = None, text: Optional[str] = None) -> MagicMock:
        resp = MagicMock()
        resp.status_code = status
        if payload is not None:
            resp.json.return_value = payload
            resp.content = b"{...}"
            resp.text = str(payload)
        else:
            resp.json.side_effect = ValueError("no json")
            resp.text = text or ""
            resp.content = (text or "").encode()
        return resp

    return _make


@pytest.fixture
def http() -> MagicMock:
    """Stand-in for requests.Session."""
    return MagicMock()


@pytest.fixture
def graph(http) -> GraphSession:
    """GraphSession wired to the fake HTTP session."""
    return GraphSession("test-token", http=http)


# ============================================================================
# Command Fixtures
# ============================================================================

@pytest.fixture
def session() -> MagicMock:
    """Mock session for exercising commands without HTTP."""
    return MagicMock(spec=GraphSession)


@pytest.fixture
def app_env(monkeypatch):
    """App-only credentials in the environment."""
    monkeypatch.setenv("AZURE_TENANT_ID", "contoso.onmicrosoft.com")
    monkeypatch.setenv("AZURE_CLIENT_ID", "app-id")
    monkeypatch.setenv("AZURE_CLIENT_SECRET", "secret")
    monkeypatch.delenv("GRAPH_BASE_URL", raising=False)
    return os.environ


@pytest.fixture
def hash_csv(tmp_path: Path) -> Path:
    """A small hardware hash CSV."""
    path = tmp_path / "hashes.csv"
    path.write_text(
        "Device Serial Number,Windows Product ID,Hardware Hash,Group Tag,OrderID,Assigned User\n"
        "SN001,,HASH1,,,\n"
        "SN002,,HASH2,Sales,PO-7,user@contoso.com\n"
        "SN003,,HASH3,,PO-9,\n",
        encoding="utf-8",
    )
    return path
