"""
Pytest Configuration

Adds ``src`` to ``sys.path``, exposes the shared forge-archive fixtures, and
isolates settings and the shared HTTP client between tests.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from DocStyles.ComponentDownload import network as network_mod  # noqa: E402
from DocStyles.ComponentDownload.settings import reset_settings  # noqa: E402
from tests.fixtures.forge_archives import (  # noqa: E402,F401
    archive_server,
    cache_root,
    http_client,
)


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch, tmp_path):
    """Point the default cache root at a temp dir and drop cached settings."""

    monkeypatch.setenv("DOCSTYLES_CACHE_ROOT", str(tmp_path / "default-cache"))
    monkeypatch.delenv("DOCSTYLES_LOG_DIR", raising=False)
    monkeypatch.delenv("DOCSTYLES_CONFIG", raising=False)
    reset_settings()
    network_mod.reset_http_client()
    yield
    reset_settings()
    network_mod.reset_http_client()
