# === NAVMAP v1 ===
# {
#   "module": "DocStyles.ComponentDownload.network",
#   "purpose": "Shared HTTPX client for archive downloads",
#   "sections": [
#     {"id": "public-api", "name": "Public API", "anchor": "API", "kind": "api"},
#     {"id": "implementation", "name": "Implementation Details", "anchor": "IMP", "kind": "helpers"}
#   ]
# }
# === /NAVMAP ===

"""Shared HTTPX client for archive downloads.

Responsibilities:
- **Timeouts**: per-phase connect/read timeouts taken from settings.
- **Redirects**: followed, since forge archive URLs redirect to download hosts.
- **TLS**: verification against the certifi bundle.
- **Lifecycle**: one client per process, rebuilt after ``fork``; tests call
  :func:`reset_http_client` or inject their own client into ``ArchiveCache``.

Example:
    >>> from DocStyles.ComponentDownload.network import get_http_client, close_http_client
    >>> client = get_http_client()
    >>> with client.stream("GET", "https://github.com/org/repo/archive/HEAD.zip") as response:
    ...     response.raise_for_status()
    >>> close_http_client()
"""

from __future__ import annotations

import logging
import os
import ssl
import threading
from typing import Optional

import certifi
import httpx

from .settings import ComponentSettings, get_settings

logger = logging.getLogger(__name__)

__all__ = [
    "create_http_client",
    "get_http_client",
    "close_http_client",
    "reset_http_client",
]


# ============================================================================
# Global Client State
# ============================================================================

_client: Optional[httpx.Client] = None
_client_lock = threading.Lock()
_client_bind_pid: Optional[int] = None


# ============================================================================
# Public API
# ============================================================================


def get_http_client() -> httpx.Client:
    """Return the process-wide client, building it on first use or after ``fork``."""
    global _client, _client_bind_pid

    pid = os.getpid()
    client = _client
    if client is not None and _client_bind_pid == pid:
        return client

    with _client_lock:
        if _client is not None and _client_bind_pid == pid:
            return _client
        if _client is not None:
            # Inherited from the parent process.
            _discard_client(_client, reason="fork")
        _client = create_http_client(get_settings())
        _client_bind_pid = pid
        logger.debug("shared HTTP client created", extra={"stage": "network", "pid": pid})
        return _client


def close_http_client() -> None:
    """Close the shared client if one exists."""
    global _client

    with _client_lock:
        client, _client = _client, None
    if client is not None:
        _discard_client(client, reason="close")


def reset_http_client() -> None:
    """Close the shared client and drop its process binding."""
    global _client_bind_pid

    close_http_client()
    _client_bind_pid = None


# ============================================================================
# Implementation Details
# ============================================================================


def _discard_client(client: httpx.Client, *, reason: str) -> None:
    try:
        client.close()
    except Exception as exc:  # pragma: no cover
        logger.warning(
            "failed to close shared HTTP client",
            extra={"stage": "network", "reason": reason, "error": str(exc)},
        )
        return
    logger.debug("shared HTTP client closed", extra={"stage": "network", "reason": reason})


def _create_ssl_context() -> ssl.SSLContext:
    ctx = ssl.create_default_context(cafile=certifi.where())
    ctx.check_hostname = True
    ctx.verify_mode = ssl.CERT_REQUIRED
    return ctx


def create_http_client(
    settings: ComponentSettings,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Create an HTTPX client configured from ``settings``.

    Args:
        settings: Timeouts and user agent source.
        transport: Optional transport override (``httpx.MockTransport`` in tests).

    Returns:
        Configured ``httpx.Client``; the caller owns it.
    """
    client = httpx.Client(
        transport=transport,
        timeout=httpx.Timeout(
            settings.read_timeout,
            connect=settings.connect_timeout,
        ),
        follow_redirects=True,
        headers={"User-Agent": settings.user_agent},
        verify=_create_ssl_context() if transport is None else True,
    )
    logger.debug(
        "HTTPX client created",
        extra={
            "stage": "network",
            "connect_timeout": settings.connect_timeout,
            "read_timeout": settings.read_timeout,
        },
    )
    return client
