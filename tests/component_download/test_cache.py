# === NAVMAP v1 ===
# {
#   "module": "tests.component_download.test_cache",
#   "purpose": "Archive cache idempotence, concurrency, and failure isolation",
#   "sections": [
#     {"id": "happy_paths", "name": "Population & Cache Hit Tests", "anchor": "HPT", "kind": "tests"},
#     {"id": "concurrency", "name": "Concurrency Tests", "anchor": "CON", "kind": "tests"},
#     {"id": "failures", "name": "Failure Isolation Tests", "anchor": "FAI", "kind": "tests"}
#   ]
# }
# === /NAVMAP ===

"""Tests for the disk-backed archive cache.

Tests cover:
- First resolution downloads once and strips the forge's wrapping folder
- Existing cache directories are returned without network access
- Concurrent resolution of one key downloads exactly once
- Failed downloads or extractions leave nothing under the cache key
"""

from __future__ import annotations

import gc
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import httpx
import pytest

from DocStyles.ComponentDownload import cache as cache_mod
from DocStyles.ComponentDownload.cache import ArchiveCache
from DocStyles.ComponentDownload.errors import DownloadError, ExtractionError
from DocStyles.ComponentDownload.providers import GitHubArchive, GitLabArchive
from tests.fixtures.forge_archives import forge_zip, make_zip

GITHUB_URL = "https://github.com/example/pdf-themes/archive/v1.zip"


@pytest.fixture
def archive() -> GitHubArchive:
    return GitHubArchive(organisation="example", repository="pdf-themes", ref="v1")


@pytest.fixture
def cache(cache_root, http_client) -> ArchiveCache:
    return ArchiveCache(cache_root, client=http_client, lock_timeout=5)


def _leftovers(cache_root):
    return sorted(path.name for path in cache_root.iterdir() if ".tmp-" in path.name)


# ============================================================================
# POPULATION & CACHE HIT TESTS
# ============================================================================


def test_resolve_downloads_and_strips_root(cache, archive, archive_server, cache_root) -> None:
    archive_server.payloads[GITHUB_URL] = forge_zip("pdf-themes-1")

    path = cache.resolve(archive)

    assert path == cache_root / cache.cache_key(archive)
    assert (path / "README.md").read_text() == "# themes"
    assert (path / "themes" / "fancy" / "fancy-theme.yml").is_file()
    assert archive_server.count(GITHUB_URL) == 1


def test_resolve_is_idempotent(cache, archive, archive_server) -> None:
    archive_server.payloads[GITHUB_URL] = forge_zip()

    first = cache.resolve(archive)
    second = cache.resolve(archive)

    assert first == second
    assert archive_server.count(GITHUB_URL) == 1


def test_existing_directory_is_trusted_without_network(cache, archive, archive_server) -> None:
    """Presence of the key directory is the only validity signal."""
    target = cache.cache_path(archive)
    target.mkdir(parents=True)
    (target / "marker.txt").write_text("prepared")

    assert cache.resolve(archive) == target
    assert archive_server.requests == []
    assert (target / "marker.txt").read_text() == "prepared"


def test_separate_cache_instances_share_disk_state(cache_root, archive, archive_server, http_client) -> None:
    archive_server.payloads[GITHUB_URL] = forge_zip()

    ArchiveCache(cache_root, client=http_client).resolve(archive)
    path = ArchiveCache(cache_root, client=http_client).resolve(archive)

    assert path.is_dir()
    assert archive_server.count(GITHUB_URL) == 1


def test_distinct_refs_get_distinct_directories(cache, archive_server) -> None:
    v1 = GitHubArchive(organisation="example", repository="pdf-themes", ref="v1")
    v2 = GitHubArchive(organisation="example", repository="pdf-themes", ref="v2")
    archive_server.payloads[GITHUB_URL] = forge_zip()
    archive_server.payloads["https://github.com/example/pdf-themes/archive/v2.zip"] = forge_zip()

    assert cache.resolve(v1) != cache.resolve(v2)
    assert len(archive_server.requests) == 2


def test_gitlab_archive_resolves(cache, archive_server) -> None:
    archive = GitLabArchive(organisation="group", repository="plugins", ref="main")
    url = "https://gitlab.com/group/plugins/-/archive/main/plugins-main.zip"
    archive_server.payloads[url] = forge_zip("plugins-main")

    path = cache.resolve(archive)

    assert (path / "README.md").is_file()
    assert archive_server.count(url) == 1


def test_is_cached_tracks_population(cache, archive, archive_server) -> None:
    archive_server.payloads[GITHUB_URL] = forge_zip()

    assert not cache.is_cached(archive)
    cache.resolve(archive)
    assert cache.is_cached(archive)


def test_default_client_comes_from_shared_factory(cache_root, archive, archive_server, monkeypatch) -> None:
    client = archive_server.client()
    monkeypatch.setattr(cache_mod, "get_http_client", lambda: client)
    archive_server.payloads[GITHUB_URL] = forge_zip()

    ArchiveCache(cache_root).resolve(archive)

    assert archive_server.count(GITHUB_URL) == 1
    client.close()


# ============================================================================
# CONCURRENCY TESTS
# ============================================================================


def test_concurrent_resolution_downloads_once(cache_root, archive, archive_server, http_client) -> None:
    archive_server.payloads[GITHUB_URL] = forge_zip()
    archive_server.gate = threading.Event()
    caches = [ArchiveCache(cache_root, client=http_client, lock_timeout=10) for _ in range(8)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        futures = [pool.submit(item.resolve, archive) for item in caches]
        time.sleep(0.2)
        archive_server.gate.set()
        paths = {future.result(timeout=10) for future in futures}

    assert len(paths) == 1
    assert archive_server.count(GITHUB_URL) == 1
    assert _leftovers(cache_root) == []


def test_concurrent_distinct_keys_proceed_independently(cache, archive_server) -> None:
    archives = [
        GitHubArchive(organisation="example", repository="pdf-themes", ref=f"v{index}")
        for index in range(4)
    ]
    for item in archives:
        archive_server.payloads[cache.archive_url(item)] = forge_zip()

    with ThreadPoolExecutor(max_workers=4) as pool:
        paths = list(pool.map(cache.resolve, archives))

    assert len(set(paths)) == 4
    assert all((path / "README.md").is_file() for path in paths)


# ============================================================================
# FAILURE ISOLATION TESTS
# ============================================================================


def test_http_error_raises_download_error(cache, archive, cache_root) -> None:
    with pytest.raises(DownloadError) as excinfo:
        cache.resolve(archive)

    assert excinfo.value.status_code == 404
    assert excinfo.value.url == GITHUB_URL
    assert not cache.is_cached(archive)
    assert _leftovers(cache_root) == []


def test_transport_error_raises_download_error(cache, archive, archive_server) -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    archive_server.failures[GITHUB_URL] = refuse

    with pytest.raises(DownloadError, match="Failed to download"):
        cache.resolve(archive)

    assert not cache.is_cached(archive)


def test_timeout_raises_download_error(cache, archive, archive_server) -> None:
    def stall(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("read timed out", request=request)

    archive_server.failures[GITHUB_URL] = stall

    with pytest.raises(DownloadError, match="Timed out"):
        cache.resolve(archive)


def test_invalid_payload_leaves_no_directory(cache, archive, archive_server, cache_root) -> None:
    archive_server.payloads[GITHUB_URL] = b"<html>rate limited</html>"

    with pytest.raises(ExtractionError):
        cache.resolve(archive)

    assert not cache.cache_path(archive).exists()
    assert _leftovers(cache_root) == []


def test_failed_population_is_retried(cache, archive, archive_server) -> None:
    archive_server.payloads[GITHUB_URL] = b"garbage"
    with pytest.raises(ExtractionError):
        cache.resolve(archive)

    archive_server.payloads[GITHUB_URL] = forge_zip()
    path = cache.resolve(archive)

    assert (path / "README.md").is_file()
    assert archive_server.count(GITHUB_URL) == 2


def test_unsafe_archive_is_not_cached(cache, archive, archive_server, cache_root) -> None:
    archive_server.payloads[GITHUB_URL] = make_zip(
        {"root/ok.txt": "fine", "root/../../escape.txt": "boom"}
    )

    with pytest.raises(ExtractionError):
        cache.resolve(archive)

    assert not cache.is_cached(archive)
    assert _leftovers(cache_root) == []
    assert not (cache_root.parent / "escape.txt").exists()


def test_unbuildable_url_raises_download_error(cache, archive_server) -> None:
    """Descriptors built without validation still fail as DownloadError."""
    archive = GitHubArchive.model_construct(
        organisation="ex\tample", repository="pdf-themes", ref=None, base_url=None
    )

    with pytest.raises(DownloadError, match="Cannot download"):
        cache.resolve(archive)

    assert archive_server.requests == []
    assert not cache.is_cached(archive)


def test_key_locks_are_released_after_resolution(cache, archive, archive_server) -> None:
    archive_server.payloads[GITHUB_URL] = forge_zip()

    path = cache.resolve(archive)
    gc.collect()

    assert str(path.absolute()) not in cache_mod._KEY_LOCKS
