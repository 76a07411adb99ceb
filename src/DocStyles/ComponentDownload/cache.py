# === NAVMAP v1 ===
# {
#   "module": "DocStyles.ComponentDownload.cache",
#   "purpose": "Disk-backed cache of extracted Git forge archives",
#   "sections": [
#     {"id": "locks", "name": "Per-key Locking", "anchor": "LCK", "kind": "helpers"},
#     {"id": "archivecache", "name": "ArchiveCache", "anchor": "class-archivecache", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Disk-backed cache of extracted Git forge archives.

Every remote archive descriptor maps onto ``cache_root/<cache_key>``.  The
presence of that directory is the only validity signal: when it exists the
cache returns it without touching the network.  Otherwise the archive is
downloaded into a temporary file, extracted (stripping the forge's wrapping
top-level folder) into a hidden scratch directory next to the final one, and
renamed into place.  A failed download or extraction therefore never leaves a
directory under the final key, and a later call simply tries again.

Concurrent resolution of the same key is serialised with an in-process lock
plus a :class:`filelock.FileLock` next to the cache entry, so parallel threads
or build processes extract each archive exactly once.
"""

from __future__ import annotations

import contextlib
import logging
import os
import shutil
import tempfile
import threading
import uuid
import weakref
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

import httpx
from filelock import FileLock, Timeout

from .errors import DownloadError, ExtractionError
from .extraction import STRIP_ROOT, extract_archive
from .network import get_http_client
from .providers import ArchiveDescriptor, archive_url, cache_key

__all__ = ["ArchiveCache"]

LOGGER = logging.getLogger("DocStyles.ComponentDownload")

_CHUNK_SIZE = 1 << 20

# Entries vanish once no caller holds the lock for that target.
_KEY_LOCKS: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()
_KEY_LOCKS_GUARD = threading.Lock()


def _thread_lock_for(target: Path) -> threading.Lock:
    """Return the process-wide lock guarding ``target``."""

    key = str(target.absolute())
    with _KEY_LOCKS_GUARD:
        lock = _KEY_LOCKS.get(key)
        if lock is None:
            lock = threading.Lock()
            _KEY_LOCKS[key] = lock
        return lock


class ArchiveCache:
    """Resolve archive descriptors to extracted directories under ``cache_root``.

    Attributes:
        cache_root: Directory holding one subdirectory per cache key.
        lock_timeout: Seconds to wait for another process populating the same key.
    """

    def __init__(
        self,
        cache_root: Path,
        *,
        client: Optional[httpx.Client] = None,
        lock_timeout: float = 600.0,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.cache_root = Path(cache_root)
        self.lock_timeout = float(lock_timeout)
        self._client = client
        self._logger = logger or LOGGER

    def __repr__(self) -> str:
        return f"ArchiveCache(cache_root={str(self.cache_root)!r})"

    # --- Key and location helpers ---

    def cache_key(self, archive: ArchiveDescriptor) -> str:
        return cache_key(archive)

    def archive_url(self, archive: ArchiveDescriptor) -> str:
        return archive_url(archive)

    def cache_path(self, archive: ArchiveDescriptor) -> Path:
        """Return the directory that holds (or will hold) ``archive``."""

        return self.cache_root / self.cache_key(archive)

    def is_cached(self, archive: ArchiveDescriptor) -> bool:
        return self.cache_path(archive).is_dir()

    # --- Resolution ---

    def resolve(self, archive: ArchiveDescriptor) -> Path:
        """Return the extracted directory for ``archive``, downloading it if needed.

        Raises:
            DownloadError: If the archive cannot be fetched or the per-key lock
                cannot be acquired in time.
            ExtractionError: If the payload is not a usable zip archive or cannot
                be written to disk.
        """

        target = self.cache_path(archive)
        if target.is_dir():
            self._logger.debug(
                "archive cache hit",
                extra={"stage": "cache", "cache_key": target.name, "path": str(target)},
            )
            return target

        with self._key_lock(target):
            if target.is_dir():
                self._logger.debug(
                    "archive populated by concurrent caller",
                    extra={"stage": "cache", "cache_key": target.name},
                )
                return target
            self._populate(archive, target)
        return target

    @contextlib.contextmanager
    def _key_lock(self, target: Path) -> Iterator[None]:
        self.cache_root.mkdir(parents=True, exist_ok=True)
        lock_path = self.cache_root / f".{target.name}.lock"
        with _thread_lock_for(target):
            file_lock = FileLock(str(lock_path), timeout=self.lock_timeout)
            try:
                file_lock.acquire()
            except Timeout as exc:
                raise DownloadError(
                    f"Timed out after {self.lock_timeout}s waiting for lock {lock_path}; "
                    "another process may be stalled while populating the cache"
                ) from exc
            try:
                yield
            finally:
                file_lock.release()

    def _populate(self, archive: ArchiveDescriptor, target: Path) -> None:
        url = self.archive_url(archive)
        scratch = self.cache_root / f".{target.name}.tmp-{os.getpid()}-{uuid.uuid4().hex[:8]}"
        self._logger.info(
            "downloading component archive",
            extra={
                "stage": "download",
                "provider": archive.kind,
                "coordinates": archive.coordinates,
                "ref": archive.effective_ref,
                "url": url,
            },
        )
        try:
            with tempfile.TemporaryFile(dir=self.cache_root) as buffer:
                self._download(url, buffer)
                buffer.seek(0)
                extract_archive(buffer, scratch, STRIP_ROOT, logger=self._logger)
            try:
                os.replace(scratch, target)
            except OSError as exc:
                raise ExtractionError(
                    f"Failed to move extracted archive into {target}: {exc}"
                ) from exc
        except BaseException:
            shutil.rmtree(scratch, ignore_errors=True)
            raise
        self._logger.info(
            "cached component archive",
            extra={"stage": "cache", "cache_key": target.name, "path": str(target)},
        )

    def _download(self, url: str, buffer: BinaryIO) -> int:
        client = self._client or get_http_client()
        bytes_downloaded = 0
        try:
            with client.stream("GET", url) as response:
                if not response.is_success:
                    self._logger.error(
                        "archive download failed",
                        extra={"stage": "download", "url": url, "status": response.status_code},
                    )
                    raise DownloadError(
                        f"HTTP {response.status_code} while downloading {url}",
                        url=url,
                        status_code=response.status_code,
                    )
                for chunk in response.iter_bytes(chunk_size=_CHUNK_SIZE):
                    buffer.write(chunk)
                    bytes_downloaded += len(chunk)
        except httpx.TimeoutException as exc:
            raise DownloadError(f"Timed out downloading {url}: {exc}", url=url) from exc
        except httpx.HTTPError as exc:
            raise DownloadError(f"Failed to download {url}: {exc}", url=url) from exc
        except (httpx.InvalidURL, httpx.StreamError) as exc:
            raise DownloadError(f"Cannot download {url}: {exc}", url=url) from exc
        except OSError as exc:
            raise DownloadError(f"Failed to buffer download from {url}: {exc}", url=url) from exc
        self._logger.debug(
            "archive downloaded",
            extra={"stage": "download", "url": url, "bytes": bytes_downloaded},
        )
        return bytes_downloaded
