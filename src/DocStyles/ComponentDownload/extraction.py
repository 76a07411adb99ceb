# === NAVMAP v1 ===
# {
#   "module": "DocStyles.ComponentDownload.extraction",
#   "purpose": "Stream zip archives to disk with pluggable entry path rewriting",
#   "sections": [
#     {"id": "policies", "name": "Path Policies", "anchor": "POL", "kind": "api"},
#     {"id": "validation", "name": "Member Path Validation", "anchor": "VAL", "kind": "helpers"},
#     {"id": "extract", "name": "extract_archive", "anchor": "EXT", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Zip extraction helpers for component archives.

Archives downloaded from Git forges wrap their content in a single synthetic
top-level folder (``repository-ref/``).  The extraction loop below is agnostic
of that convention: callers choose a :class:`PathPolicy` that rewrites every
stored entry name before it is joined onto the destination directory.  Two
policies are provided, :data:`PRESERVE` and :data:`STRIP_ROOT`.

Entry names are validated after rewriting so that absolute paths, ``..``
segments, and symlink entries never reach the filesystem.
"""

from __future__ import annotations

import logging
import shutil
import stat
import zipfile
import zlib
from pathlib import Path, PurePosixPath
from typing import BinaryIO, List, Optional, Protocol

from .errors import ExtractionError

__all__ = [
    "PathPolicy",
    "Preserve",
    "StripRoot",
    "PRESERVE",
    "STRIP_ROOT",
    "extract_archive",
]


class PathPolicy(Protocol):
    """Rewrite a stored archive entry name into a destination-relative path."""

    def rewrite(self, entry_name: str) -> str:
        """Return the destination-relative path, or an empty string to skip the entry."""
        ...


class Preserve:
    """Keep archive entry names unchanged."""

    def rewrite(self, entry_name: str) -> str:
        return entry_name

    def __repr__(self) -> str:
        return "Preserve()"


class StripRoot:
    """Drop the first path segment of every archive entry.

    ``repo-main/docs/a.txt`` becomes ``docs/a.txt`` and the wrapping
    ``repo-main/`` directory entry itself rewrites to an empty name.  Entries
    without any separator are kept as they are.
    """

    def rewrite(self, entry_name: str) -> str:
        normalized = entry_name.replace("\\", "/")
        _, sep, tail = normalized.partition("/")
        if not sep:
            return entry_name
        return tail

    def __repr__(self) -> str:
        return "StripRoot()"


PRESERVE = Preserve()
STRIP_ROOT = StripRoot()


def _validate_member_path(member_name: str) -> Optional[Path]:
    """Validate a rewritten member path; ``None`` means there is nothing to write."""

    normalized = member_name.replace("\\", "/")
    if not normalized.strip("/"):
        return None
    if normalized.startswith("/"):
        raise ExtractionError(f"Unsafe absolute path detected in archive: {member_name}")
    relative = PurePosixPath(normalized.rstrip("/"))
    if relative.parts and ":" in relative.parts[0]:
        raise ExtractionError(f"Unsafe drive path detected in archive: {member_name}")
    if any(part in {"", ".", ".."} for part in normalized.rstrip("/").split("/")):
        raise ExtractionError(f"Unsafe path detected in archive: {member_name}")
    return Path(*relative.parts)


def _is_symlink(member: zipfile.ZipInfo) -> bool:
    mode = (member.external_attr >> 16) & 0xFFFF
    return stat.S_IFMT(mode) == stat.S_IFLNK


def extract_archive(
    stream: BinaryIO,
    destination: Path,
    policy: PathPolicy = PRESERVE,
    *,
    logger: Optional[logging.Logger] = None,
) -> List[Path]:
    """Extract the zip archive read from ``stream`` into ``destination``.

    Entries are processed in the order they are stored.  Directory entries
    create directories, file entries create their parents and overwrite any
    existing file.  A failure part-way through leaves the files written so far
    in place; callers wanting all-or-nothing semantics extract into a scratch
    directory first (see :class:`~DocStyles.ComponentDownload.cache.ArchiveCache`).

    Args:
        stream: Seekable binary stream holding a zip archive.
        destination: Directory that receives the extracted entries.
        policy: Entry name rewriting policy.
        logger: Optional logger for structured ``stage="extract"`` records.

    Returns:
        Paths of regular files written, in archive order.

    Raises:
        ExtractionError: If the stream is not a zip archive, an entry is unsafe or
            uses an unsupported feature (encryption, unknown compression), or
            writing to disk fails.
    """

    extracted: List[Path] = []
    try:
        destination.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(stream) as archive:
            for member in archive.infolist():
                if _is_symlink(member):
                    raise ExtractionError(f"Unsafe link detected in archive: {member.filename}")
                member_path = _validate_member_path(policy.rewrite(member.filename))
                if member_path is None:
                    continue
                target_path = destination / member_path
                if member.is_dir():
                    target_path.mkdir(parents=True, exist_ok=True)
                    continue
                target_path.parent.mkdir(parents=True, exist_ok=True)
                with archive.open(member, "r") as source, target_path.open("wb") as target:
                    shutil.copyfileobj(source, target)
                extracted.append(target_path)
    except ExtractionError:
        raise
    except (zipfile.BadZipFile, EOFError, zlib.error) as exc:
        raise ExtractionError(f"Invalid zip archive: {exc}") from exc
    except (RuntimeError, NotImplementedError, zipfile.LargeZipFile) as exc:
        # zipfile signals encrypted entries with RuntimeError and unknown
        # compression methods with NotImplementedError.
        raise ExtractionError(f"Unsupported zip archive entry: {exc}") from exc
    except OSError as exc:
        if logger:
            logger.error(
                "filesystem error during extraction",
                extra={"stage": "extract", "destination": str(destination), "error": str(exc)},
            )
        raise ExtractionError(f"Failed to extract archive into {destination}: {exc}") from exc
    if logger:
        logger.info(
            "extracted zip archive",
            extra={
                "stage": "extract",
                "destination": str(destination),
                "policy": repr(policy),
                "files": len(extracted),
            },
        )
    return extracted
