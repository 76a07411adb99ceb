# === NAVMAP v1 ===
# {
#   "module": "DocStyles.ComponentDownload.providers",
#   "purpose": "Git forge archive descriptors, download URL templates, and cache keys",
#   "sections": [
#     {"id": "descriptors", "name": "Archive Descriptors", "anchor": "DSC", "kind": "api"},
#     {"id": "urls", "name": "Provider URL Templates", "anchor": "URL", "kind": "helpers"},
#     {"id": "keys", "name": "Cache Keys", "anchor": "KEY", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Remote archive descriptors for the supported Git forges.

A remote component points at a repository snapshot published by GitHub or
GitLab as a zip download.  Each forge is one case of the
:data:`ArchiveDescriptor` tagged union (discriminated by ``kind``) and carries
only the fields it needs.  URL construction dispatches on the tag through
:data:`ARCHIVE_URL_BUILDERS` rather than through subclass overrides.
"""

from __future__ import annotations

import hashlib
import re
from typing import Annotated, Callable, Dict, Literal, Optional, Tuple, Union
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from .errors import ConfigError

__all__ = [
    "DEFAULT_REF",
    "GITHUB_BASE_URL",
    "GITLAB_BASE_URL",
    "GitHubArchive",
    "GitLabArchive",
    "ArchiveDescriptor",
    "ARCHIVE_URL_BUILDERS",
    "PROVIDERS",
    "archive_url",
    "cache_key",
    "make_archive",
    "parse_archive",
    "split_coordinates",
]

DEFAULT_REF = "HEAD"
GITHUB_BASE_URL = "https://github.com"
GITLAB_BASE_URL = "https://gitlab.com"

_SLUG_PATTERN = re.compile(r"[^A-Za-z0-9._-]+")
_SLUG_MAX_LEN = 48
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


class _ForgeArchive(BaseModel):
    """Fields shared by both forge descriptors."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    organisation: str = Field(min_length=1, description="Owner, organisation, or group path")
    repository: str = Field(min_length=1, description="Repository (project) name")
    ref: Optional[str] = Field(default=None, description="Branch, tag, or commit")
    base_url: Optional[str] = Field(default=None, description="Forge root for self-hosted instances")

    @field_validator("organisation", "repository")
    @classmethod
    def _strip_slashes(cls, value: str) -> str:
        stripped = value.strip().strip("/")
        if not stripped:
            raise ValueError("must not be empty")
        if _CONTROL_CHARS.search(stripped):
            raise ValueError("must not contain control characters")
        return stripped

    @field_validator("ref")
    @classmethod
    def _normalize_ref(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        stripped = value.strip()
        if _CONTROL_CHARS.search(stripped):
            raise ValueError("must not contain control characters")
        return stripped or None

    @field_validator("base_url")
    @classmethod
    def _normalize_base_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        stripped = value.strip().rstrip("/")
        if not stripped.startswith(("http://", "https://")):
            raise ValueError("base_url must be an http(s) URL")
        if _CONTROL_CHARS.search(stripped):
            raise ValueError("must not contain control characters")
        return stripped

    @property
    def coordinates(self) -> str:
        return f"{self.organisation}/{self.repository}"

    @property
    def effective_ref(self) -> str:
        return self.ref or DEFAULT_REF


class GitHubArchive(_ForgeArchive):
    """Zip snapshot of a GitHub repository."""

    kind: Literal["github"] = "github"

    @property
    def effective_base_url(self) -> str:
        return self.base_url or GITHUB_BASE_URL


class GitLabArchive(_ForgeArchive):
    """Zip snapshot of a GitLab project; ``organisation`` may be a nested group path."""

    kind: Literal["gitlab"] = "gitlab"

    @property
    def effective_base_url(self) -> str:
        return self.base_url or GITLAB_BASE_URL


ArchiveDescriptor = Annotated[Union[GitHubArchive, GitLabArchive], Field(discriminator="kind")]

_ARCHIVE_ADAPTER: TypeAdapter[ArchiveDescriptor] = TypeAdapter(ArchiveDescriptor)

PROVIDERS: Dict[str, type] = {
    "github": GitHubArchive,
    "gitlab": GitLabArchive,
}


# --- URL templates ---


def _github_archive_url(archive: GitHubArchive) -> str:
    ref = quote(archive.effective_ref, safe="/")
    return f"{archive.effective_base_url}/{archive.coordinates}/archive/{ref}.zip"


def _gitlab_archive_url(archive: GitLabArchive) -> str:
    ref = archive.effective_ref
    file_ref = ref.replace("/", "-")
    return (
        f"{archive.effective_base_url}/{archive.coordinates}/-/archive/"
        f"{quote(ref, safe='/')}/{quote(archive.repository)}-{quote(file_ref)}.zip"
    )


ARCHIVE_URL_BUILDERS: Dict[str, Callable[..., str]] = {
    "github": _github_archive_url,
    "gitlab": _gitlab_archive_url,
}


def archive_url(archive: ArchiveDescriptor) -> str:
    """Return the zip download URL for ``archive``."""

    builder = ARCHIVE_URL_BUILDERS.get(archive.kind)
    if builder is None:
        raise ConfigError(f"Unsupported archive provider: {archive.kind}")
    return builder(archive)


# --- Cache keys ---


def _slug(value: str) -> str:
    slug = _SLUG_PATTERN.sub("_", value).strip("._")
    return slug[:_SLUG_MAX_LEN] or "_"


def cache_key(archive: ArchiveDescriptor) -> str:
    """Return the deterministic on-disk cache directory name for ``archive``.

    The key starts with a readable slug (provider, repository, ref) and ends with
    a digest over every identifying field, so slug collisions between distinct
    descriptors cannot map them onto the same directory.
    """

    identity = "\n".join(
        (archive.kind, archive.effective_base_url, archive.coordinates, archive.effective_ref)
    )
    digest = hashlib.sha256(identity.encode("utf-8")).hexdigest()[:12]
    readable = "-".join(
        (archive.kind, _slug(archive.repository), _slug(archive.effective_ref))
    )
    return f"{readable}-{digest}"


# --- Construction helpers ---


def split_coordinates(coordinates: str) -> Tuple[str, str]:
    """Split ``org/repo`` (or ``group/subgroup/repo``) into organisation and repository."""

    cleaned = coordinates.strip().strip("/")
    organisation, sep, repository = cleaned.rpartition("/")
    if not sep or not organisation or not repository:
        raise ConfigError(
            f"Repository coordinates must look like 'organisation/repository': {coordinates!r}"
        )
    return organisation, repository


def parse_archive(payload: Dict[str, object]) -> ArchiveDescriptor:
    """Validate a mapping (with a ``kind`` key) into an archive descriptor."""

    try:
        return _ARCHIVE_ADAPTER.validate_python(payload)
    except ValueError as exc:
        raise ConfigError(f"Invalid archive declaration: {exc}") from exc


def make_archive(
    provider: str,
    coordinates: str,
    *,
    ref: Optional[str] = None,
    base_url: Optional[str] = None,
) -> ArchiveDescriptor:
    """Build a descriptor for ``provider`` from ``org/repo`` coordinates."""

    if provider not in PROVIDERS:
        raise ConfigError(
            f"Unsupported archive provider '{provider}'. Expected one of: {', '.join(sorted(PROVIDERS))}"
        )
    organisation, repository = split_coordinates(coordinates)
    return parse_archive(
        {
            "kind": provider,
            "organisation": organisation,
            "repository": repository,
            "ref": ref,
            "base_url": base_url,
        }
    )
