# === NAVMAP v1 ===
# {
#   "module": "DocStyles.ComponentDownload.registry",
#   "purpose": "Declarative component specs and the name-keyed registry",
#   "sections": [
#     {"id": "specs", "name": "Component Specs", "anchor": "SPC", "kind": "api"},
#     {"id": "registry", "name": "ComponentRegistry", "anchor": "class-componentregistry", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Declarative component specs and the name-keyed registry.

Registering a component only records what it is; nothing is downloaded or
checked on disk until a resolver asks for the component by name.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Callable, Dict, Generic, Iterator, Optional, Set, TypeVar, Union

from .errors import ConfigError
from .providers import ArchiveDescriptor, make_archive, parse_archive

__all__ = [
    "LocalSpec",
    "RemoteSpec",
    "ComponentSpec",
    "ComponentRegistry",
    "normalize_relative_path",
]

SourceT = TypeVar("SourceT")


@dataclass(frozen=True, slots=True)
class LocalSpec(Generic[SourceT]):
    """Component whose files already live on the local filesystem."""

    name: str
    source: SourceT


@dataclass(frozen=True, slots=True)
class RemoteSpec:
    """Component fetched from a Git forge archive."""

    name: str
    archive: ArchiveDescriptor
    relative_path: Optional[str] = None


ComponentSpec = Union[LocalSpec, RemoteSpec]


def normalize_relative_path(value: Optional[str]) -> Optional[str]:
    """Validate a subpath inside an extracted archive."""

    if value is None:
        return None
    normalized = value.replace("\\", "/").strip()
    if normalized.startswith("/"):
        raise ConfigError(f"relative_path must be relative: {value!r}")
    parts = [part for part in normalized.split("/") if part not in {"", "."}]
    if any(part == ".." for part in parts):
        raise ConfigError(f"relative_path must not contain '..': {value!r}")
    if not parts:
        return None
    return str(PurePosixPath(*parts))


def _validate_name(name: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ConfigError("Component name must be a non-empty string")
    return name


class ComponentRegistry(Generic[SourceT]):
    """Mapping of component names to their declarations.

    Re-registering a name replaces the previous declaration.

    Args:
        source_factory: Creates a fresh, unconfigured local source descriptor
            for a component name.
    """

    def __init__(self, source_factory: Callable[[str], SourceT]) -> None:
        self._source_factory = source_factory
        self._specs: Dict[str, ComponentSpec] = {}

    def register(self, spec: ComponentSpec) -> ComponentSpec:
        """Store ``spec`` under its name, replacing any earlier declaration."""

        self._specs[_validate_name(spec.name)] = spec
        return spec

    def register_local(self, name: str, configure: Callable[[SourceT], None]) -> LocalSpec:
        """Declare a local component configured by ``configure``."""

        _validate_name(name)
        source = self._source_factory(name)
        configure(source)
        return self.register(LocalSpec(name=name, source=source))

    def register_remote(
        self,
        name: str,
        provider: str,
        coordinates: str,
        ref: Optional[str] = None,
        relative_path: Optional[str] = None,
        *,
        base_url: Optional[str] = None,
    ) -> RemoteSpec:
        """Declare a component served as a zip archive by ``provider``.

        Args:
            name: Component name.
            provider: ``"github"`` or ``"gitlab"``.
            coordinates: ``organisation/repository`` (GitLab groups may nest).
            ref: Branch, tag, or commit; the forge's default branch when omitted.
            relative_path: Directory inside the archive to treat as the component root.
            base_url: Forge root for self-hosted instances.
        """

        _validate_name(name)
        archive = make_archive(provider, coordinates, ref=ref, base_url=base_url)
        return self.register(
            RemoteSpec(
                name=name,
                archive=archive,
                relative_path=normalize_relative_path(relative_path),
            )
        )

    def github(
        self,
        name: str,
        organisation: str,
        repository: str,
        *,
        ref: Optional[str] = None,
        relative_path: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> RemoteSpec:
        """Declare a component from a GitHub repository."""

        return self._register_forge(
            "github", name, organisation, repository, ref, relative_path, base_url
        )

    def gitlab(
        self,
        name: str,
        organisation: str,
        repository: str,
        *,
        ref: Optional[str] = None,
        relative_path: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> RemoteSpec:
        """Declare a component from a GitLab project."""

        return self._register_forge(
            "gitlab", name, organisation, repository, ref, relative_path, base_url
        )

    def _register_forge(
        self,
        kind: str,
        name: str,
        organisation: str,
        repository: str,
        ref: Optional[str],
        relative_path: Optional[str],
        base_url: Optional[str],
    ) -> RemoteSpec:
        _validate_name(name)
        archive = parse_archive(
            {
                "kind": kind,
                "organisation": organisation,
                "repository": repository,
                "ref": ref,
                "base_url": base_url,
            }
        )
        return self.register(
            RemoteSpec(
                name=name,
                archive=archive,
                relative_path=normalize_relative_path(relative_path),
            )
        )

    def get(self, name: str) -> Optional[ComponentSpec]:
        return self._specs.get(name)

    def names(self) -> Set[str]:
        return set(self._specs)

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __len__(self) -> int:
        return len(self._specs)

    def __iter__(self) -> Iterator[ComponentSpec]:
        return iter(list(self._specs.values()))
