# === NAVMAP v1 ===
# {
#   "module": "DocStyles.ComponentDownload.resolver",
#   "purpose": "Resolve named components into local artefacts with failure translation",
#   "sections": [
#     {"id": "resolvedcomponent", "name": "ResolvedComponent", "anchor": "class-resolvedcomponent", "kind": "class"},
#     {"id": "downloadablecomponents", "name": "DownloadableComponents", "anchor": "class-downloadablecomponents", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Resolve named components into local artefacts.

:class:`DownloadableComponents` is the base for every family of downloadable
components (PDF themes, reveal.js plugins, ...).  It owns a
:class:`~DocStyles.ComponentDownload.registry.ComponentRegistry` of
declarations and an :class:`~DocStyles.ComponentDownload.cache.ArchiveCache`,
and exposes :meth:`DownloadableComponents.get_by_name`, the only way a
declaration becomes a usable artefact.

Resolution is not memoised in memory.  Each call re-checks the
disk: once the cache directory for a remote component exists, a repeat call is
just a directory existence check.  Callers that want a shared instance keep the
returned object themselves.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Generic, Optional, Set, TypeVar

from .cache import ArchiveCache
from .errors import ComponentResolutionError, UnknownComponentError
from .registry import ComponentRegistry, LocalSpec, RemoteSpec
from .settings import get_settings

__all__ = ["ResolvedComponent", "DownloadableComponents"]

LOGGER = logging.getLogger("DocStyles.ComponentDownload")

SourceT = TypeVar("SourceT")
ResolvedT = TypeVar("ResolvedT")


@dataclass(frozen=True, slots=True)
class ResolvedComponent:
    """A component available on the local filesystem."""

    name: str
    path: Path


class DownloadableComponents(abc.ABC, Generic[SourceT, ResolvedT]):
    """Named components declared locally or as Git forge archives.

    Args:
        cache: Archive cache for remote components.  When omitted, one is built
            from ``cache_root`` (or the configured default cache root).
        cache_root: Cache directory used when ``cache`` is not supplied.
        logger: Logger for structured ``stage="resolve"`` records.
    """

    def __init__(
        self,
        *,
        cache: Optional[ArchiveCache] = None,
        cache_root: Optional[Path] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if cache is None:
            settings = get_settings()
            cache = ArchiveCache(
                Path(cache_root) if cache_root is not None else settings.cache_root,
                lock_timeout=settings.lock_timeout,
            )
        self.cache = cache
        self.registry: ComponentRegistry[SourceT] = ComponentRegistry(self.instantiate_source)
        self._logger = logger or LOGGER

    # --- Declaration API ---

    def local(self, name: str, configure: Callable[[SourceT], None]) -> None:
        """Add a component whose source is on the local filesystem."""

        self.registry.register_local(name, configure)

    def github(self, name: str, organisation: str, repository: str, **options: Optional[str]) -> None:
        """Use a GitHub repository archive as a component.

        ``options`` accepts ``ref``, ``relative_path`` and ``base_url``.
        """

        self.registry.github(name, organisation, repository, **options)

    def gitlab(self, name: str, organisation: str, repository: str, **options: Optional[str]) -> None:
        """Use a GitLab project archive as a component.

        ``options`` accepts ``ref``, ``relative_path`` and ``base_url``.
        """

        self.registry.gitlab(name, organisation, repository, **options)

    def names(self) -> Set[str]:
        return self.registry.names()

    # --- Resolution ---

    def get_by_name(self, name: str) -> ResolvedT:
        """Retrieve a component by name, resolving it if required.

        Raises:
            UnknownComponentError: If ``name`` was never registered.
            ComponentResolutionError: If the component cannot be made available;
                the underlying error is kept as ``cause`` and ``__cause__``.
        """

        spec = self.registry.get(name)
        if spec is None:
            raise UnknownComponentError(name)

        try:
            if isinstance(spec, LocalSpec):
                resolved = self.resolve_local(name, spec.source)
            elif isinstance(spec, RemoteSpec):
                resolved = self.instantiate_resolved(name, self._resolve_remote(spec))
            else:  # pragma: no cover - registry only stores the two spec types
                raise ComponentResolutionError(name, TypeError(f"Unsupported spec: {spec!r}"))
        except ComponentResolutionError:
            raise
        except Exception as exc:
            self._logger.error(
                "component resolution failed",
                extra={"stage": "resolve", "component": name, "error": str(exc)},
            )
            raise ComponentResolutionError(name, exc) from exc

        self._logger.debug(
            "component resolved",
            extra={"stage": "resolve", "component": name},
        )
        return resolved

    def _resolve_remote(self, spec: RemoteSpec) -> Path:
        root = self.cache.resolve(spec.archive)
        path = root / spec.relative_path if spec.relative_path else root
        if not path.exists():
            raise ComponentResolutionError(
                spec.name,
                FileNotFoundError(
                    f"'{spec.relative_path}' does not exist inside archive "
                    f"{spec.archive.coordinates}@{spec.archive.effective_ref}"
                ),
            )
        return path

    # --- Domain hooks ---

    @abc.abstractmethod
    def instantiate_source(self, name: str) -> SourceT:
        """Return a fresh, unconfigured local source descriptor for ``name``."""

    @abc.abstractmethod
    def resolve_local(self, name: str, source: SourceT) -> ResolvedT:
        """Turn a configured local source into a resolved component."""

    @abc.abstractmethod
    def instantiate_resolved(self, name: str, path: Path) -> ResolvedT:
        """Build the resolved component located at ``path``."""
