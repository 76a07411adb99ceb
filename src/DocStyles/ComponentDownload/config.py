# === NAVMAP v1 ===
# {
#   "module": "DocStyles.ComponentDownload.config",
#   "purpose": "Load component declarations from YAML files",
#   "sections": [
#     {"id": "collections", "name": "ComponentCollections", "anchor": "class-componentcollections", "kind": "class"},
#     {"id": "loading", "name": "YAML Loading", "anchor": "LOD", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Load component declarations from YAML files.

Example file::

    pdf_themes:
      basic:
        local:
          theme_dir: themes/basic
          theme_name: basic
      fancy:
        github:
          organisation: example
          repository: pdf-themes
          ref: v1.2.0
          relative_path: themes/fancy
    revealjs_plugins:
      menu:
        gitlab:
          organisation: presentations/plugins
          repository: reveal-menu

Each component maps to exactly one of ``local``, ``github`` or ``gitlab``.
Relative local paths are resolved against the directory holding the file.
Loading only records declarations; nothing is downloaded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

import yaml

from .cache import ArchiveCache
from .errors import ConfigError
from .providers import parse_archive
from .registry import RemoteSpec, normalize_relative_path
from .resolver import DownloadableComponents
from .themes import PdfThemes, RevealJsPlugins

__all__ = [
    "COLLECTION_TYPES",
    "ComponentCollections",
    "apply_declarations",
    "load_components",
    "load_raw_yaml",
]

LOGGER = logging.getLogger("DocStyles.ComponentDownload")

COLLECTION_TYPES: Dict[str, type] = {
    "pdf_themes": PdfThemes,
    "revealjs_plugins": RevealJsPlugins,
}

_SOURCE_KINDS = ("local", "github", "gitlab")
_PATH_FIELDS = {"theme_dir", "location"}


@dataclass
class ComponentCollections:
    """Component families loaded from one configuration file."""

    collections: Dict[str, DownloadableComponents] = field(default_factory=dict)

    def get(self, collection: str) -> DownloadableComponents:
        try:
            return self.collections[collection]
        except KeyError:
            raise ConfigError(
                f"Unknown component collection '{collection}'. "
                f"Expected one of: {', '.join(sorted(self.collections))}"
            ) from None

    def __iter__(self) -> Iterator[Tuple[str, DownloadableComponents]]:
        return iter(sorted(self.collections.items()))


def load_raw_yaml(config_path: Path) -> Dict[str, Any]:
    """Read ``config_path`` and return its top-level mapping."""

    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        location = f" (line {mark.line + 1}, column {mark.column + 1})" if mark else ""
        raise ConfigError(f"Configuration file {config_path} is not valid YAML{location}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file {config_path} must contain a mapping")
    return data


def _configure_local(options: Mapping[str, Any], base_dir: Path):
    def configure(source: Any) -> None:
        for key, value in options.items():
            if key == "name" or not hasattr(source, key):
                raise ConfigError(
                    f"Unknown local option '{key}' for {type(source).__name__}"
                )
            if key in _PATH_FIELDS and value is not None:
                path = Path(str(value)).expanduser()
                value = path if path.is_absolute() else base_dir / path
            setattr(source, key, value)

    return configure


def _remote_spec(name: str, kind: str, options: Mapping[str, Any]) -> RemoteSpec:
    payload = dict(options)
    relative_path = payload.pop("relative_path", None)
    payload["kind"] = kind
    return RemoteSpec(
        name=name,
        archive=parse_archive(payload),
        relative_path=normalize_relative_path(relative_path),
    )


def apply_declarations(
    components: DownloadableComponents,
    entries: Mapping[str, Any],
    *,
    base_dir: Path,
) -> None:
    """Register every entry of ``entries`` (name -> declaration) on ``components``."""

    if not isinstance(entries, Mapping):
        raise ConfigError("Component declarations must be a mapping of name to source")
    for name, declaration in entries.items():
        if not isinstance(declaration, Mapping):
            raise ConfigError(f"Declaration for component '{name}' must be a mapping")
        kinds = [kind for kind in _SOURCE_KINDS if kind in declaration]
        extra = sorted(set(declaration) - set(_SOURCE_KINDS))
        if len(kinds) != 1 or extra:
            raise ConfigError(
                f"Component '{name}' must declare exactly one of {', '.join(_SOURCE_KINDS)}"
            )
        kind = kinds[0]
        options = declaration[kind] or {}
        if not isinstance(options, Mapping):
            raise ConfigError(f"Options for component '{name}' must be a mapping")
        if kind == "local":
            components.local(str(name), _configure_local(options, base_dir))
        else:
            components.registry.register(_remote_spec(str(name), kind, options))


def load_components(
    config_path: Path,
    *,
    cache: Optional[ArchiveCache] = None,
    cache_root: Optional[Path] = None,
) -> ComponentCollections:
    """Build every known component collection declared in ``config_path``.

    Collections absent from the file are still created (empty) so callers can
    always look them up.
    """

    data = load_raw_yaml(config_path)
    unknown = sorted(set(data) - set(COLLECTION_TYPES))
    if unknown:
        raise ConfigError(
            f"Unknown component collection(s) in {config_path}: {', '.join(unknown)}"
        )
    base_dir = config_path.parent.resolve()
    loaded = ComponentCollections()
    for collection, factory in COLLECTION_TYPES.items():
        components = factory(cache=cache, cache_root=cache_root)
        apply_declarations(components, data.get(collection) or {}, base_dir=base_dir)
        loaded.collections[collection] = components
    LOGGER.info(
        "component declarations loaded",
        extra={
            "stage": "config",
            "config": str(config_path),
            "components": sum(len(c.names()) for c in loaded.collections.values()),
        },
    )
    return loaded
