# === NAVMAP v1 ===
# {
#   "module": "DocStyles.ComponentDownload",
#   "purpose": "Package initialization for DocStyles.ComponentDownload",
#   "sections": [
#     {
#       "id": "getattr",
#       "name": "__getattr__",
#       "anchor": "function-getattr",
#       "kind": "function"
#     },
#     {
#       "id": "dir",
#       "name": "__dir__",
#       "anchor": "function-dir",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Public API for the DocStyles named-component downloader.

Components (PDF themes, reveal.js plugins) are declared by name as local
directories or GitHub/GitLab archives, and resolved on demand into directories
on disk.  Remote archives are cached under a cache root keyed by provider,
repository, and ref, so repeat resolutions never download again.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any, Dict, Tuple

__version__ = "0.1.0"

_EXPORTS: Dict[str, Tuple[str, str]] = {
    "ArchiveCache": (".cache", "ArchiveCache"),
    "ComponentDownloadError": (".errors", "ComponentDownloadError"),
    "ComponentResolutionError": (".errors", "ComponentResolutionError"),
    "ConfigError": (".errors", "ConfigError"),
    "DownloadError": (".errors", "DownloadError"),
    "ExtractionError": (".errors", "ExtractionError"),
    "UnknownComponentError": (".errors", "UnknownComponentError"),
    "PRESERVE": (".extraction", "PRESERVE"),
    "STRIP_ROOT": (".extraction", "STRIP_ROOT"),
    "Preserve": (".extraction", "Preserve"),
    "StripRoot": (".extraction", "StripRoot"),
    "extract_archive": (".extraction", "extract_archive"),
    "GitHubArchive": (".providers", "GitHubArchive"),
    "GitLabArchive": (".providers", "GitLabArchive"),
    "ComponentRegistry": (".registry", "ComponentRegistry"),
    "LocalSpec": (".registry", "LocalSpec"),
    "RemoteSpec": (".registry", "RemoteSpec"),
    "DownloadableComponents": (".resolver", "DownloadableComponents"),
    "ResolvedComponent": (".resolver", "ResolvedComponent"),
    "PdfThemes": (".themes", "PdfThemes"),
    "ResolvedPdfTheme": (".themes", "ResolvedPdfTheme"),
    "RevealJsPlugins": (".themes", "RevealJsPlugins"),
    "load_components": (".config", "load_components"),
    "ComponentSettings": (".settings", "ComponentSettings"),
    "get_settings": (".settings", "get_settings"),
}

__all__ = ["__version__", *_EXPORTS]


def __getattr__(name: str) -> Any:
    """Lazily import exports so ``import DocStyles.ComponentDownload`` stays cheap."""

    target = _EXPORTS.get(name)
    if target is None:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
    module = import_module(target[0], __name__)
    value = getattr(module, target[1])
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    """Expose lazily-populated attributes in ``dir()`` results."""

    return sorted(set(globals()) | set(__all__))
