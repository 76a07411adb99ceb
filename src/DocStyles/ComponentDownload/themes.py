"""Concrete component families: PDF themes and reveal.js plugins.

Both families accept local declarations and GitHub/GitLab archives.  A PDF theme
resolves to a directory plus a theme name; the theme file inside that directory
is ``<theme_name>-theme.yml`` unless the name already ends in ``.yml``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import ConfigError
from .resolver import DownloadableComponents, ResolvedComponent

__all__ = [
    "PdfThemeSource",
    "ResolvedPdfTheme",
    "PdfThemes",
    "RevealJsPluginSource",
    "RevealJsPlugins",
    "theme_file_name",
]

_THEME_SUFFIX = "-theme.yml"


def theme_file_name(theme_name: str) -> str:
    """Return the theme file name for ``theme_name``."""

    if theme_name.endswith(".yml"):
        return theme_name
    return f"{theme_name}{_THEME_SUFFIX}"


@dataclass
class PdfThemeSource:
    """Local PDF theme declaration, filled in by a configure callback."""

    name: str
    theme_dir: Optional[Path] = None
    theme_name: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ResolvedPdfTheme(ResolvedComponent):
    """PDF theme directory plus the theme name used to locate the theme file."""

    theme_name: str = ""

    @property
    def theme_file(self) -> Path:
        return self.path / theme_file_name(self.theme_name or self.name)


class PdfThemes(DownloadableComponents[PdfThemeSource, ResolvedPdfTheme]):
    """PDF themes keyed by name."""

    def instantiate_source(self, name: str) -> PdfThemeSource:
        return PdfThemeSource(name=name)

    def resolve_local(self, name: str, source: PdfThemeSource) -> ResolvedPdfTheme:
        if source.theme_dir is None:
            raise ConfigError(f"Local theme '{name}' does not declare a theme_dir")
        theme_dir = Path(source.theme_dir)
        if not theme_dir.is_dir():
            raise ConfigError(f"Theme directory for '{name}' does not exist: {theme_dir}")
        return ResolvedPdfTheme(name=name, path=theme_dir, theme_name=source.theme_name or name)

    def instantiate_resolved(self, name: str, path: Path) -> ResolvedPdfTheme:
        return ResolvedPdfTheme(name=name, path=path, theme_name=name)


@dataclass
class RevealJsPluginSource:
    """Local reveal.js plugin declaration."""

    name: str
    location: Optional[Path] = None


class RevealJsPlugins(DownloadableComponents[RevealJsPluginSource, ResolvedComponent]):
    """reveal.js plugins keyed by name; a plugin resolves to its directory or file."""

    def instantiate_source(self, name: str) -> RevealJsPluginSource:
        return RevealJsPluginSource(name=name)

    def resolve_local(self, name: str, source: RevealJsPluginSource) -> ResolvedComponent:
        if source.location is None:
            raise ConfigError(f"Local plugin '{name}' does not declare a location")
        location = Path(source.location)
        if not location.exists():
            raise ConfigError(f"Plugin location for '{name}' does not exist: {location}")
        return ResolvedComponent(name=name, path=location)

    def instantiate_resolved(self, name: str, path: Path) -> ResolvedComponent:
        return ResolvedComponent(name=name, path=path)
