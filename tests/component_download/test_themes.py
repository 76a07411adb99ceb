"""Tests for the PDF theme and reveal.js plugin collections."""

from __future__ import annotations

from pathlib import Path

import pytest

from DocStyles.ComponentDownload.cache import ArchiveCache
from DocStyles.ComponentDownload.errors import ComponentResolutionError
from DocStyles.ComponentDownload.resolver import ResolvedComponent
from DocStyles.ComponentDownload.themes import (
    PdfThemes,
    ResolvedPdfTheme,
    RevealJsPlugins,
    theme_file_name,
)
from tests.fixtures.forge_archives import make_zip


@pytest.mark.parametrize(
    ("theme_name", "expected"),
    [
        ("fancy", "fancy-theme.yml"),
        ("custom.yml", "custom.yml"),
        ("corporate-theme.yml", "corporate-theme.yml"),
    ],
)
def test_theme_file_name(theme_name: str, expected: str) -> None:
    assert theme_file_name(theme_name) == expected


def test_theme_file_defaults_to_component_name() -> None:
    theme = ResolvedPdfTheme(name="fancy", path=Path("/themes"))

    assert theme.theme_file == Path("/themes/fancy-theme.yml")


def test_local_theme_uses_declared_theme_name(tmp_path) -> None:
    themes = PdfThemes(cache_root=tmp_path / "cache")

    def configure(source) -> None:
        source.theme_dir = tmp_path
        source.theme_name = "corporate.yml"

    themes.local("corp", configure)
    resolved = themes.get_by_name("corp")

    assert resolved == ResolvedPdfTheme(name="corp", path=tmp_path, theme_name="corporate.yml")
    assert resolved.theme_file == tmp_path / "corporate.yml"


def test_local_theme_name_falls_back_to_component_name(tmp_path) -> None:
    themes = PdfThemes(cache_root=tmp_path / "cache")
    themes.local("basic", lambda source: setattr(source, "theme_dir", tmp_path))

    assert themes.get_by_name("basic").theme_name == "basic"


def test_local_theme_without_directory_fails(tmp_path) -> None:
    themes = PdfThemes(cache_root=tmp_path / "cache")
    themes.local("basic", lambda source: None)

    with pytest.raises(ComponentResolutionError, match="does not declare a theme_dir"):
        themes.get_by_name("basic")


def test_default_cache_root_comes_from_settings(tmp_path) -> None:
    themes = PdfThemes()

    assert themes.cache.cache_root == tmp_path / "default-cache"


def test_local_plugin_resolves_to_location(tmp_path) -> None:
    plugin = tmp_path / "menu.js"
    plugin.write_text("export default {}")
    plugins = RevealJsPlugins(cache_root=tmp_path / "cache")
    plugins.local("menu", lambda source: setattr(source, "location", plugin))

    assert plugins.get_by_name("menu") == ResolvedComponent(name="menu", path=plugin)


def test_missing_plugin_location_fails(tmp_path) -> None:
    plugins = RevealJsPlugins(cache_root=tmp_path / "cache")
    plugins.local("menu", lambda source: setattr(source, "location", tmp_path / "gone.js"))

    with pytest.raises(ComponentResolutionError, match="does not exist"):
        plugins.get_by_name("menu")


def test_remote_plugin_resolves_from_gitlab(cache_root, archive_server, http_client) -> None:
    url = "https://gitlab.com/presentations/plugins/reveal-menu/-/archive/4.1.0/reveal-menu-4.1.0.zip"
    archive_server.payloads[url] = make_zip(
        {"reveal-menu-4.1.0/": None, "reveal-menu-4.1.0/menu.js": "menu()"}
    )
    plugins = RevealJsPlugins(cache=ArchiveCache(cache_root, client=http_client))
    plugins.gitlab("menu", "presentations/plugins", "reveal-menu", ref="4.1.0")

    resolved = plugins.get_by_name("menu")

    assert type(resolved) is ResolvedComponent
    assert (resolved.path / "menu.js").read_text() == "menu()"
