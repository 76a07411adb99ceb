"""Tests for component specs and the name-keyed registry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import pytest

from DocStyles.ComponentDownload.errors import ConfigError
from DocStyles.ComponentDownload.providers import GitHubArchive, GitLabArchive
from DocStyles.ComponentDownload.registry import (
    ComponentRegistry,
    LocalSpec,
    RemoteSpec,
    normalize_relative_path,
)


@dataclass
class _Source:
    name: str
    location: Optional[str] = None


@pytest.fixture
def registry() -> ComponentRegistry[_Source]:
    return ComponentRegistry(_Source)


def test_register_local_configures_fresh_source(registry) -> None:
    spec = registry.register_local("basic", lambda source: setattr(source, "location", "themes"))

    assert isinstance(spec, LocalSpec)
    assert spec.source == _Source(name="basic", location="themes")
    assert registry.get("basic") is spec


def test_configure_callback_runs_at_registration(registry) -> None:
    calls = []

    registry.register_local("basic", calls.append)

    assert len(calls) == 1
    assert calls[0].name == "basic"


def test_github_registration_builds_descriptor(registry) -> None:
    spec = registry.github("fancy", "example", "pdf-themes", ref="v1", relative_path="themes/fancy")

    assert isinstance(spec, RemoteSpec)
    assert spec.archive == GitHubArchive(organisation="example", repository="pdf-themes", ref="v1")
    assert spec.relative_path == "themes/fancy"


def test_gitlab_registration_accepts_nested_groups(registry) -> None:
    spec = registry.gitlab("menu", "presentations/plugins", "reveal-menu")

    assert isinstance(spec.archive, GitLabArchive)
    assert spec.archive.coordinates == "presentations/plugins/reveal-menu"
    assert spec.archive.ref is None


def test_register_remote_from_coordinates(registry) -> None:
    spec = registry.register_remote("fancy", "github", "example/pdf-themes", ref="main")

    assert spec.archive.organisation == "example"
    assert spec.archive.repository == "pdf-themes"


def test_last_declaration_wins(registry) -> None:
    registry.register_local("fancy", lambda source: None)
    registry.github("fancy", "example", "pdf-themes")

    assert isinstance(registry.get("fancy"), RemoteSpec)
    assert len(registry) == 1

    registry.register_local("fancy", lambda source: None)

    assert isinstance(registry.get("fancy"), LocalSpec)
    assert registry.names() == {"fancy"}


def test_lookup_of_unknown_name_returns_none(registry) -> None:
    assert registry.get("missing") is None
    assert "missing" not in registry


def test_iteration_yields_specs(registry) -> None:
    registry.github("a", "example", "a")
    registry.gitlab("b", "example", "b")

    assert sorted(spec.name for spec in registry) == ["a", "b"]


@pytest.mark.parametrize("name", ["", "   "])
def test_blank_names_are_rejected(registry, name: str) -> None:
    with pytest.raises(ConfigError):
        registry.github(name, "example", "pdf-themes")


def test_invalid_declaration_does_not_replace_existing(registry) -> None:
    registry.github("fancy", "example", "pdf-themes")

    with pytest.raises(ConfigError):
        registry.github("fancy", "example", "pdf-themes", relative_path="../outside")

    assert registry.get("fancy").relative_path is None


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, None),
        ("", None),
        (".", None),
        ("themes/fancy", "themes/fancy"),
        ("./themes//fancy/", "themes/fancy"),
        ("themes\\fancy", "themes/fancy"),
    ],
)
def test_normalize_relative_path(value, expected) -> None:
    assert normalize_relative_path(value) == expected


@pytest.mark.parametrize("value", ["/etc", "../themes", "themes/../../x"])
def test_normalize_relative_path_rejects_escapes(value: str) -> None:
    with pytest.raises(ConfigError):
        normalize_relative_path(value)
