"""Exception hierarchy shared across component declaration, download, and extraction.

Component resolution spans declaration parsing, HTTP retrieval from Git forges,
archive materialisation, and domain construction.  Lower layers raise narrow
errors (:class:`DownloadError`, :class:`ExtractionError`); the resolver is the
single translation point that wraps them into :class:`ComponentResolutionError`
together with the name of the component that could not be made available.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "ComponentDownloadError",
    "ConfigError",
    "DownloadError",
    "ExtractionError",
    "ComponentResolutionError",
    "UnknownComponentError",
]


class ComponentDownloadError(RuntimeError):
    """Base exception for component declaration, download, or extraction failures."""


class ConfigError(ComponentDownloadError):
    """Raised when component declarations or configuration inputs are invalid."""


class DownloadError(ComponentDownloadError):
    """Raised when an archive download fails at the network or HTTP level."""

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ExtractionError(ComponentDownloadError):
    """Raised when an archive is malformed, unsafe, or cannot be written to disk."""


class ComponentResolutionError(ComponentDownloadError):
    """Raised when a named component cannot be turned into a local artefact."""

    def __init__(
        self,
        name: str,
        cause: Optional[BaseException] = None,
        *,
        message: Optional[str] = None,
    ) -> None:
        if message is None:
            message = f"Component '{name}' is unavailable"
            if cause is not None:
                message = f"{message}: {cause}"
        super().__init__(message)
        self.name = name
        self.cause = cause


class UnknownComponentError(ComponentResolutionError):
    """Raised when a component name was never registered."""

    def __init__(self, name: str) -> None:
        super().__init__(name, message=f"Component with name '{name}' was not registered")
