# === NAVMAP v1 ===
# {
#   "module": "DocStyles.ComponentDownload.cli",
#   "purpose": "Typer CLI for listing and resolving declared components",
#   "sections": [
#     {"id": "clicontext", "name": "CliContext", "anchor": "class-clicontext", "kind": "class"},
#     {"id": "main", "name": "main", "anchor": "function-main", "kind": "function"},
#     {"id": "list-cmd", "name": "list_cmd", "anchor": "function-list-cmd", "kind": "function"},
#     {"id": "resolve-cmd", "name": "resolve_cmd", "anchor": "function-resolve-cmd", "kind": "function"},
#     {"id": "cache-key-cmd", "name": "cache_key_cmd", "anchor": "function-cache-key-cmd", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Typer CLI for listing and resolving declared components.

Example:
    $ docstyles --config docstyles.yml list
    $ docstyles --config docstyles.yml resolve pdf_themes fancy
    $ docstyles --cache-root /tmp/archives cache-key pdf_themes fancy
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .cache import ArchiveCache
from .config import ComponentCollections, load_components
from .errors import ComponentResolutionError, ConfigError
from .logging_config import setup_logging
from .registry import LocalSpec, RemoteSpec
from .settings import get_settings

_console = Console()
_err_console = Console(stderr=True)


class CliContext:
    """Shared state for one CLI invocation."""

    def __init__(
        self,
        config: Path,
        cache_root: Optional[Path] = None,
        verbosity: int = 0,
    ) -> None:
        self.config = config
        self.verbosity = verbosity
        self.console = _console
        self.settings = get_settings()
        self.cache = ArchiveCache(
            cache_root if cache_root is not None else self.settings.cache_root,
            lock_timeout=self.settings.lock_timeout,
        )
        self._collections: Optional[ComponentCollections] = None

    def collections(self) -> ComponentCollections:
        if self._collections is None:
            try:
                self._collections = load_components(self.config, cache=self.cache)
            except ConfigError as exc:
                _err_console.print(f"[red]Configuration error:[/red] {exc}", soft_wrap=True)
                raise typer.Exit(2) from exc
        return self._collections

    def log_debug(self, message: str) -> None:
        if self.verbosity >= 2:
            _err_console.print(f"[dim]DEBUG: {message}[/dim]", soft_wrap=True)


app = typer.Typer(
    name="docstyles",
    help="Resolve and cache named documentation components (themes, plugins)",
    no_args_is_help=True,
)

_context: Optional[CliContext] = None


def get_context() -> CliContext:
    if _context is None:
        raise RuntimeError("CLI context not initialized")
    return _context


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"docstyles {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    config: Path = typer.Option(
        Path("docstyles.yml"),
        "--config",
        "-c",
        envvar="DOCSTYLES_CONFIG",
        help="Path to the YAML component declarations",
    ),
    cache_root: Optional[Path] = typer.Option(
        None,
        "--cache-root",
        help="Archive cache directory (defaults to DOCSTYLES_CACHE_ROOT or build/cloud-archives)",
    ),
    verbosity: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v for INFO, -vv for DEBUG)",
    ),
    log_json: bool = typer.Option(
        False,
        "--log-json",
        help="Also write JSONL logs to the configured log directory",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Resolve documentation components declared in a YAML file.

    Global options go before the subcommand:

        docstyles -v --config docstyles.yml resolve pdf_themes fancy
    """
    global _context

    level = "DEBUG" if verbosity >= 2 else "INFO" if verbosity == 1 else "WARNING"
    settings = get_settings()
    setup_logging(level, settings.resolved_log_dir() if log_json else None)

    _context = CliContext(config=config, cache_root=cache_root, verbosity=verbosity)
    _context.log_debug(f"Config file: {config}")
    _context.log_debug(f"Cache root: {_context.cache.cache_root}")


def _describe(spec) -> Dict[str, Optional[str]]:
    if isinstance(spec, RemoteSpec):
        archive = spec.archive
        return {
            "source": archive.kind,
            "coordinates": archive.coordinates,
            "ref": archive.effective_ref,
            "relative_path": spec.relative_path,
        }
    return {"source": "local", "coordinates": None, "ref": None, "relative_path": None}


@app.command("list")
def list_cmd(
    as_json: bool = typer.Option(False, "--json", help="Emit JSON instead of a table"),
) -> None:
    """List declared components and whether remote ones are cached."""

    ctx = get_context()
    rows: List[Dict[str, Optional[str]]] = []
    for collection, components in ctx.collections():
        for spec in sorted(components.registry, key=lambda item: item.name):
            row: Dict[str, Optional[str]] = {"collection": collection, "name": spec.name}
            row.update(_describe(spec))
            if isinstance(spec, RemoteSpec):
                row["cached"] = "yes" if components.cache.is_cached(spec.archive) else "no"
            else:
                row["cached"] = "-"
            rows.append(row)

    if as_json:
        typer.echo(json.dumps(rows, indent=2))
        return

    if not rows:
        ctx.console.print("[yellow]No components declared[/yellow]")
        return

    table = Table(title="Components")
    for column in ("Collection", "Name", "Source", "Coordinates", "Ref", "Cached"):
        table.add_column(column)
    for row in rows:
        table.add_row(
            row["collection"],
            row["name"],
            row["source"],
            row["coordinates"] or "",
            row["ref"] or "",
            row["cached"],
        )
    ctx.console.print(table)


@app.command("resolve")
def resolve_cmd(
    collection: str = typer.Argument(..., help="Collection name, e.g. pdf_themes"),
    name: str = typer.Argument(..., help="Component name"),
) -> None:
    """Resolve a component, downloading its archive if needed, and print its path."""

    ctx = get_context()
    try:
        components = ctx.collections().get(collection)
    except ConfigError as exc:
        _err_console.print(f"[red]Error:[/red] {exc}", soft_wrap=True)
        raise typer.Exit(2) from exc
    try:
        resolved = components.get_by_name(name)
    except ComponentResolutionError as exc:
        _err_console.print(f"[red]Error:[/red] {exc}", soft_wrap=True)
        raise typer.Exit(1) from exc
    typer.echo(str(resolved.path))


@app.command("cache-key")
def cache_key_cmd(
    collection: str = typer.Argument(..., help="Collection name, e.g. pdf_themes"),
    name: str = typer.Argument(..., help="Component name"),
) -> None:
    """Show the cache key and cache directory of a remote component."""

    ctx = get_context()
    try:
        components = ctx.collections().get(collection)
    except ConfigError as exc:
        _err_console.print(f"[red]Error:[/red] {exc}", soft_wrap=True)
        raise typer.Exit(2) from exc
    spec = components.registry.get(name)
    if spec is None:
        _err_console.print(
            f"[red]Error:[/red] Component with name '{name}' was not registered", soft_wrap=True
        )
        raise typer.Exit(1)
    if isinstance(spec, LocalSpec):
        typer.echo(f"{name} is a local component and is not cached")
        return
    cache = components.cache
    typer.echo(f"key: {cache.cache_key(spec.archive)}")
    typer.echo(f"url: {cache.archive_url(spec.archive)}")
    typer.echo(f"path: {cache.cache_path(spec.archive)}")
    typer.echo(f"cached: {'yes' if cache.is_cached(spec.archive) else 'no'}")


__all__ = ["app", "CliContext", "get_context", "main"]
