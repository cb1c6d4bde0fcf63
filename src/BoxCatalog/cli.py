# === NAVMAP v1 ===
# {
#   "module": "BoxCatalog.cli",
#   "purpose": "Typer command line interface for catalog maintenance",
#   "sections": [
#     {"id": "main", "name": "main", "anchor": "function-main", "kind": "function"},
#     {"id": "show", "name": "show", "anchor": "function-show", "kind": "function"},
#     {"id": "create-test-box", "name": "create_test_box", "anchor": "function-create-test-box", "kind": "function"},
#     {"id": "add", "name": "add", "anchor": "function-add", "kind": "function"},
#     {"id": "query", "name": "query", "anchor": "function-query", "kind": "function"},
#     {"id": "delete", "name": "delete", "anchor": "function-delete", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Command line interface for managing box catalogs.

Example:
    $ boxcatalog create-test-box --box /tmp/t.box --provider virtualbox
    $ boxcatalog add --catalog /srv/boxes/example.json --box /tmp/t.box \\
        --name example --version 1.0.0
    $ boxcatalog query --catalog /srv/boxes/example.json --version '<2' --format table
    $ boxcatalog delete --catalog /srv/boxes/example.json --provider '^virtualbox$'

Catalog locations are URIs (``file:///...``, ``s3://...``) or plain local
paths, which are converted to absolute ``file://`` URIs.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import typer
from rich.console import Console
from rich.table import Table

from . import __version__, api
from .artifact import create_test_box_file
from .errors import BoxCatalogError
from .logging_utils import setup_logging
from .models import Catalog
from .settings import get_settings

__all__ = ["app", "main"]

_console = Console()

app = typer.Typer(
    name="boxcatalog",
    help="Maintain Vagrant-style box catalogs on local or object storage",
    no_args_is_help=True,
)

_FORMATS = ("json", "table")


@contextmanager
def _handle_errors() -> Iterator[None]:
    try:
        yield
    except BoxCatalogError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1) from exc


def _catalog_table(catalog: Catalog) -> Table:
    table = Table(title=catalog.name or "catalog")
    table.add_column("Version", no_wrap=True)
    table.add_column("Provider", no_wrap=True)
    table.add_column("Checksum")
    table.add_column("URL", overflow="fold")
    for entry in catalog.versions:
        for provider in entry.providers:
            table.add_row(
                entry.version,
                provider.name,
                f"{provider.checksum_type}:{provider.checksum}",
                provider.url,
            )
    return table


def _version_callback(value: bool) -> None:
    # Eager so that ``--version`` works without a subcommand.
    if value:
        typer.echo(f"boxcatalog {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (DEBUG, INFO, WARNING, ERROR); defaults to BOXCATALOG_LOG_LEVEL",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Box catalog maintenance commands."""

    with _handle_errors():
        settings = get_settings()
        setup_logging(
            level=log_level or settings.log_level,
            log_dir=settings.log_dir,
            json_logs=settings.log_json,
        )


@app.command()
def show(
    catalog: str = typer.Option(..., "--catalog", "-c", help="Catalog URI or path"),
) -> None:
    """Print the catalog as indented JSON."""

    with _handle_errors():
        result = api.show_catalog(catalog)
    typer.echo(result.to_json())


@app.command("create-test-box")
def create_test_box(
    box: Path = typer.Option(..., "--box", "-b", help="Path of the box file to create"),
    provider: str = typer.Option(..., "--provider", "-p", help="Provider named in metadata.json"),
    compress: bool = typer.Option(True, "--compress/--no-compress", help="Gzip the archive"),
) -> None:
    """Write a minimal box archive, useful for smoke tests."""

    with _handle_errors():
        path = create_test_box_file(box, provider, compress=compress)
    _console.print(f"Created test box [bold]{path}[/bold] for provider {provider}")


@app.command()
def add(
    catalog: str = typer.Option(..., "--catalog", "-c", help="Catalog URI or path"),
    box: Path = typer.Option(..., "--box", "-b", help="Local box file to register"),
    name: str = typer.Option(..., "--name", "-n", help="Box name"),
    version: str = typer.Option(..., "--version", "-v", help="Box version, e.g. 1.2.3"),
    description: str = typer.Option("", "--description", "-d", help="Box description"),
    checksum_algorithm: Optional[str] = typer.Option(
        None,
        "--checksum-algorithm",
        help="md5, sha1, sha256 or sha512; defaults to BOXCATALOG_CHECKSUM_ALGORITHM",
    ),
) -> None:
    """Register a box file in the catalog and copy it to storage."""

    with _handle_errors():
        updated = api.add_box_file(
            catalog,
            box,
            name=name,
            description=description,
            version=version,
            checksum_algorithm=checksum_algorithm,
        )
    _console.print(updated.display_string(), markup=False, highlight=False)


@app.command()
def query(
    catalog: str = typer.Option(..., "--catalog", "-c", help="Catalog URI or path"),
    version: str = typer.Option("", "--version", "-v", help="Version comparator, e.g. '<2' or '>=1.2.3'"),
    provider: str = typer.Option("", "--provider", "-p", help="Regular expression for provider names"),
    format_output: str = typer.Option("json", "--format", "-f", help="Output format: json or table"),
) -> None:
    """Print the catalog entries matching both the version and provider query."""

    if format_output not in _FORMATS:
        raise typer.BadParameter(
            f"must be one of {', '.join(_FORMATS)}", param_hint="--format"
        )
    with _handle_errors():
        result = api.query_boxes(catalog, version, provider)
    if format_output == "table":
        _console.print(_catalog_table(result))
    else:
        typer.echo(result.to_json())


@app.command()
def delete(
    catalog: str = typer.Option(..., "--catalog", "-c", help="Catalog URI or path"),
    version: str = typer.Option("", "--version", "-v", help="Version comparator, e.g. '<2'"),
    provider: str = typer.Option("", "--provider", "-p", help="Regular expression for provider names"),
) -> None:
    """Remove matching entries from the catalog and delete their box files.

    With neither option every entry is removed.  Box files that cannot be
    deleted are reported and the command exits 1, but the catalog entries are
    removed regardless.
    """

    with _handle_errors():
        result = api.delete_boxes(catalog, version, provider)
    payload = {
        "removed": [str(key) for key in result.removed],
        "failures": [{"artifact": str(key), "error": str(exc)} for key, exc in result.failures],
    }
    typer.echo(json.dumps(payload, indent=2))
    if not result.ok:
        typer.echo(f"Error: {len(result.failures)} box file(s) could not be deleted", err=True)
        raise typer.Exit(1)
