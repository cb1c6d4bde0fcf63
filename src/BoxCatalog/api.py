"""High level entry points used by the CLI and by build-pipeline glue.

These functions hide backend and manager construction: callers pass a catalog
URI (or a plain local path) and get catalogs back.  The settings from
``BOXCATALOG_*`` supply the checksum algorithm and artifact suffix.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from .artifact import inspect_box_file
from .manager import BackendManager, DeleteResult, manager_for_uri
from .models import BoxArtifact, Catalog
from .settings import get_settings

__all__ = [
    "path_to_uri",
    "open_manager",
    "show_catalog",
    "add_box_file",
    "query_boxes",
    "delete_boxes",
]

logger = logging.getLogger(__name__)

_URI_PATTERN = re.compile(r"^[a-zA-Z0-9]+://")


def path_to_uri(value: str) -> str:
    """Return ``value`` unchanged if it is a URI, else an absolute ``file://`` URI."""

    if _URI_PATTERN.match(value):
        return value
    uri = Path(value).expanduser().absolute().as_uri()
    logger.debug("converted catalog path to URI", extra={"stage": "resolve", "uri": uri})
    return uri


def open_manager(catalog: str, box_name: str = "", description: str = "") -> BackendManager:
    """Return a manager for ``catalog`` (a URI or local path)."""

    settings = get_settings()
    return manager_for_uri(
        path_to_uri(catalog),
        box_name,
        description=description,
        artifact_suffix=settings.artifact_suffix,
    )


def show_catalog(catalog: str) -> Catalog:
    return open_manager(catalog).get_catalog()


def add_box_file(
    catalog: str,
    box_path: str | Path,
    name: str,
    description: str,
    version: str,
    checksum_algorithm: Optional[str] = None,
) -> Catalog:
    """Inspect ``box_path`` and register it as ``name`` ``version`` in ``catalog``.

    The provider comes from the box's ``metadata.json`` and the checksum is
    computed over the whole file.  Returns the catalog as re-read after the
    add.
    """

    settings = get_settings()
    info = inspect_box_file(box_path, checksum_algorithm or settings.checksum_algorithm)
    manager = open_manager(catalog, name, description)
    artifact = BoxArtifact(
        path=str(box_path),
        name=name,
        description=description,
        version=version,
        provider=info.provider,
        catalog_uri=manager.catalog_uri,
        checksum_type=info.checksum_type,
        checksum=info.checksum,
    )
    manager.add_artifact(artifact)
    updated = manager.get_catalog()
    logger.info(
        "box added",
        extra={
            "stage": "add",
            "catalog_uri": manager.catalog_uri,
            "artifact": str(artifact.key),
            "versions": len(updated.versions),
        },
    )
    return updated


def query_boxes(catalog: str, version_query: str = "", provider_query: str = "") -> Catalog:
    return open_manager(catalog).query_catalog(version_query, provider_query)


def delete_boxes(catalog: str, version_query: str = "", provider_query: str = "") -> DeleteResult:
    return open_manager(catalog).delete_boxes(version_query, provider_query)
