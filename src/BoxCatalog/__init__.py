"""Public API for managing Vagrant-style box catalogs.

A catalog is one JSON document per box listing every published version and
the provider specific box files behind it.  This package reads and rewrites
those documents on pluggable storage backends, copies box files next to them,
and filters catalogs by version comparator and provider pattern.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("boxcatalog")
except PackageNotFoundError:  # pragma: no cover - running from a source tree
    __version__ = "0.0.0"

from .api import add_box_file, delete_boxes, path_to_uri, query_boxes, show_catalog
from .artifact import ArtifactInfo, create_test_box_file, inspect_box_bytes, inspect_box_file
from .errors import (
    ArtifactFormatError,
    BackendError,
    BoxCatalogError,
    CatalogFormatError,
    ConfigError,
    QueryError,
    VersionParseError,
)
from .manager import BackendManager, DeleteResult, manager_for_uri
from .models import ArtifactKey, BoxArtifact, Catalog, Provider, Version
from .query import CatalogQuery, query_catalog
from .storage import StorageBackend, backend_from_uri, register_backend
from .versions import compare_versions, parse_version, version_matches

__all__ = [
    "__version__",
    "add_box_file",
    "delete_boxes",
    "path_to_uri",
    "query_boxes",
    "show_catalog",
    "ArtifactInfo",
    "create_test_box_file",
    "inspect_box_bytes",
    "inspect_box_file",
    "ArtifactFormatError",
    "BackendError",
    "BoxCatalogError",
    "CatalogFormatError",
    "ConfigError",
    "QueryError",
    "VersionParseError",
    "BackendManager",
    "DeleteResult",
    "manager_for_uri",
    "ArtifactKey",
    "BoxArtifact",
    "Catalog",
    "Provider",
    "Version",
    "CatalogQuery",
    "query_catalog",
    "StorageBackend",
    "backend_from_uri",
    "register_backend",
    "compare_versions",
    "parse_version",
    "version_matches",
]
