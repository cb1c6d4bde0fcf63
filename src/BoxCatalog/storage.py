# === NAVMAP v1 ===
# {
#   "module": "BoxCatalog.storage",
#   "purpose": "Storage backends for catalog documents and box files, keyed by URI scheme",
#   "sections": [
#     {"id": "storagebackend", "name": "StorageBackend", "anchor": "class-storagebackend", "kind": "class"},
#     {"id": "localfilebackend", "name": "LocalFileBackend", "anchor": "class-localfilebackend", "kind": "class"},
#     {"id": "fsspecbackend", "name": "FsspecBackend", "anchor": "class-fsspecbackend", "kind": "class"},
#     {"id": "register-backend", "name": "register_backend", "anchor": "function-register-backend", "kind": "function"},
#     {"id": "backend-from-uri", "name": "backend_from_uri", "anchor": "function-backend-from-uri", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Storage backends for catalog documents and box files.

Every backend is bound to one catalog URI and offers the same small set of
operations: read and overwrite the catalog document, copy a local box file
into storage, delete a stored box file, and test for existence.  Box files
live next to the catalog document in a directory named after the box::

    <catalog dir>/<box>/<box>_<version>_<provider>.box

so re-adding a version/provider pair overwrites the same object.

Backends are selected by URI scheme through a small registry.  ``file://`` is
served by :class:`LocalFileBackend`; any protocol known to fsspec (``s3://``,
``gcs://``, ``memory://`` ...) falls through to :class:`FsspecBackend`.
Additional schemes can be plugged in with :func:`register_backend` without
touching the manager or the query engine.
"""

from __future__ import annotations

import logging
import os
import posixpath
import re
import shutil
import tempfile
import threading
from pathlib import Path
from typing import Callable, Dict, List, Protocol, runtime_checkable
from urllib.parse import unquote, urlparse

import fsspec

from .errors import BackendError, CatalogNotFoundError, ConfigError, UnsupportedSchemeError
from .models import DEFAULT_ARTIFACT_SUFFIX, ArtifactKey, Catalog

__all__ = [
    "StorageBackend",
    "LocalFileBackend",
    "FsspecBackend",
    "BackendFactory",
    "register_backend",
    "unregister_backend",
    "registered_schemes",
    "backend_from_uri",
    "uri_scheme",
    "validate_component",
]

logger = logging.getLogger(__name__)

_SCHEME_PATTERN = re.compile(r"^([A-Za-z0-9][A-Za-z0-9+.-]*)://")
_COMPONENT_PATTERN = re.compile(r"^[A-Za-z0-9._+-]+$")


@runtime_checkable
class StorageBackend(Protocol):
    """Capabilities the backend manager requires from a storage system."""

    catalog_uri: str

    def read_catalog(self) -> Catalog:
        """Return the stored catalog or raise :class:`CatalogNotFoundError`."""

    def write_catalog(self, catalog: Catalog) -> None:
        """Overwrite the whole catalog document with ``catalog``."""

    def artifact_location(self, key: ArtifactKey) -> str:
        """Return the backend-native path of the box file for ``key``."""

    def artifact_url(self, key: ArtifactKey) -> str:
        """Return the URL recorded in the catalog for the box file of ``key``."""

    def copy_artifact(self, local_path: str | Path, key: ArtifactKey) -> str:
        """Copy a local box file into storage and return its URL."""

    def delete_artifact(self, key: ArtifactKey) -> None:
        """Delete the stored box file for ``key``; missing files are ignored."""

    def exists(self, location: str) -> bool:
        """Return whether ``location`` exists in this backend."""


def uri_scheme(uri: str) -> str:
    """Return the lower-cased scheme of ``uri`` or ``""`` when it has none."""

    match = _SCHEME_PATTERN.match(uri)
    return match.group(1).lower() if match else ""


def validate_component(value: str) -> str:
    """Return ``value`` if it is usable verbatim as a single path component.

    Names are never rewritten, so two distinct names cannot share a storage
    location.

    Raises:
        ConfigError: If ``value`` is empty, starts or ends with ``.``, or holds
            characters outside ``[A-Za-z0-9._+-]``.
    """

    if not _COMPONENT_PATTERN.match(value) or value.startswith(".") or value.endswith("."):
        raise ConfigError(
            f"'{value}' cannot be used in a storage path; "
            "use letters, digits, '.', '_', '+' and '-' only"
        )
    return value


def _artifact_relpath(key: ArtifactKey, suffix: str) -> tuple[str, str]:
    for part in (key.name, key.version, key.provider):
        validate_component(part)
    return key.name, key.filename(suffix)


class LocalFileBackend:
    """Backend storing the catalog and box files on the local filesystem."""

    scheme = "file"

    def __init__(self, catalog_uri: str, *, artifact_suffix: str = DEFAULT_ARTIFACT_SUFFIX) -> None:
        parsed = urlparse(catalog_uri)
        if parsed.scheme.lower() != self.scheme:
            raise UnsupportedSchemeError(catalog_uri, parsed.scheme)
        netloc = parsed.netloc if parsed.netloc not in ("", "localhost") else ""
        raw_path = unquote(netloc + parsed.path)
        if not raw_path:
            raise BackendError(f"Catalog URI {catalog_uri} does not name a file")
        self.catalog_uri = catalog_uri
        self.catalog_path = Path(raw_path)
        self.artifact_suffix = artifact_suffix

    def __repr__(self) -> str:
        return f"LocalFileBackend({self.catalog_uri!r})"

    # Catalog document ------------------------------------------------------
    def read_catalog(self) -> Catalog:
        try:
            text = self.catalog_path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise CatalogNotFoundError(self.catalog_uri) from exc
        except OSError as exc:
            raise BackendError(f"Unable to read catalog {self.catalog_path}: {exc}") from exc
        return Catalog.from_json(text, source=str(self.catalog_path))

    def write_catalog(self, catalog: Catalog) -> None:
        target = self.catalog_path
        temp_name = None
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=str(target.parent), delete=False, suffix=".tmp"
            ) as handle:
                temp_name = handle.name
                handle.write(catalog.to_json())
                handle.flush()
                try:
                    os.fsync(handle.fileno())
                except OSError:
                    pass
            Path(temp_name).replace(target)
        except OSError as exc:
            if temp_name is not None:
                Path(temp_name).unlink(missing_ok=True)
            raise BackendError(f"Unable to write catalog {target}: {exc}") from exc

    # Box files -------------------------------------------------------------
    def artifact_location(self, key: ArtifactKey) -> str:
        directory, filename = _artifact_relpath(key, self.artifact_suffix)
        return str(self.catalog_path.parent / directory / filename)

    def artifact_url(self, key: ArtifactKey) -> str:
        return Path(self.artifact_location(key)).absolute().as_uri()

    def copy_artifact(self, local_path: str | Path, key: ArtifactKey) -> str:
        destination = Path(self.artifact_location(key))
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(local_path, destination)
        except OSError as exc:
            raise BackendError(f"Unable to copy {local_path} to {destination}: {exc}") from exc
        return self.artifact_url(key)

    def delete_artifact(self, key: ArtifactKey) -> None:
        target = Path(self.artifact_location(key))
        try:
            target.unlink(missing_ok=True)
        except OSError as exc:
            raise BackendError(f"Unable to delete {target}: {exc}") from exc

    def exists(self, location: str) -> bool:
        if uri_scheme(location) == self.scheme:
            location = unquote(urlparse(location).path)
        return Path(location).exists()


class FsspecBackend:
    """Object-storage backend addressed through an fsspec filesystem."""

    def __init__(self, catalog_uri: str, *, artifact_suffix: str = DEFAULT_ARTIFACT_SUFFIX) -> None:
        try:
            fs, path = fsspec.core.url_to_fs(catalog_uri)
        except (ImportError, ValueError) as exc:
            raise BackendError(f"Unable to open storage for {catalog_uri}: {exc}") from exc
        self.catalog_uri = catalog_uri
        self.fs = fs
        self.catalog_path = path
        self.artifact_suffix = artifact_suffix

    def __repr__(self) -> str:
        return f"FsspecBackend({self.catalog_uri!r})"

    def read_catalog(self) -> Catalog:
        try:
            with self.fs.open(self.catalog_path, "rb") as handle:
                payload = handle.read()
        except FileNotFoundError as exc:
            raise CatalogNotFoundError(self.catalog_uri) from exc
        except OSError as exc:
            raise BackendError(f"Unable to read catalog {self.catalog_uri}: {exc}") from exc
        return Catalog.from_json(payload, source=self.catalog_uri)

    def write_catalog(self, catalog: Catalog) -> None:
        parent = posixpath.dirname(self.catalog_path)
        try:
            if parent:
                self.fs.makedirs(parent, exist_ok=True)
            self.fs.pipe_file(self.catalog_path, catalog.to_json().encode("utf-8"))
        except OSError as exc:
            raise BackendError(f"Unable to write catalog {self.catalog_uri}: {exc}") from exc

    def artifact_location(self, key: ArtifactKey) -> str:
        directory, filename = _artifact_relpath(key, self.artifact_suffix)
        return posixpath.join(posixpath.dirname(self.catalog_path), directory, filename)

    def artifact_url(self, key: ArtifactKey) -> str:
        return self.fs.unstrip_protocol(self.artifact_location(key))

    def copy_artifact(self, local_path: str | Path, key: ArtifactKey) -> str:
        destination = self.artifact_location(key)
        try:
            self.fs.makedirs(posixpath.dirname(destination), exist_ok=True)
            self.fs.put_file(str(local_path), destination)
        except OSError as exc:
            raise BackendError(f"Unable to copy {local_path} to {destination}: {exc}") from exc
        return self.artifact_url(key)

    def delete_artifact(self, key: ArtifactKey) -> None:
        target = self.artifact_location(key)
        try:
            if self.fs.exists(target):
                self.fs.rm(target)
        except FileNotFoundError:
            return
        except OSError as exc:
            raise BackendError(f"Unable to delete {target}: {exc}") from exc

    def exists(self, location: str) -> bool:
        return bool(self.fs.exists(location))


BackendFactory = Callable[..., StorageBackend]

_REGISTRY_LOCK = threading.Lock()
_BACKEND_REGISTRY: Dict[str, BackendFactory] = {"file": LocalFileBackend}


def register_backend(scheme: str, factory: BackendFactory, *, replace: bool = False) -> None:
    """Register ``factory`` as the backend constructor for ``scheme``.

    ``factory`` is called as ``factory(catalog_uri, artifact_suffix=...)``.
    """

    key = scheme.lower().rstrip(":/")
    with _REGISTRY_LOCK:
        if key in _BACKEND_REGISTRY and not replace:
            raise ValueError(f"A backend is already registered for scheme '{key}'")
        _BACKEND_REGISTRY[key] = factory


def unregister_backend(scheme: str) -> None:
    with _REGISTRY_LOCK:
        _BACKEND_REGISTRY.pop(scheme.lower(), None)


def registered_schemes() -> List[str]:
    with _REGISTRY_LOCK:
        return sorted(_BACKEND_REGISTRY)


def _fsspec_knows(scheme: str) -> bool:
    return scheme in fsspec.available_protocols()


def backend_from_uri(uri: str, *, artifact_suffix: str = DEFAULT_ARTIFACT_SUFFIX) -> StorageBackend:
    """Construct the backend serving ``uri``.

    Explicit registrations win; otherwise any protocol fsspec knows is served
    by :class:`FsspecBackend`.

    Raises:
        UnsupportedSchemeError: If ``uri`` has no scheme or no backend serves it.
    """

    scheme = uri_scheme(uri)
    if not scheme:
        raise UnsupportedSchemeError(uri, "")
    with _REGISTRY_LOCK:
        factory = _BACKEND_REGISTRY.get(scheme)
    if factory is None:
        if not _fsspec_knows(scheme):
            raise UnsupportedSchemeError(uri, scheme)
        factory = FsspecBackend
    backend = factory(uri, artifact_suffix=artifact_suffix)
    logger.debug(
        "resolved storage backend",
        extra={"stage": "backend", "catalog_uri": uri, "backend": type(backend).__name__},
    )
    return backend
