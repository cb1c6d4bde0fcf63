# === NAVMAP v1 ===
# {
#   "module": "BoxCatalog.manager",
#   "purpose": "Read-modify-write orchestration of catalog documents and box files",
#   "sections": [
#     {"id": "deleteresult", "name": "DeleteResult", "anchor": "class-deleteresult", "kind": "class"},
#     {"id": "backendmanager", "name": "BackendManager", "anchor": "class-backendmanager", "kind": "class"},
#     {"id": "manager-for-uri", "name": "manager_for_uri", "anchor": "function-manager-for-uri", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Catalog orchestration on top of a storage backend.

Every operation re-reads the catalog document, mutates it in memory and, for
add and delete, writes the whole document back.  There is no locking: two
writers working on the same catalog URI at the same time race and the last
write wins.  Catalogs are expected to be updated by one pipeline step at a
time.

Neither add nor delete is atomic:

* ``add_box`` writes the catalog *before* copying the box file.  If the copy
  fails the catalog references a file that is not there yet.  Re-running the
  add is safe because the same version/provider entry and storage location
  are overwritten.
* ``delete_boxes`` deletes the matching box files and then writes the reduced
  catalog regardless of individual file failures, which are returned in the
  :class:`DeleteResult` and logged, never rolled back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from .errors import BackendError, BoxCatalogError, CatalogNotFoundError, ConfigError
from .models import DEFAULT_ARTIFACT_SUFFIX, ArtifactKey, BoxArtifact, Catalog
from .query import CatalogQuery
from .storage import StorageBackend, backend_from_uri

__all__ = ["BackendManager", "DeleteResult", "manager_for_uri"]

logger = logging.getLogger(__name__)


@dataclass
class DeleteResult:
    """Outcome of :meth:`BackendManager.delete_boxes`."""

    catalog: Catalog
    removed: List[ArtifactKey] = field(default_factory=list)
    failures: List[Tuple[ArtifactKey, BoxCatalogError]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class BackendManager:
    """Owns a storage backend plus the identity of the catalog it manages.

    The manager keeps no catalog state between calls, so it can be reused for
    sequential operations but must not be shared by concurrent writers.
    """

    def __init__(
        self,
        catalog_uri: str,
        box_name: str,
        backend: StorageBackend,
        *,
        description: str = "",
    ) -> None:
        self.catalog_uri = catalog_uri
        self.box_name = box_name
        self.description = description
        self.backend = backend

    def __repr__(self) -> str:
        return f"BackendManager({self.catalog_uri!r}, {self.box_name!r}, {self.backend!r})"

    # Reads -----------------------------------------------------------------
    def get_catalog(self) -> Catalog:
        """Return the stored catalog, or an empty one when none exists yet."""

        return self._read(self.box_name, self.description)

    def _read(self, name: str, description: str) -> Catalog:
        try:
            catalog = self.backend.read_catalog()
        except CatalogNotFoundError:
            logger.info(
                "no catalog document yet, starting empty",
                extra={"stage": "read", "catalog_uri": self.catalog_uri},
            )
            return Catalog.empty(name, description)
        logger.debug(
            "catalog loaded",
            extra={
                "stage": "read",
                "catalog_uri": self.catalog_uri,
                "versions": len(catalog.versions),
            },
        )
        return catalog

    def query_catalog(self, version_query: str = "", provider_query: str = "") -> Catalog:
        """Return the entries of the current catalog matching both queries."""

        query = CatalogQuery(version=version_query, provider=provider_query)
        return query.apply(self.get_catalog())

    # Mutations -------------------------------------------------------------
    def add_box(
        self,
        local_path: str | Path,
        name: str,
        description: str,
        version: str,
        provider: str,
        checksum_type: str,
        checksum: str,
    ) -> Catalog:
        """Register a box file under ``version``/``provider`` and copy it to storage."""

        artifact = BoxArtifact(
            path=str(local_path),
            name=name,
            description=description,
            version=version,
            provider=provider,
            catalog_uri=self.catalog_uri,
            checksum_type=checksum_type,
            checksum=checksum,
        )
        return self.add_artifact(artifact)

    def add_artifact(self, artifact: BoxArtifact) -> Catalog:
        """Write the catalog entry for ``artifact``, then copy its file.

        Returns the catalog as written.  A copy failure raises after the
        catalog write has already happened.
        """

        catalog = self.add_metadata(artifact)
        self.copy_artifact(artifact)
        return catalog

    def add_metadata(self, artifact: BoxArtifact) -> Catalog:
        """Insert or replace the provider entry for ``artifact`` and persist it.

        A catalog without a name (absent, or stored as ``{}``) takes the
        artifact's name and description.  Storage keys are derived from the
        catalog name so add and delete address the same files.

        Raises:
            ConfigError: If the catalog already belongs to another box name.
        """

        catalog = self._read(artifact.name, artifact.description)
        if not catalog.name:
            catalog.name = artifact.name
            catalog.description = catalog.description or artifact.description
        elif catalog.name != artifact.name:
            raise ConfigError(
                f"Catalog {self.catalog_uri} holds box '{catalog.name}', "
                f"refusing to add '{artifact.name}'"
            )
        key = ArtifactKey(catalog.name, artifact.version, artifact.provider)
        url = self.backend.artifact_url(key)
        replaced = catalog.add_provider(artifact.version, artifact.to_provider(url))
        self.backend.write_catalog(catalog)
        logger.info(
            "catalog entry %s",
            "replaced" if replaced else "added",
            extra={"stage": "write", "catalog_uri": self.catalog_uri, "artifact": str(key)},
        )
        return catalog

    def copy_artifact(self, artifact: BoxArtifact) -> str:
        url = self.backend.copy_artifact(artifact.path, artifact.key)
        logger.info(
            "box file copied",
            extra={"stage": "copy", "artifact": str(artifact.key), "url": url},
        )
        return url

    def delete_boxes(self, version_query: str = "", provider_query: str = "") -> DeleteResult:
        """Remove every entry matching both queries along with its box file."""

        query = CatalogQuery(version=version_query, provider=provider_query)
        catalog = self.get_catalog()
        matches = query.apply(catalog)

        result = DeleteResult(catalog=catalog)
        if matches.is_empty():
            logger.info(
                "no catalog entries matched",
                extra={"stage": "delete", "catalog_uri": self.catalog_uri},
            )
            return result
        for entry in matches.versions:
            for provider in entry.providers:
                catalog.remove_provider(entry.version, provider.name)
                result.removed.append(ArtifactKey(catalog.name, entry.version, provider.name))

        for key in result.removed:
            try:
                self.backend.delete_artifact(key)
            except (BackendError, ConfigError) as exc:
                logger.warning(
                    "box file delete failed; catalog entry removed anyway",
                    extra={"stage": "delete", "artifact": str(key), "error": str(exc)},
                )
                result.failures.append((key, exc))

        self.backend.write_catalog(catalog)
        logger.info(
            "catalog entries deleted",
            extra={
                "stage": "delete",
                "catalog_uri": self.catalog_uri,
                "removed": len(result.removed),
                "failed_files": len(result.failures),
            },
        )
        return result


def manager_for_uri(
    catalog_uri: str,
    box_name: str,
    *,
    description: str = "",
    artifact_suffix: Optional[str] = None,
) -> BackendManager:
    """Build a :class:`BackendManager` with the backend registered for ``catalog_uri``."""

    backend = backend_from_uri(catalog_uri, artifact_suffix=artifact_suffix or DEFAULT_ARTIFACT_SUFFIX)
    return BackendManager(catalog_uri, box_name, backend, description=description)
