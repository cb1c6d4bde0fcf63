"""Catalog filtering by version range and provider pattern."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Pattern

from .errors import QueryError
from .models import ArtifactKey, Catalog, Provider, Version
from .versions import VersionComparator

__all__ = ["CatalogQuery", "compile_provider_pattern", "query_catalog"]

logger = logging.getLogger(__name__)


def compile_provider_pattern(pattern: str) -> Pattern[str]:
    """Compile a provider pattern; matching is an unanchored regex search."""

    try:
        return re.compile(pattern or "")
    except re.error as exc:
        raise QueryError(f"Invalid provider pattern '{pattern}': {exc}") from exc


@dataclass(frozen=True)
class CatalogQuery:
    """A version comparator plus a provider name pattern.

    Both parts default to matching everything.  Parsing happens up front so
    malformed queries fail before any storage I/O.
    """

    version: str = ""
    provider: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "_comparator", VersionComparator.parse(self.version))
        object.__setattr__(self, "_pattern", compile_provider_pattern(self.provider))

    def version_matches(self, version: str) -> bool:
        return self._comparator.matches(version)  # type: ignore[attr-defined]

    def provider_matches(self, provider: str) -> bool:
        return self._pattern.search(provider) is not None  # type: ignore[attr-defined]

    def apply(self, catalog: Catalog) -> Catalog:
        """Return a new catalog holding only the matching versions and providers.

        Versions left without providers are dropped.  Input order is kept and
        nothing is deduplicated.
        """

        versions: List[Version] = []
        for entry in catalog.versions:
            if not self.version_matches(entry.version):
                continue
            providers = [
                Provider(p.name, p.url, p.checksum_type, p.checksum)
                for p in entry.providers
                if self.provider_matches(p.name)
            ]
            if providers:
                versions.append(Version(version=entry.version, providers=providers))
        result = Catalog(name=catalog.name, description=catalog.description, versions=versions)
        logger.debug(
            "catalog query evaluated",
            extra={
                "stage": "query",
                "version_query": self.version,
                "provider_query": self.provider,
                "matched_versions": len(versions),
            },
        )
        return result

    def matching_keys(self, catalog: Catalog) -> List[ArtifactKey]:
        return self.apply(catalog).artifact_keys()


def query_catalog(catalog: Catalog, version_query: str = "", provider_query: str = "") -> Catalog:
    """Filter ``catalog`` by a version comparator and a provider pattern."""

    return CatalogQuery(version=version_query, provider=provider_query).apply(catalog)
