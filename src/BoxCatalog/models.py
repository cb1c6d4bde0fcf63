# === NAVMAP v1 ===
# {
#   "module": "BoxCatalog.models",
#   "purpose": "Catalog document data model and JSON (de)serialisation",
#   "sections": [
#     {"id": "provider", "name": "Provider", "anchor": "class-provider", "kind": "class"},
#     {"id": "version", "name": "Version", "anchor": "class-version", "kind": "class"},
#     {"id": "catalog", "name": "Catalog", "anchor": "class-catalog", "kind": "class"},
#     {"id": "artifactkey", "name": "ArtifactKey", "anchor": "class-artifactkey", "kind": "class"},
#     {"id": "boxartifact", "name": "BoxArtifact", "anchor": "class-boxartifact", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Catalog document model.

A catalog is a single JSON document describing every published version of one
box and, for each version, the provider specific files that make it up::

    {
      "name": "examplebox",
      "description": "an example",
      "versions": [
        {"version": "1.2.3",
         "providers": [{"name": "virtualbox", "url": "file:///...",
                        "checksum_type": "sha1", "checksum": "..."}]}
      ]
    }

The classes here are plain dataclasses with structural equality.  Parsing goes
through a pydantic ``TypeAdapter`` so that wrongly typed documents are rejected
with a :class:`~BoxCatalog.errors.CatalogFormatError` instead of producing
half-populated objects.  Sequence order is significant everywhere: versions and
providers keep registration order and are never sorted.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from functools import lru_cache
from typing import Any, List, Mapping, Optional

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .errors import CatalogFormatError

__all__ = [
    "Provider",
    "Version",
    "Catalog",
    "ArtifactKey",
    "BoxArtifact",
    "DEFAULT_ARTIFACT_SUFFIX",
]

DEFAULT_ARTIFACT_SUFFIX = ".box"

logger = logging.getLogger(__name__)


@dataclass
class Provider:
    """One provider specific file of a box version."""

    name: str = ""
    url: str = ""
    checksum_type: str = ""
    checksum: str = ""

    def fuzzy_equals(self, other: "Provider", *, skip_url: bool = False) -> bool:
        """Compare with ``other``, optionally ignoring the backend generated ``url``."""

        if skip_url:
            return (self.name, self.checksum_type, self.checksum) == (
                other.name,
                other.checksum_type,
                other.checksum,
            )
        return self == other


@dataclass
class Version:
    """A released version of a box and its providers in registration order."""

    version: str = ""
    providers: List[Provider] = field(default_factory=list)

    def get_provider(self, name: str) -> Optional[Provider]:
        for provider in self.providers:
            if provider.name == name:
                return provider
        return None

    def upsert_provider(self, provider: Provider) -> bool:
        """Insert ``provider`` or replace the entry with the same name in place.

        Returns ``True`` when an existing entry was replaced.
        """

        for index, existing in enumerate(self.providers):
            if existing.name == provider.name:
                self.providers[index] = provider
                return True
        self.providers.append(provider)
        return False

    def remove_provider(self, name: str) -> Optional[Provider]:
        for index, existing in enumerate(self.providers):
            if existing.name == name:
                return self.providers.pop(index)
        return None

    def fuzzy_equals(self, other: "Version", *, skip_provider_url: bool = False) -> bool:
        if self.version != other.version or len(self.providers) != len(other.providers):
            return False
        return all(
            mine.fuzzy_equals(theirs, skip_url=skip_provider_url)
            for mine, theirs in zip(self.providers, other.providers)
        )


@dataclass
class Catalog:
    """Root catalog document for a single box name."""

    name: str = ""
    description: str = ""
    versions: List[Version] = field(default_factory=list)

    # Lookup / mutation -----------------------------------------------------
    def get_version(self, version: str) -> Optional[Version]:
        for entry in self.versions:
            if entry.version == version:
                return entry
        return None

    def add_provider(self, version: str, provider: Provider) -> bool:
        """Register ``provider`` under ``version``, creating the version if needed.

        Returns ``True`` when an existing provider entry was replaced.
        """

        entry = self.get_version(version)
        if entry is None:
            self.versions.append(Version(version=version, providers=[provider]))
            return False
        return entry.upsert_provider(provider)

    def remove_provider(self, version: str, provider_name: str) -> Optional[Provider]:
        """Remove a provider, dropping its version when it becomes empty."""

        for index, entry in enumerate(self.versions):
            if entry.version != version:
                continue
            removed = entry.remove_provider(provider_name)
            if removed is not None and not entry.providers:
                del self.versions[index]
            return removed
        return None

    def artifact_keys(self) -> List["ArtifactKey"]:
        """Return the keys of every provider file referenced by the catalog."""

        return [
            ArtifactKey(self.name, entry.version, provider.name)
            for entry in self.versions
            for provider in entry.providers
        ]

    def is_empty(self) -> bool:
        return not self.versions

    # Comparison ------------------------------------------------------------
    def fuzzy_equals(
        self,
        other: "Catalog",
        *,
        skip_provider_url: bool = False,
        log_mismatch: bool = False,
    ) -> bool:
        """Structural comparison that can ignore provider URLs.

        Provider URLs are generated by the backend and differ between
        storage locations, so tests comparing query results use
        ``skip_provider_url=True``.
        """

        def _mismatch(reason: str) -> bool:
            if log_mismatch:
                logger.info("catalog mismatch: %s", reason, extra={"stage": "compare"})
            return False

        if self.name != other.name:
            return _mismatch(f"name {self.name!r} != {other.name!r}")
        if self.description != other.description:
            return _mismatch(f"description {self.description!r} != {other.description!r}")
        if len(self.versions) != len(other.versions):
            return _mismatch(f"{len(self.versions)} versions != {len(other.versions)} versions")
        for mine, theirs in zip(self.versions, other.versions):
            if not mine.fuzzy_equals(theirs, skip_provider_url=skip_provider_url):
                return _mismatch(f"version {mine.version!r} differs from {theirs.version!r}")
        return True

    # Serialisation ---------------------------------------------------------
    def to_dict(self) -> dict:
        return asdict(self)

    def to_json(self, *, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any], *, source: str = "<memory>") -> "Catalog":
        if not isinstance(payload, Mapping):
            raise CatalogFormatError(f"Catalog {source} must be a JSON object")
        try:
            return _catalog_adapter().validate_python(dict(payload))
        except PydanticValidationError as exc:
            raise CatalogFormatError(f"Catalog {source} has an invalid structure: {exc}") from exc

    @classmethod
    def from_json(cls, text: str | bytes, *, source: str = "<memory>") -> "Catalog":
        """Parse a catalog document; an empty object yields an empty catalog."""

        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise CatalogFormatError(f"Catalog {source} is not valid JSON: {exc}") from exc
        return cls.from_dict(payload, source=source)

    @classmethod
    def empty(cls, name: str, description: str = "") -> "Catalog":
        return cls(name=name, description=description, versions=[])

    def display_string(self) -> str:
        """Render the catalog as indented human readable text."""

        lines = [f"{self.name} ({self.description})" if self.description else self.name]
        for entry in self.versions:
            lines.append(f"  {entry.version}")
            for provider in entry.providers:
                lines.append(
                    f"    {provider.name} {provider.url} "
                    f"{provider.checksum_type}:{provider.checksum}"
                )
        return "\n".join(lines)


@lru_cache(maxsize=1)
def _catalog_adapter() -> TypeAdapter:
    return TypeAdapter(Catalog)


@dataclass(frozen=True, slots=True)
class ArtifactKey:
    """Identity of one stored box file: box name, version, and provider."""

    name: str
    version: str
    provider: str

    def filename(self, suffix: str = DEFAULT_ARTIFACT_SUFFIX) -> str:
        return f"{self.name}_{self.version}_{self.provider}{suffix}"

    def __str__(self) -> str:
        return f"{self.name}/{self.version}/{self.provider}"


@dataclass
class BoxArtifact:
    """A local box file waiting to be registered in a catalog.

    Only exists for the duration of an add operation; it is projected into a
    :class:`Provider` entry and never persisted on its own.
    """

    path: str
    name: str
    description: str
    version: str
    provider: str
    catalog_uri: str
    checksum_type: str
    checksum: str

    @property
    def key(self) -> ArtifactKey:
        return ArtifactKey(self.name, self.version, self.provider)

    def to_provider(self, url: str) -> Provider:
        return Provider(
            name=self.provider,
            url=url,
            checksum_type=self.checksum_type,
            checksum=self.checksum,
        )
