"""Exception hierarchy for catalog storage and input parsing.

Failures come either from the storage holding catalogs and box files or from
malformed input (catalog JSON, box archives, version queries).  The classes
below group them so callers can react to broad categories
(an I/O problem vs. a malformed input) while still catching the specific
subclass when needed.

A missing catalog document is modelled as :class:`CatalogNotFoundError` so
backends can signal it explicitly; :class:`~BoxCatalog.manager.BackendManager`
normalises it into an empty catalog and it never escapes the manager.
"""

from __future__ import annotations

__all__ = [
    "BoxCatalogError",
    "ConfigError",
    "BackendError",
    "CatalogNotFoundError",
    "UnsupportedSchemeError",
    "ArtifactIOError",
    "FormatError",
    "CatalogFormatError",
    "ArtifactFormatError",
    "VersionParseError",
    "QueryError",
]


class BoxCatalogError(RuntimeError):
    """Base exception for catalog, backend, and artifact failures."""


class ConfigError(BoxCatalogError):
    """Raised when settings or caller supplied options are invalid."""


class BackendError(BoxCatalogError):
    """Raised when a storage backend cannot complete an I/O operation."""


class CatalogNotFoundError(BackendError):
    """Raised by backends when no catalog document exists at the URI."""

    def __init__(self, uri: str) -> None:
        super().__init__(f"No catalog document at {uri}")
        self.uri = uri


class UnsupportedSchemeError(BackendError):
    """Raised when no backend is registered for a catalog URI scheme."""

    def __init__(self, uri: str, scheme: str) -> None:
        super().__init__(f"No storage backend for scheme '{scheme}' (catalog URI {uri})")
        self.uri = uri
        self.scheme = scheme


class ArtifactIOError(BackendError):
    """Raised when a box archive cannot be read from the local filesystem."""


class FormatError(BoxCatalogError):
    """Raised when a document, archive, or query string is malformed."""


class CatalogFormatError(FormatError):
    """Raised when a catalog document is not valid catalog JSON."""


class ArtifactFormatError(FormatError):
    """Raised when a file is not a recognised box archive."""


class VersionParseError(FormatError):
    """Raised when a version string cannot be parsed."""

    def __init__(self, value: str, reason: str) -> None:
        super().__init__(f"Invalid version '{value}': {reason}")
        self.value = value
        self.reason = reason


class QueryError(FormatError):
    """Raised when a version comparator or provider pattern is malformed."""
