"""Version parsing, ordering, and comparator queries.

Box versions follow a small semantic-version dialect: a numeric core of up to
three dot separated non-negative integers, optionally followed by ``-`` and a
pre-release label.  Ordering compares the numeric core component-wise
(``1.10.0 > 1.2.0``); for equal cores a pre-release sorts before the release
(``1.0.0-PRE < 1.0.0``) and two pre-release labels compare lexically.

Comparator queries combine an optional operator (``<``, ``<=``, ``>``, ``>=``,
``=``; none means ``=``) with a version.  A query version may be partial:
``<1`` or ``>=1.2`` compare only the components that were given, so the query
addresses the whole family sharing that prefix including its pre-releases.
``<1`` therefore matches ``0.3.5-BETA`` but not ``1.0.0-PRE``.  An empty query
matches everything.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Iterable, List, Optional, Tuple

from .errors import QueryError, VersionParseError

__all__ = [
    "BoxVersion",
    "VersionComparator",
    "parse_version",
    "compare_versions",
    "version_matches",
    "sort_versions",
    "OPERATORS",
]

OPERATORS: Tuple[str, ...] = ("<=", ">=", "<", ">", "=")

_QUERY_PATTERN = re.compile(r"^\s*(<=|>=|<|>|=)?\s*(\S.*?)\s*$")
_NUMERIC_PATTERN = re.compile(r"^[0-9]+$")


@total_ordering
@dataclass(frozen=True, slots=True)
class BoxVersion:
    """Parsed version: numeric core plus optional pre-release label."""

    core: Tuple[int, ...]
    prerelease: str = ""
    text: str = ""

    @property
    def major(self) -> int:
        return self._component(0)

    @property
    def minor(self) -> int:
        return self._component(1)

    @property
    def patch(self) -> int:
        return self._component(2)

    def _component(self, index: int) -> int:
        return self.core[index] if index < len(self.core) else 0

    def padded_core(self) -> Tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def sort_key(self) -> Tuple[Tuple[int, int, int], int, str]:
        # Releases carry 1 so that any pre-release of the same core sorts first.
        return (self.padded_core(), 0 if self.prerelease else 1, self.prerelease)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BoxVersion):
            return NotImplemented
        return self.sort_key() == other.sort_key()

    def __lt__(self, other: "BoxVersion") -> bool:
        if not isinstance(other, BoxVersion):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __hash__(self) -> int:
        return hash(self.sort_key())

    def __str__(self) -> str:
        return self.text or ".".join(str(part) for part in self.padded_core()) + (
            f"-{self.prerelease}" if self.prerelease else ""
        )


def parse_version(value: str) -> BoxVersion:
    """Parse ``value`` into a :class:`BoxVersion`.

    Raises:
        VersionParseError: If the core is empty, has more than three
            components, or any component is not a non-negative integer.
    """

    if not isinstance(value, str):
        raise VersionParseError(repr(value), "version must be a string")
    text = value.strip()
    if not text:
        raise VersionParseError(value, "version is empty")
    core_text, sep, prerelease = text.partition("-")
    if sep and not prerelease:
        raise VersionParseError(value, "pre-release label after '-' is empty")
    parts = core_text.split(".")
    if len(parts) > 3:
        raise VersionParseError(value, "numeric core has more than three components")
    core: List[int] = []
    for part in parts:
        if not _NUMERIC_PATTERN.match(part):
            raise VersionParseError(value, f"component '{part}' is not a non-negative integer")
        core.append(int(part))
    return BoxVersion(core=tuple(core), prerelease=prerelease, text=text)


def compare_versions(left: str, right: str) -> int:
    """Return -1, 0, or 1 as ``left`` sorts before, equal to, or after ``right``."""

    a, b = parse_version(left), parse_version(right)
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def sort_versions(values: Iterable[str]) -> List[str]:
    """Return ``values`` sorted by version precedence (stable for ties)."""

    return sorted(values, key=lambda item: parse_version(item).sort_key())


@dataclass(frozen=True, slots=True)
class VersionComparator:
    """A parsed comparator query such as ``>=1.2`` or ``<1.0.0-RC``."""

    operator: str
    target: Optional[BoxVersion]

    @classmethod
    def parse(cls, query: str) -> "VersionComparator":
        """Parse ``query``; an empty or blank query matches every version.

        Raises:
            QueryError: If the operator is malformed or the version is invalid.
        """

        if query is None or not query.strip():
            return cls(operator="", target=None)
        match = _QUERY_PATTERN.match(query)
        if match is None:
            raise QueryError(f"Malformed version query '{query}'")
        operator = match.group(1) or "="
        version_text = match.group(2)
        if version_text[0] in "<>=!":
            raise QueryError(f"Malformed version query '{query}': unknown operator")
        try:
            target = parse_version(version_text)
        except VersionParseError as exc:
            raise QueryError(f"Malformed version query '{query}': {exc.reason}") from exc
        if target.prerelease and len(target.core) < 3:
            raise QueryError(
                f"Malformed version query '{query}': a pre-release query needs a full "
                "major.minor.patch core"
            )
        return cls(operator=operator, target=target)

    @staticmethod
    def _compare(candidate: BoxVersion, target: BoxVersion) -> int:
        width = len(target.core)
        if width < 3:
            mine = candidate.padded_core()[:width]
            return (mine > target.core) - (mine < target.core)
        if candidate < target:
            return -1
        if candidate > target:
            return 1
        return 0

    def matches(self, candidate: str | BoxVersion) -> bool:
        """Return whether ``candidate`` satisfies this comparator.

        Raises:
            VersionParseError: If ``candidate`` is not a valid version string.
        """

        if self.target is None:
            return True
        version = candidate if isinstance(candidate, BoxVersion) else parse_version(candidate)
        result = self._compare(version, self.target)
        if self.operator == "<":
            return result < 0
        if self.operator == "<=":
            return result <= 0
        if self.operator == ">":
            return result > 0
        if self.operator == ">=":
            return result >= 0
        return result == 0

    def __str__(self) -> str:
        if self.target is None:
            return ""
        return f"{self.operator}{self.target}"


def version_matches(query: str, candidate: str) -> bool:
    """Return whether ``candidate`` satisfies the comparator ``query``."""

    return VersionComparator.parse(query).matches(candidate)
