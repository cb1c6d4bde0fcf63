"""Version ordering and comparator query tests."""

from __future__ import annotations

import pytest
from hypothesis import given, settings, strategies as st

from BoxCatalog.errors import QueryError, VersionParseError
from BoxCatalog.versions import (
    VersionComparator,
    compare_versions,
    parse_version,
    sort_versions,
    version_matches,
)

_components = st.integers(min_value=0, max_value=500)
_labels = st.sampled_from(["", "ALPHA", "BETA", "PRE", "RC1", "RC2"])


@st.composite
def version_strings(draw) -> str:
    core = ".".join(str(draw(_components)) for _ in range(3))
    label = draw(_labels)
    return f"{core}-{label}" if label else core


class TestParsing:
    def test_full_version(self):
        parsed = parse_version("1.2.3-BETA")

        assert parsed.padded_core() == (1, 2, 3)
        assert parsed.prerelease == "BETA"
        assert str(parsed) == "1.2.3-BETA"

    def test_missing_components_count_as_zero(self):
        assert parse_version("2") == parse_version("2.0.0")
        assert parse_version("2.1").padded_core() == (2, 1, 0)

    @pytest.mark.parametrize("value", ["", "   ", "a.b.c", "1.2.3.4", "1..2", "1.2.3-", "-1.0.0", "v1.0"])
    def test_invalid_versions(self, value: str):
        with pytest.raises(VersionParseError):
            parse_version(value)


class TestOrdering:
    def test_numeric_not_lexical(self):
        assert compare_versions("1.10.0", "1.2.0") == 1
        assert compare_versions("2.11.1", "2.10.0") == 1

    def test_prerelease_sorts_before_release(self):
        assert compare_versions("1.0.0-PRE", "1.0.0") == -1
        assert compare_versions("0.3.5-BETA", "0.3.5") == -1
        assert compare_versions("1.0.0-PRE", "0.9.9") == 1

    def test_prerelease_labels_compare_lexically(self):
        assert compare_versions("1.0.0-ALPHA", "1.0.0-BETA") == -1
        assert compare_versions("1.0.0-RC1", "1.0.0-RC1") == 0

    def test_sort_versions(self):
        values = ["2.10.0", "1.0.0", "1.0.0-PRE", "0.3.5-BETA", "2.0.0", "0.3.5"]

        assert sort_versions(values) == [
            "0.3.5-BETA",
            "0.3.5",
            "1.0.0-PRE",
            "1.0.0",
            "2.0.0",
            "2.10.0",
        ]

    @given(a=version_strings(), b=version_strings())
    @settings(max_examples=200)
    def test_compare_is_antisymmetric(self, a: str, b: str):
        assert compare_versions(a, b) == -compare_versions(b, a)

    @given(a=version_strings(), b=version_strings(), c=version_strings())
    @settings(max_examples=200)
    def test_compare_is_transitive(self, a: str, b: str, c: str):
        ordered = sort_versions([a, b, c])
        assert compare_versions(ordered[0], ordered[1]) <= 0
        assert compare_versions(ordered[1], ordered[2]) <= 0
        assert compare_versions(ordered[0], ordered[2]) <= 0

    @given(value=version_strings())
    def test_release_outranks_its_prereleases(self, value: str):
        core = value.split("-", 1)[0]
        assert compare_versions(f"{core}-RC1", core) == -1


class TestComparator:
    @pytest.mark.parametrize(
        ("query", "candidate", "expected"),
        [
            ("", "0.0.1", True),
            ("<1", "0.3.5", True),
            ("<1", "0.3.5-BETA", True),
            ("<1", "1.0.0-PRE", False),
            ("<1", "1.0.0", False),
            ("<=1", "1.9.9", True),
            (">1", "1.9.9", False),
            (">1", "2.0.0-RC1", True),
            (">=1.2", "1.2.0-PRE", True),
            ("1.2", "1.2.7", True),
            ("=1.2.3", "1.2.3", True),
            ("1.2.3", "1.2.3-PRE", False),
            ("<1.0.0", "1.0.0-PRE", True),
            (">=1.0.0-PRE", "1.0.0-PRE", True),
            (">1.0.0-PRE", "1.0.0", True),
            ("  >=  2.0.0 ", "2.10.0", True),
        ],
    )
    def test_matches(self, query: str, candidate: str, expected: bool):
        assert version_matches(query, candidate) is expected

    @pytest.mark.parametrize("query", ["<<1", "=>1", "!=1.0.0", ">abc", "<1.2.3.4", "<1-PRE"])
    def test_malformed_queries(self, query: str):
        with pytest.raises(QueryError):
            VersionComparator.parse(query)

    def test_directly_constructed_comparators(self):
        assert VersionComparator(operator="", target=None).matches("9.9.9")
        assert VersionComparator(operator="<", target=parse_version("1")).matches("0.3.5-BETA")
        assert not VersionComparator(operator=">=", target=parse_version("1.0.0")).matches(
            "1.0.0-PRE"
        )

    def test_str(self):
        assert str(VersionComparator.parse(" >= 1.2 ")) == ">=1.2"
        assert str(VersionComparator.parse("")) == ""
