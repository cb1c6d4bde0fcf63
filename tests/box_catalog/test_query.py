"""Catalog query tests against a catalog populated through the manager."""

from __future__ import annotations

import pytest

from BoxCatalog.errors import QueryError
from BoxCatalog.manager import BackendManager
from BoxCatalog.models import Catalog, Provider, Version
from BoxCatalog.query import CatalogQuery, query_catalog

STRONG = "StrongSapling"
FEEBLE = "FeebleFungus"
STRONG_VERSIONS = ["0.3.5", "0.3.5-BETA", "1.0.0", "1.0.0-PRE", "1.4.5", "1.2.3", "1.2.4"]
FEEBLE_VERSIONS = ["0.3.4", "0.3.5-BETA", "1.0.1", "2.0.0", "2.10.0", "2.11.1", "1.2.3"]
DIGEST_TYPE = "TestQueryDigestType"
DIGEST = "0xB00B1E5"
DESCRIPTION = "a box used by the test suite"


def _expected(*entries: tuple[str, list[str]]) -> Catalog:
    return Catalog(
        name="TestBox",
        description=DESCRIPTION,
        versions=[
            Version(version, [Provider(name, "FAKEURI", DIGEST_TYPE, DIGEST) for name in providers])
            for version, providers in entries
        ],
    )


@pytest.fixture
def populated(manager: BackendManager, make_box) -> BackendManager:
    strong_box = make_box(STRONG)
    feeble_box = make_box(FEEBLE)
    for version in STRONG_VERSIONS:
        manager.add_box(strong_box, "TestBox", DESCRIPTION, version, STRONG, DIGEST_TYPE, DIGEST)
    for version in FEEBLE_VERSIONS:
        manager.add_box(feeble_box, "TestBox", DESCRIPTION, version, FEEBLE, DIGEST_TYPE, DIGEST)
    return manager


@pytest.mark.parametrize(
    ("version_query", "provider_query", "expected"),
    [
        (
            "",
            "",
            _expected(
                ("0.3.5", [STRONG]),
                ("0.3.5-BETA", [STRONG, FEEBLE]),
                ("1.0.0", [STRONG]),
                ("1.0.0-PRE", [STRONG]),
                ("1.4.5", [STRONG]),
                ("1.2.3", [STRONG, FEEBLE]),
                ("1.2.4", [STRONG]),
                ("0.3.4", [FEEBLE]),
                ("1.0.1", [FEEBLE]),
                ("2.0.0", [FEEBLE]),
                ("2.10.0", [FEEBLE]),
                ("2.11.1", [FEEBLE]),
            ),
        ),
        (
            "",
            "rongSap",
            _expected(*[(version, [STRONG]) for version in STRONG_VERSIONS]),
        ),
        (
            "<1",
            "",
            _expected(
                ("0.3.5", [STRONG]),
                ("0.3.5-BETA", [STRONG, FEEBLE]),
                ("0.3.4", [FEEBLE]),
            ),
        ),
        (
            "<1",
            ".*rongSap.*",
            _expected(
                ("0.3.5", [STRONG]),
                ("0.3.5-BETA", [STRONG]),
            ),
        ),
        (
            ">=2.10",
            "Fungus$",
            _expected(
                ("2.10.0", [FEEBLE]),
                ("2.11.1", [FEEBLE]),
            ),
        ),
    ],
)
def test_query_catalog(populated: BackendManager, version_query, provider_query, expected):
    result = populated.query_catalog(version_query, provider_query)

    assert result.fuzzy_equals(expected, skip_provider_url=True, log_mismatch=True)


def test_query_does_not_mutate_source():
    source = Catalog(
        name="box",
        versions=[Version("1.0.0", [Provider("vb"), Provider("hv")])],
    )

    result = query_catalog(source, "", "^vb$")

    assert [p.name for p in result.versions[0].providers] == ["vb"]
    assert [p.name for p in source.versions[0].providers] == ["vb", "hv"]


def test_no_matches_yields_empty_catalog_with_identity():
    source = Catalog(name="box", description="d", versions=[Version("1.0.0", [Provider("vb")])])

    result = query_catalog(source, ">5")

    assert result == Catalog(name="box", description="d", versions=[])


def test_matching_keys():
    source = Catalog(
        name="box",
        versions=[Version("0.1.0", [Provider("vb")]), Version("2.0.0", [Provider("vb")])],
    )

    keys = CatalogQuery(version="<1").matching_keys(source)

    assert [str(key) for key in keys] == ["box/0.1.0/vb"]


@pytest.mark.parametrize(("version_query", "provider_query"), [("", "("), ("<<1", ""), ("1.2.3.4", "")])
def test_invalid_queries_fail_before_io(version_query: str, provider_query: str):
    with pytest.raises(QueryError):
        CatalogQuery(version=version_query, provider=provider_query)
