"""Settings resolution from ``BOXCATALOG_*`` environment variables."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from BoxCatalog.errors import ConfigError
from BoxCatalog.settings import BoxCatalogSettings, get_settings, reset_settings


def test_defaults():
    settings = get_settings()

    assert settings.checksum_algorithm == "sha1"
    assert settings.artifact_suffix == ".box"
    assert settings.log_level == "INFO"
    assert settings.log_dir is None
    assert settings.log_json is True
    assert settings.level_int() == logging.INFO


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.setenv("BOXCATALOG_CHECKSUM_ALGORITHM", "SHA256")
    monkeypatch.setenv("boxcatalog_log_level", "debug")
    monkeypatch.setenv("BOXCATALOG_LOG_DIR", str(tmp_path))
    monkeypatch.setenv("BOXCATALOG_LOG_JSON", "false")

    settings = get_settings()

    assert settings.checksum_algorithm == "sha256"
    assert settings.log_level == "DEBUG"
    assert settings.log_dir == tmp_path
    assert settings.log_json is False


def test_settings_are_cached_until_reset(monkeypatch: pytest.MonkeyPatch):
    first = get_settings()
    monkeypatch.setenv("BOXCATALOG_ARTIFACT_SUFFIX", ".vbox")

    assert get_settings() is first
    reset_settings()
    assert get_settings().artifact_suffix == ".vbox"


@pytest.mark.parametrize(
    ("variable", "value"),
    [
        ("BOXCATALOG_CHECKSUM_ALGORITHM", "crc32"),
        ("BOXCATALOG_LOG_LEVEL", "LOUD"),
        ("BOXCATALOG_ARTIFACT_SUFFIX", "../x.box"),
    ],
)
def test_invalid_overrides_raise_config_error(monkeypatch: pytest.MonkeyPatch, variable: str, value: str):
    monkeypatch.setenv(variable, value)

    with pytest.raises(ConfigError):
        get_settings()


def test_direct_construction_validates():
    assert BoxCatalogSettings(checksum_algorithm="MD5").checksum_algorithm == "md5"
