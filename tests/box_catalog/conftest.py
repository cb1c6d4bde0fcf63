"""Shared fixtures for the box catalog suite."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable

import fsspec
import pytest

from BoxCatalog.artifact import create_test_box_file
from BoxCatalog.logging_utils import LOGGER_NAME
from BoxCatalog.manager import BackendManager, manager_for_uri
from BoxCatalog.settings import reset_settings

BOX_NAME = "TestBox"
BOX_DESCRIPTION = "a box used by the test suite"


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch):
    """Drop ``BOXCATALOG_*`` overrides and cached settings around every test."""

    for key in list(os.environ):
        if key.upper().startswith("BOXCATALOG_"):
            monkeypatch.delenv(key, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture(autouse=True)
def _restore_logger():
    """Undo handlers installed by CLI invocations so ``caplog`` keeps working."""

    logger = logging.getLogger(LOGGER_NAME)
    yield
    for handler in list(logger.handlers):
        if getattr(handler, "_boxcatalog_managed", False):
            logger.removeHandler(handler)
            handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def catalog_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "catalog"
    directory.mkdir()
    return directory


@pytest.fixture
def catalog_uri(catalog_dir: Path) -> str:
    return (catalog_dir / f"{BOX_NAME}.json").as_uri()


@pytest.fixture
def make_box(tmp_path: Path) -> Callable[..., Path]:
    """Return a factory writing test boxes under ``tmp_path/incoming``."""

    def _make(provider: str, *, compress: bool = True, name: str | None = None) -> Path:
        target = tmp_path / "incoming" / (name or f"incoming-{provider}.box")
        return create_test_box_file(target, provider, compress=compress)

    return _make


@pytest.fixture
def manager(catalog_uri: str) -> BackendManager:
    return manager_for_uri(catalog_uri, BOX_NAME, description=BOX_DESCRIPTION)


@pytest.fixture
def memory_fs():
    """Clean fsspec in-memory filesystem."""

    fs = fsspec.filesystem("memory")
    fs.store.clear()
    fs.pseudo_dirs.clear()
    fs.pseudo_dirs.append("")
    yield fs
    fs.store.clear()
    fs.pseudo_dirs.clear()
    fs.pseudo_dirs.append("")
