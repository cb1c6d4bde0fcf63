"""Logging configuration tests."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from BoxCatalog.logging_utils import LOGGER_NAME, JSONFormatter, setup_logging


def _managed(logger: logging.Logger):
    return [h for h in logger.handlers if getattr(h, "_boxcatalog_managed", False)]


def test_setup_logging_is_idempotent():
    logger = setup_logging(level="DEBUG")
    setup_logging(level="WARNING")

    assert logger.name == LOGGER_NAME
    assert logger.level == logging.WARNING
    assert len(_managed(logger)) == 1


def test_json_log_file_carries_extra_fields(tmp_path: Path):
    logger = setup_logging(level="INFO", log_dir=tmp_path, json_logs=True)

    logging.getLogger("BoxCatalog.manager").info(
        "catalog entry added", extra={"stage": "write", "artifact": "box/1.0.0/vb"}
    )
    for handler in _managed(logger):
        handler.flush()

    files = list(tmp_path.glob("boxcatalog-*.jsonl"))
    assert len(files) == 1
    record = json.loads(files[0].read_text(encoding="utf-8").splitlines()[-1])
    assert record["message"] == "catalog entry added"
    assert record["stage"] == "write"
    assert record["artifact"] == "box/1.0.0/vb"
    assert record["logger"] == "BoxCatalog.manager"
    assert record["level"] == "INFO"


def test_plain_log_file(tmp_path: Path):
    setup_logging(level="INFO", log_dir=tmp_path, json_logs=False)

    assert list(tmp_path.glob("boxcatalog-*.log"))


def test_formatter_without_stage():
    record = logging.makeLogRecord({"name": "BoxCatalog", "levelname": "INFO", "msg": "hi"})

    payload = json.loads(JSONFormatter().format(record))

    assert payload["stage"] is None
    assert payload["message"] == "hi"
