import json
import sys
from pathlib import Path

import pytest
from loguru import logger

from blobstage.logging_config import setup_logging


@pytest.fixture(autouse=True)
def restore_logger():
    yield
    logger.remove()
    logger.add(sys.stderr)


def test_json_log_file(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "blobstage.log"
    setup_logging(level="INFO", json_format=True, log_file=log_file)

    logger.bind(container="oxalisinbound").info("Created container '{}'", "oxalisinbound")
    logger.debug("filtered out")
    logger.remove()

    lines = log_file.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    record = json.loads(lines[0])
    assert record["level"] == "INFO"
    assert record["message"] == "Created container 'oxalisinbound'"
    assert record["container"] == "oxalisinbound"
    assert "_json" not in record


def test_text_log_file(tmp_path: Path) -> None:
    log_file = tmp_path / "blobstage.log"
    setup_logging(level="DEBUG", log_file=log_file)

    logger.debug("Receipt received with id {}", "tx-1")
    logger.remove()

    text = log_file.read_text(encoding="utf-8")
    assert "Receipt received with id tx-1" in text
    assert "<green>" not in text
