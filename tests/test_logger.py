"""Tests for loguru sink configuration."""

import json
import sys

import pytest
from loguru import logger

from galactic_archive.config.logger import setup_logging


@pytest.fixture
def restore_logging():
    yield
    # The sinks point at the captured stream, which closes after the test
    logger.remove()


@pytest.mark.unit
def test_json_format_serializes_records(capsys, restore_logging):
    setup_logging(level="info", log_format="json")

    logger.info("Walk finished", extra={"files": 3})
    sys.stdout.flush()

    lines = [line for line in capsys.readouterr().out.splitlines() if line.strip()]
    records = [json.loads(line)["record"] for line in lines]
    assert records[-1]["message"] == "Walk finished"
    assert records[-1]["extra"]["extra"] == {"files": 3}


@pytest.mark.unit
def test_level_filters_lower_records(capsys, restore_logging):
    setup_logging(level="warning", log_format="text")

    logger.info("hidden")
    logger.warning("shown")

    out = capsys.readouterr().out
    assert "hidden" not in out
    assert "shown" in out
