"""
Tests for devbootstrap logging setup.
"""

import json
import logging
from io import StringIO

import pytest

from devbootstrap.logger import ROOT_LOGGER_NAME, configure_logging


@pytest.fixture
def captured_logs():
    """Capture log output for testing."""
    return StringIO()


def parse_log_lines(captured_logs) -> list:
    return [json.loads(line) for line in captured_logs.getvalue().splitlines() if line]


class TestJsonFormat:
    def test_json_line_fields(self, captured_logs):
        configure_logging("info", "json", stream=captured_logs)
        logging.getLogger("devbootstrap.orchestrator").info("Step %d/%d %s running", 2, 7, "Docker")

        log = parse_log_lines(captured_logs)[-1]
        assert log["level"] == "info"
        assert log["logger"] == "devbootstrap.orchestrator"
        assert log["message"] == "Step 2/7 Docker running"
        assert "timestamp" in log

    def test_exception_included(self, captured_logs):
        configure_logging("info", "json", stream=captured_logs)
        try:
            raise RuntimeError("installer exploded")
        except RuntimeError:
            logging.getLogger("devbootstrap").exception("Unexpected error")

        log = parse_log_lines(captured_logs)[-1]
        assert "installer exploded" in log["exception"]


class TestConfigureLogging:
    def test_level_filters(self, captured_logs):
        configure_logging("warning", "text", stream=captured_logs)
        logger = logging.getLogger("devbootstrap.install")
        logger.info("hidden")
        logger.warning("shown")

        output = captured_logs.getvalue()
        assert "hidden" not in output
        assert "WARNING devbootstrap.install: shown" in output

    def test_repeated_calls_do_not_duplicate(self, captured_logs):
        configure_logging("info", "text", stream=captured_logs)
        configure_logging("info", "text", stream=captured_logs)
        logging.getLogger(ROOT_LOGGER_NAME).info("once")

        assert captured_logs.getvalue().count("once") == 1
        assert len(logging.getLogger(ROOT_LOGGER_NAME).handlers) == 1
