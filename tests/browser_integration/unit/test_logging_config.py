#   Copyright (c) European Space Agency, 2025.
#
#   This file is subject to the terms and conditions defined in file 'LICENCE.txt', which
#   is part of this source code package. No part of the package, including
#   this file, may be copied, modified, propagated, or distributed except according to
#   the terms contained in the file 'LICENCE.txt'.
"""
Tests for logging configuration.

Tests that:
1. setup_logging does not interfere with user's logging handlers
2. In-page output goes to stdout unformatted, harness messages to stderr
3. Log files are created only when a log directory is given
"""

import io
import time

import pytest
from loguru import logger

import browser_integration.logging_config as logging_config
from browser_integration.logging_config import cleanup_logging, page_logger, setup_logging


@pytest.fixture(autouse=True)
def reset_logging_state():
    """Reset the logging module state before and after each test."""
    cleanup_logging(wait=False)
    logging_config._first_setup_done = False

    yield

    cleanup_logging(wait=False)
    logging_config._first_setup_done = False


class TestLoggingNonInterference:
    """setup_logging must leave handlers added by the user alone."""

    def test_user_handler_preserved_after_setup_logging(self):
        user_log_output = io.StringIO()
        user_handler_id = logger.add(user_log_output, format="{message}", level="DEBUG")

        logger.info("User message before setup_logging")
        setup_logging(console_level="WARNING")
        logger.info("User message after setup_logging")
        cleanup_logging(wait=False)

        logged = user_log_output.getvalue()
        assert "User message before setup_logging" in logged
        assert "User message after setup_logging" in logged

        logger.remove(user_handler_id)

    def test_repeated_setup_replaces_own_handlers(self):
        setup_logging()
        first_ids = list(logging_config._handler_ids)

        setup_logging()

        assert len(logging_config._handler_ids) == len(first_ids)
        assert not set(first_ids) & set(logging_config._handler_ids)

    def test_cleanup_only_removes_own_handlers(self):
        user_output = io.StringIO()
        user_handler_id = logger.add(user_output, format="{message}")

        setup_logging()
        cleanup_logging(wait=False)
        logger.info("still here")

        assert logging_config._handler_ids == []
        assert "still here" in user_output.getvalue()
        logger.remove(user_handler_id)


class TestLoggingChannels:
    """Harness and page output go to different streams."""

    def test_page_output_is_verbatim_on_stdout(self, capsys):
        setup_logging(colorize=False)

        page_logger().info("  1 passing (20ms)")

        captured = capsys.readouterr()
        assert captured.out == "  1 passing (20ms)\n"
        assert "1 passing" not in captured.err

    def test_page_output_ignores_console_level(self, capsys):
        setup_logging(colorize=False, console_level="ERROR")

        page_logger().debug("debug from the page")

        assert "debug from the page" in capsys.readouterr().out

    def test_page_errors_are_verbatim_on_stderr(self, capsys):
        setup_logging(colorize=False, console_level="ERROR")

        page_logger().warning("deprecated api")
        page_logger().error("  1 failing")

        captured = capsys.readouterr()
        assert captured.err == "deprecated api\n  1 failing\n"
        assert captured.out == ""

    def test_harness_messages_go_to_stderr(self, capsys):
        setup_logging(colorize=False, console_level="INFO")

        logger.info("Server ready")

        captured = capsys.readouterr()
        assert "Server ready" in captured.err
        assert "INFO" in captured.err
        assert captured.out == ""

    def test_console_level_filters_harness_messages(self, capsys):
        setup_logging(colorize=False, console_level="WARNING")

        logger.info("hidden")
        logger.warning("shown")

        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "shown" in err


class TestLogFiles:
    def test_no_log_file_without_log_dir(self, tmp_path):
        setup_logging(log_dir=None)
        logger.info("nothing written")

        assert list(tmp_path.iterdir()) == []
        assert len(logging_config._handler_ids) == 3

    def test_log_file_created_in_log_dir(self, tmp_path):
        log_dir = tmp_path / "logs"

        setup_logging(log_level="DEBUG", log_dir=str(log_dir), session_timestamp="20260101_120000")
        logger.info("written to file")
        page_logger().info("page line in file")
        cleanup_logging()
        time.sleep(0.1)

        log_file = log_dir / "browser_integration_20260101_120000.log"
        assert log_file.exists()
        content = log_file.read_text()
        assert "written to file" in content
        assert "page line in file" in content
