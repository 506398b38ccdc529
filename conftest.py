#   Copyright (c) European Space Agency, 2025.
#
#   This file is subject to the terms and conditions defined in file 'LICENCE.txt', which
#   is part of this source code package. No part of the package, including
#   this file, may be copied, modified, propagated, or distributed except according to
#   the terms contained in the file 'LICENCE.txt'.
"""Root conftest.py for the browser integration harness."""

import io
import sys

import pytest
from loguru import logger

from browser_integration.logging_config import cleanup_logging


@pytest.fixture(autouse=True)
def clear_server_env(monkeypatch):
    """Keep the caller's server and cookie settings out of the tests."""
    monkeypatch.delenv("VSCODE_REMOTE_SERVER_PATH", raising=False)
    monkeypatch.delenv("AUTH_COOKIE", raising=False)


@pytest.fixture(autouse=True)
def release_logging_handlers():
    """Remove the handlers setup_logging added during a test."""
    yield
    cleanup_logging(wait=False)


@pytest.fixture
def caplog_loguru():
    """Capture loguru records of every level as plain text."""
    output = io.StringIO()
    handler_id = logger.add(output, format="{level} | {message}", level="TRACE")
    yield output
    logger.remove(handler_id)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "playwright: mark test as a Playwright end-to-end test")
    config.addinivalue_line("markers", "posix: test needs POSIX process groups and signals")


def pytest_collection_modifyitems(config, items):
    """Skip POSIX-only tests on Windows."""
    if sys.platform != "win32":
        return
    skip_posix = pytest.mark.skip(reason="needs POSIX process groups and signals")
    for item in items:
        if "posix" in item.keywords:
            item.add_marker(skip_posix)
