#   Copyright (c) European Space Agency, 2025.
#
#   This file is subject to the terms and conditions defined in file 'LICENCE.txt', which
#   is part of this source code package. No part of the package, including
#   this file, may be copied, modified, propagated, or distributed except according to
#   the terms contained in the file 'LICENCE.txt'.
"""
Bridge between the in-page test runner and the harness.

Two functions are exposed on the page before navigation:
- codeAutomationLog(type, args): prints test output on the harness console
- codeAutomationExit(code): ends the run; the harness closes the browser, kills the
  server and exits with the code

Calls arrive as LogMessage / ExitMessage values and are dispatched in order.
"""

import json
from dataclasses import dataclass, field
from typing import Any, List, Union

from loguru import logger

from .lifecycle import Lifecycle
from .logging_config import page_logger

LOG_FUNCTION = "codeAutomationLog"
EXIT_FUNCTION = "codeAutomationExit"

# Browser console method -> loguru level
CONSOLE_LEVELS = {
    "log": "INFO",
    "info": "INFO",
    "debug": "DEBUG",
    "trace": "TRACE",
    "warn": "WARNING",
    "warning": "WARNING",
    "error": "ERROR",
}


def console_level(message_type: str) -> str:
    """Loguru level for a browser console method name; unknown names log at INFO."""
    return CONSOLE_LEVELS.get(str(message_type).lower(), "INFO")


def render_console_args(args: List[Any]) -> str:
    """Join console arguments the way a console prints them: strings as is, values as JSON."""
    rendered = []
    for arg in args:
        if isinstance(arg, str):
            rendered.append(arg)
        else:
            rendered.append(json.dumps(arg, default=str))
    return " ".join(rendered)


@dataclass(frozen=True)
class LogMessage:
    type: str
    args: List[Any] = field(default_factory=list)


@dataclass(frozen=True)
class ExitMessage:
    code: int


BridgeMessage = Union[LogMessage, ExitMessage]


class Bridge:
    """Host side of the in-page automation functions."""

    def __init__(self, lifecycle: Lifecycle):
        self.lifecycle = lifecycle
        self.installed = False

    async def install(self, page) -> None:
        """
        Expose the log and exit functions on the page.

        Must run before navigation so the test runner finds them on startup.

        Args:
            page: Playwright page
        """
        await page.expose_function(LOG_FUNCTION, self._on_log)
        await page.expose_function(EXIT_FUNCTION, self._on_exit)
        self.installed = True
        logger.debug(f"Exposed {LOG_FUNCTION} and {EXIT_FUNCTION} on the page")

    def _on_log(self, type: str, args: List[Any] = None) -> None:
        if args is None:
            args = []
        elif not isinstance(args, list):
            args = [args]
        self.dispatch(LogMessage(type=type, args=args))

    def _on_exit(self, code: Any) -> None:
        try:
            exit_code = int(code)
        except (TypeError, ValueError):
            logger.error(f"{EXIT_FUNCTION} called with invalid code {code!r}, exiting with 1")
            exit_code = 1
        self.dispatch(ExitMessage(code=exit_code))

    def dispatch(self, message: BridgeMessage) -> None:
        """Handle one message from the page."""
        if isinstance(message, LogMessage):
            page_logger().log(console_level(message.type), render_console_args(message.args))
        elif isinstance(message, ExitMessage):
            logger.info(f"Test runner reported exit code {message.code}")
            self.lifecycle.request_exit(message.code)
        else:
            raise TypeError(f"Unknown bridge message: {message!r}")
