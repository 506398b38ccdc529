#   Copyright (c) European Space Agency, 2025.
#
#   This file is subject to the terms and conditions defined in file 'LICENCE.txt', which
#   is part of this source code package. No part of the package, including
#   this file, may be copied, modified, propagated, or distributed except according to
#   the terms contained in the file 'LICENCE.txt'.
"""
Diagnostics relay - forwards page level problems to the harness console.

Purely observational: nothing here changes the outcome of the run.
"""

import asyncio
from typing import Iterable, Union

from loguru import logger

from .bridge import console_level, render_console_args
from .logging_config import page_logger

ALL_MESSAGE_TYPES = "all"


class DiagnosticsRelay:
    """Subscribes to page events and logs errors, failed requests and console output."""

    def __init__(self, console_message_types: Union[str, Iterable[str]] = ("error", "warning")):
        """
        Args:
            console_message_types: Console message types to forward, or "all"
        """
        if console_message_types == ALL_MESSAGE_TYPES:
            self.console_message_types = None
        else:
            self.console_message_types = frozenset(console_message_types)

    def install(self, page) -> None:
        """Subscribe to the page events. Call before navigation."""
        page.on("pageerror", self.on_page_error)
        page.on("crash", self.on_crash)
        page.on("response", self.on_response)
        page.on("requestfailed", self.on_request_failed)
        page.on("console", self.on_console)
        logger.debug("Diagnostics relay installed")

    def on_page_error(self, error) -> None:
        logger.error(f"Playwright ERROR: page error: {error}")

    def on_crash(self, _page) -> None:
        logger.error("Playwright ERROR: page crash")

    def on_response(self, response) -> None:
        if response.status >= 400:
            logger.error(f"Playwright ERROR: HTTP status {response.status} for {response.url}")

    def on_request_failed(self, request) -> None:
        logger.error(f"Request Failed {request.url} {request.failure}")

    def forwards(self, message_type: str) -> bool:
        return self.console_message_types is None or message_type in self.console_message_types

    async def on_console(self, message) -> None:
        try:
            if not self.forwards(message.type):
                return
            values = await asyncio.gather(*(arg.json_value() for arg in message.args))
            page_logger().log(
                console_level(message.type), render_console_args([message.text, list(values)])
            )
        except Exception as e:
            logger.error(f"Error logging console: {e}")
