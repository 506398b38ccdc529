#   Copyright (c) European Space Agency, 2025.
#
#   This file is subject to the terms and conditions defined in file 'LICENCE.txt', which
#   is part of this source code package. No part of the package, including
#   this file, may be copied, modified, propagated, or distributed except according to
#   the terms contained in the file 'LICENCE.txt'.
"""
Session launcher - opens the browser page the tests run in.

This module handles:
- Starting Playwright and the selected browser engine
- One browser context, with the optional authentication cookie
- One page with a fixed viewport, the bridge functions and the diagnostics relay
- Navigation to the server with the workspace and extension payload
"""

from dataclasses import dataclass
from typing import Any, Optional

from dotmap import DotMap
from loguru import logger
from playwright.async_api import async_playwright

from .auth_cookie import get_auth_cookie
from .bridge import Bridge
from .diagnostics import DiagnosticsRelay
from .endpoint import Endpoint
from .lifecycle import Lifecycle
from .navigation import NavigationPayload, build_navigation_url


@dataclass
class BrowserSession:
    """Playwright objects of a running test session."""

    playwright: Any
    browser: Any
    context: Any
    page: Any
    bridge: Bridge
    diagnostics: DiagnosticsRelay
    url: str


class SessionLauncher:
    """Opens the browser, wires the page to the harness and navigates to the server."""

    def __init__(self, config: DotMap, lifecycle: Lifecycle):
        self.config = config
        self.lifecycle = lifecycle
        self.session: Optional[BrowserSession] = None

    async def launch(self, endpoint: Endpoint) -> BrowserSession:
        """
        Start the browser session and navigate to the server.

        The run is driven by the page from here on, until the test runner calls the exit
        function.

        Args:
            endpoint: Resolved server endpoint

        Returns:
            The browser session
        """
        config = self.config
        auth_cookie = get_auth_cookie(config.auth_cookie)
        url = build_navigation_url(endpoint, NavigationPayload.from_config(config, endpoint))

        playwright = await async_playwright().start()
        self.lifecycle.add_cleanup("stop playwright", playwright.stop)

        browser_type = getattr(playwright, config.browser)
        logger.info(f"Launching {config.browser}")
        browser = await browser_type.launch(headless=not config.debug)

        async def close_browser():
            try:
                await browser.close()
            except Exception as e:
                logger.error(f"Error when closing browser: {e}")

        self.lifecycle.add_cleanup("close browser", close_browser)

        context = await browser.new_context()
        if auth_cookie is not None:
            await context.add_cookies([auth_cookie.to_playwright()])

        page = await context.new_page()
        await page.set_viewport_size(
            {"width": config.viewport.width, "height": config.viewport.height}
        )

        bridge = Bridge(self.lifecycle)
        await bridge.install(page)
        diagnostics = DiagnosticsRelay(config.console_message_types)
        diagnostics.install(page)

        logger.info(f"Opening {url}")
        await page.goto(url)

        self.session = BrowserSession(
            playwright=playwright,
            browser=browser,
            context=context,
            page=page,
            bridge=bridge,
            diagnostics=diagnostics,
            url=url,
        )
        return self.session
