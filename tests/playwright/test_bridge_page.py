#   Copyright (c) European Space Agency, 2025.
#
#   This file is subject to the terms and conditions defined in file 'LICENCE.txt', which
#   is part of this source code package. No part of the package, including
#   this file, may be copied, modified, propagated, or distributed except according to
#   the terms contained in the file 'LICENCE.txt'.
"""
End-to-end tests with a real browser.

Tests cover:
- The automation functions called from page scripts
- The console relay on a live page
- A full session against a served page, including the navigation payload
"""

import asyncio

import pytest
from playwright.async_api import async_playwright

from browser_integration import get_default_config, parse_endpoint
from browser_integration.bridge import Bridge
from browser_integration.diagnostics import DiagnosticsRelay
from browser_integration.lifecycle import Lifecycle
from browser_integration.session import SessionLauncher

pytestmark = pytest.mark.playwright

REPORTING_PAGE = """<html><body><script>
  (async () => {
    await window.codeAutomationLog("log", ["  2 passing (4ms)"]);
    await window.codeAutomationLog("error", ["  1 failing"]);
    console.warn("deprecated api", 3);
    console.log("not relayed by default");
    await window.codeAutomationExit(%d);
  })();
</script></body></html>
"""


@pytest.mark.usefixtures("chromium_available")
class TestBridgeOnPage:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("exit_code", [0, 4])
    async def test_exit_code_reported_by_page(self, exit_code, caplog_loguru):
        lifecycle = Lifecycle()

        async with async_playwright() as p:
            browser = await p.chromium.launch(headless=True)
            try:
                page = await browser.new_page()
                await Bridge(lifecycle).install(page)
                DiagnosticsRelay().install(page)

                await page.set_content(REPORTING_PAGE % exit_code)
                code = await asyncio.wait_for(lifecycle.wait_for_exit(), 10)
                # Console events may trail the exit call
                await asyncio.sleep(0.2)
            finally:
                await browser.close()

        assert code == exit_code
        output = caplog_loguru.getvalue()
        assert "INFO |   2 passing (4ms)" in output
        assert "ERROR |   1 failing" in output
        assert "WARNING | deprecated api 3" in output
        assert "not relayed by default" not in output


@pytest.mark.usefixtures("chromium_available")
class TestSessionAgainstServer:
    @pytest.mark.asyncio
    async def test_session_navigates_with_payload(self, workbench_server, tmp_path, caplog_loguru):
        config = get_default_config()
        config.workspace_path = str(tmp_path / "workspace")
        config.extension_development_path = str(tmp_path / "extension")
        config.extension_tests_path = str(tmp_path / "extension" / "out" / "test")
        lifecycle = Lifecycle()

        try:
            endpoint = parse_endpoint(f"{workbench_server}index.html?tkn=e2e")
            session = await SessionLauncher(config, lifecycle).launch(endpoint)
            code = await asyncio.wait_for(lifecycle.wait_for_exit(), 10)
        finally:
            await lifecycle.shutdown()

        assert code == 0
        assert "&folder=" in session.url
        assert "INFO |   payload [" in caplog_loguru.getvalue()
