#   Copyright (c) European Space Agency, 2025.
#
#   This file is subject to the terms and conditions defined in file 'LICENCE.txt', which
#   is part of this source code package. No part of the package, including
#   this file, may be copied, modified, propagated, or distributed except according to
#   the terms contained in the file 'LICENCE.txt'.
"""Playwright configuration for end-to-end testing."""

import socket
import subprocess
import sys
import time
import urllib.request
from pathlib import Path

import pytest
from playwright.sync_api import sync_playwright

# Stand-in for the workbench page: reports test output and an exit code through the
# automation functions, failing unless the navigation payload names the test paths.
WORKBENCH_PAGE = """<!DOCTYPE html>
<html>
<head><title>workbench</title></head>
<body>
<script>
  window.addEventListener("load", async () => {
    const params = new URLSearchParams(window.location.search);
    const payload = JSON.parse(params.get("payload") || "[]");
    const keys = payload.map((pair) => pair[0]);
    const ok = params.get("tkn") === "e2e"
      && params.has("folder")
      && keys.includes("extensionDevelopmentPath")
      && keys.includes("extensionTestsPath");

    await window.codeAutomationLog("log", ["  payload " + JSON.stringify(keys)]);
    console.error("workbench loaded", ok);
    await window.codeAutomationExit(ok ? 0 : 1);
  });
</script>
</body>
</html>
"""


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture(scope="session")
def chromium_available():
    """Skip the Playwright tests when no chromium build is installed."""
    try:
        with sync_playwright() as p:
            browser = p.chromium.launch(headless=True)
            browser.close()
    except Exception as e:
        pytest.skip(f"Chromium not available for Playwright: {e}")


@pytest.fixture(scope="class")
def workbench_server(tmp_path_factory):
    """Serve the stand-in workbench page over http as a running server would."""
    web_root = Path(tmp_path_factory.mktemp("workbench"))
    (web_root / "index.html").write_text(WORKBENCH_PAGE)

    port = _free_port()
    cmd = [sys.executable, "-m", "http.server", str(port), "--bind", "127.0.0.1"]

    process = None
    try:
        process = subprocess.Popen(
            cmd,
            cwd=web_root,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )

        # Wait for server to start
        max_wait_time = 15
        url = f"http://127.0.0.1:{port}/"
        deadline = time.monotonic() + max_wait_time
        server_started = False
        while time.monotonic() < deadline:
            if process.poll() is not None:
                pytest.fail(f"Workbench server failed to start: {' '.join(cmd)}")
            try:
                with urllib.request.urlopen(url, timeout=1) as response:
                    if response.status == 200:
                        server_started = True
                        break
            except OSError:
                pass
            time.sleep(0.2)

        if not server_started:
            pytest.fail(f"Workbench server did not start within {max_wait_time} seconds")

        yield url

    finally:
        if process and process.poll() is None:
            process.terminate()
            try:
                process.wait(timeout=10)
            except subprocess.TimeoutExpired:
                process.kill()
