#   Copyright (c) European Space Agency, 2025.
#
#   This file is subject to the terms and conditions defined in file 'LICENCE.txt', which
#   is part of this source code package. No part of the package, including
#   this file, may be copied, modified, propagated, or distributed except according to
#   the terms contained in the file 'LICENCE.txt'.
"""
Browser integration test runner.

Launches (or attaches to) an editor server, opens it in a headless browser with the
extension under test and relays the exit code reported by the in-page test runner.

Usage:
  browser-integration-tests --workspacePath ws --extensionDevelopmentPath ext \\
      --extensionTestsPath ext/out/test            # launch a server from VSCODE_REMOTE_SERVER_PATH
  browser-integration-tests --endpoint http://127.0.0.1:9888/?tkn=abc ...  # use a running server

Exit codes:
  the code reported by the tests, 1 on setup failure, 130/143 on SIGINT/SIGTERM
"""

import argparse
import asyncio
import sys

from dotmap import DotMap
from loguru import logger

from .errors import ExitRequested, HarnessError
from .get_default_config import (
    BROWSER_TYPES,
    get_default_config,
    load_config_toml,
    merge_config,
)
from .lifecycle import Lifecycle
from .logging_config import cleanup_logging, setup_logging
from .resolver import resolve_endpoint
from .session import SessionLauncher
from .validate_config import validate_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="browser-integration-tests",
        description="Run extension integration tests in a browser against an editor server",
    )
    parser.add_argument("--endpoint", help="Url to a running server")
    parser.add_argument("--authCookie", help="Cookie to authenticate (base64 encoded JSON)")
    parser.add_argument(
        "--workspacePath",
        help="path to the workspace (folder or *.code-workspace file) to open in the test",
    )
    parser.add_argument("--extensionDevelopmentPath", help="path to the extension to test")
    parser.add_argument("--extensionTestsPath", help="path to the extension tests")
    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="do not run browsers headless, echo server output",
    )
    parser.add_argument(
        "--browser",
        choices=BROWSER_TYPES,
        help="browser in which integration tests should run (default: chromium)",
    )
    parser.add_argument("--config", help="TOML file with harness settings")
    parser.add_argument(
        "--server-ready-timeout",
        type=float,
        help="seconds to wait for the server address, 0 waits forever (default: 120)",
    )
    parser.add_argument(
        "--console-message-types",
        help="comma separated page console types to relay, or 'all' (default: error,warning)",
    )
    parser.add_argument("--log-level", help="log file level (default: INFO)")
    parser.add_argument("--log-dir", help="write a log file to this directory")
    return parser


def config_from_args(args: argparse.Namespace) -> DotMap:
    """Build the run configuration: defaults, then the TOML file, then the flags."""
    config = load_config_toml(args.config) if args.config else get_default_config()

    console_message_types = args.console_message_types
    if console_message_types and console_message_types != "all":
        console_message_types = [t.strip() for t in console_message_types.split(",") if t.strip()]

    return merge_config(
        config,
        {
            "endpoint": args.endpoint,
            "auth_cookie": args.authCookie,
            "workspace_path": args.workspacePath,
            "extension_development_path": args.extensionDevelopmentPath,
            "extension_tests_path": args.extensionTestsPath,
            "debug": args.debug,
            "browser": args.browser,
            "server_ready_timeout": args.server_ready_timeout,
            "console_message_types": console_message_types,
            "log_level": args.log_level,
            "log_dir": args.log_dir,
        },
    )


async def run(config: DotMap) -> int:
    """
    Run the tests once.

    Returns:
        Exit code reported by the page, or 128 + signal number when interrupted

    Raises:
        HarnessError: On configuration or server launch failures (after teardown)
    """
    lifecycle = Lifecycle()
    lifecycle.install_signal_handlers()
    try:
        endpoint, _server = await lifecycle.guard(resolve_endpoint(config, lifecycle))
        await lifecycle.guard(SessionLauncher(config, lifecycle).launch(endpoint))
        logger.info("Waiting for the test runner to report")
        await lifecycle.wait_for_exit()
    except ExitRequested:
        pass
    except BaseException:
        lifecycle.request_exit(1)
        raise
    finally:
        code = await lifecycle.shutdown()
    return code


def main(argv=None) -> int:
    """Command line entry point; returns the process exit code."""
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
    except (OSError, ValueError) as e:
        print(f"Cannot load configuration: {e}", file=sys.stderr)
        return 1

    setup_logging(
        log_level=config.log_level,
        log_dir=config.log_dir,
        console_level=config.console_log_level,
        session_timestamp=config.session_timestamp,
    )
    try:
        validate_config(config)
        code = asyncio.run(run(config))
        logger.info(f"Exiting with code {code}")
        return code
    except HarnessError as e:
        logger.error(str(e))
        return 1
    except Exception as e:
        logger.exception(f"Test run failed: {e}")
        return 1
    finally:
        cleanup_logging()
