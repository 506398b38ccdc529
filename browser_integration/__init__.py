#   Copyright (c) European Space Agency, 2025.
#
#   This file is subject to the terms and conditions defined in file 'LICENCE.txt', which
#   is part of this source code package. No part of the package, including
#   this file, may be copied, modified, propagated, or distributed except according to
#   the terms contained in the file 'LICENCE.txt'.
"""
Browser integration - runs editor extension tests in a headless browser.

This package launches (or attaches to) an editor server, opens it in a Playwright
controlled browser with the extension under test, and relays the exit code reported
by the in-page test runner.
"""

__version__ = "0.1.0"

from .errors import ConfigurationError, ExitRequested, HarnessError, ServerLaunchError
from .get_default_config import create_config_from_dict, get_default_config, load_config_toml
from .validate_config import validate_config
from .endpoint import Endpoint, parse_endpoint
from .lifecycle import Lifecycle, RunState
from .resolver import resolve_endpoint
from .runner import main, run

__all__ = [
    "ConfigurationError",
    "ExitRequested",
    "HarnessError",
    "ServerLaunchError",
    "create_config_from_dict",
    "get_default_config",
    "load_config_toml",
    "validate_config",
    "Endpoint",
    "parse_endpoint",
    "Lifecycle",
    "RunState",
    "resolve_endpoint",
    "main",
    "run",
]
