#   Copyright (c) European Space Agency, 2025.
#
#   This file is subject to the terms and conditions defined in file 'LICENCE.txt', which
#   is part of this source code package. No part of the package, including
#   this file, may be copied, modified, propagated, or distributed except according to
#   the terms contained in the file 'LICENCE.txt'.
"""Default configuration for the browser integration harness.

This module provides the default configuration using DotMap for dot-accessible dictionaries.
Values can be overridden from a TOML file and from the command line.
"""

from datetime import datetime

from dotmap import DotMap

BROWSER_TYPES = ("chromium", "firefox", "webkit")


def get_default_config():
    """Returns the default configuration for the harness.

    Returns:
        DotMap: The default configuration with dot-accessible parameters
    """
    cfg = DotMap(_dynamic=False)

    # === General Settings ===
    cfg.log_level = "INFO"  # Logging level for the log file
    cfg.console_log_level = "INFO"  # Logging level for harness messages on stderr
    cfg.log_dir = None  # Directory for log files, None = no log file
    cfg.session_timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    # === Browser ===
    cfg.browser = "chromium"  # One of BROWSER_TYPES
    cfg.debug = False  # Echo server output, run the browser headed
    cfg.viewport = DotMap(_dynamic=False)
    cfg.viewport.width = 1200
    cfg.viewport.height = 800

    # === Server ===
    cfg.endpoint = None  # Url of an already running server, skips launching one
    cfg.server_path = None  # Server distribution, falls back to VSCODE_REMOTE_SERVER_PATH
    cfg.server_ready_timeout = 120.0  # Seconds to wait for the ready line, None/0 = forever

    # === Test run ===
    cfg.workspace_path = None  # Folder or *.code-workspace file to open
    cfg.extension_development_path = None  # Extension under test
    cfg.extension_tests_path = None  # Compiled extension tests
    cfg.auth_cookie = None  # base64 JSON cookie, falls back to AUTH_COOKIE
    cfg.payload_flags = {}  # Extra [key, value] pairs appended to the navigation payload

    # === Diagnostics ===
    cfg.console_message_types = ["error", "warning"]  # Page console types to relay, or "all"

    return cfg


def create_config_from_dict(config_dict):
    """Create a harness config from a dictionary, merging with defaults.

    Args:
        config_dict (dict): Configuration dictionary to merge with defaults

    Returns:
        DotMap: Complete configuration with defaults applied
    """
    cfg = get_default_config()
    merge_config(cfg, config_dict)
    return cfg


def merge_config(cfg, overrides):
    """Recursively merge overrides into an existing config.

    Args:
        cfg (DotMap): Configuration updated in place
        overrides (dict): Values to apply; None values are skipped

    Returns:
        DotMap: The updated configuration
    """
    for key, value in overrides.items():
        if value is None:
            continue
        if key in cfg and isinstance(cfg[key], DotMap) and isinstance(value, dict):
            merge_config(cfg[key], value)
        else:
            cfg[key] = value
    return cfg


def load_config_toml(filepath):
    """Load configuration from TOML file.

    Args:
        filepath (str): Path to TOML configuration file

    Returns:
        DotMap: Loaded configuration merged with defaults
    """
    import toml

    with open(filepath, "r") as f:
        config_dict = toml.load(f)

    return create_config_from_dict(config_dict)
