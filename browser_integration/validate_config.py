#   Copyright (c) European Space Agency, 2025.
#
#   This file is subject to the terms and conditions defined in file 'LICENCE.txt', which
#   is part of this source code package. No part of the package, including
#   this file, may be copied, modified, propagated, or distributed except according to
#   the terms contained in the file 'LICENCE.txt'.
"""Configuration validation for the browser integration harness."""

from pathlib import Path

from dotmap import DotMap
from loguru import logger

from .errors import ConfigurationError
from .get_default_config import BROWSER_TYPES

CONSOLE_MESSAGE_TYPES = ("log", "debug", "info", "error", "warning", "trace")

REQUIRED_PATHS = (
    ("workspace_path", "--workspacePath"),
    ("extension_development_path", "--extensionDevelopmentPath"),
    ("extension_tests_path", "--extensionTestsPath"),
)


def validate_config(config: DotMap, check_paths: bool = True) -> None:
    """
    Validate a harness configuration before anything is launched.

    Args:
        config: Configuration to validate
        check_paths: Also check that the configured paths exist on disk

    Raises:
        ConfigurationError: If a value is missing or invalid
    """
    if config.browser not in BROWSER_TYPES:
        raise ConfigurationError(
            f"Unsupported browser '{config.browser}', expected one of {', '.join(BROWSER_TYPES)}"
        )

    for key, flag in REQUIRED_PATHS:
        value = config[key]
        if not value:
            raise ConfigurationError(f"{flag} is required")
        if check_paths and not Path(value).exists():
            raise ConfigurationError(f"{flag} does not exist: {value}")

    timeout = config.server_ready_timeout
    if timeout is not None:
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
            raise ConfigurationError(f"server_ready_timeout must be a number, got {timeout!r}")
        if timeout < 0:
            raise ConfigurationError(f"server_ready_timeout must not be negative, got {timeout}")

    message_types = config.console_message_types
    if message_types != "all":
        if not isinstance(message_types, (list, tuple)):
            raise ConfigurationError(
                f"console_message_types must be a list or 'all', got {message_types!r}"
            )
        unknown = [t for t in message_types if t not in CONSOLE_MESSAGE_TYPES]
        if unknown:
            raise ConfigurationError(f"Unknown console message types: {', '.join(unknown)}")

    if config.viewport.width <= 0 or config.viewport.height <= 0:
        raise ConfigurationError(
            f"Viewport must be positive, got {config.viewport.width}x{config.viewport.height}"
        )

    logger.debug("Configuration validated")
