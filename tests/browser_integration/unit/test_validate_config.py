#   Copyright (c) European Space Agency, 2025.
#
#   This file is subject to the terms and conditions defined in file 'LICENCE.txt', which
#   is part of this source code package. No part of the package, including
#   this file, may be copied, modified, propagated, or distributed except according to
#   the terms contained in the file 'LICENCE.txt'.
"""Tests for configuration validation."""

import pytest

from browser_integration import ConfigurationError, get_default_config, validate_config


@pytest.fixture
def config(tmp_path):
    workspace = tmp_path / "workspace"
    extension = tmp_path / "extension"
    tests = extension / "out" / "test"
    for path in (workspace, tests):
        path.mkdir(parents=True)

    config = get_default_config()
    config.workspace_path = str(workspace)
    config.extension_development_path = str(extension)
    config.extension_tests_path = str(tests)
    return config


class TestValidateConfig:
    def test_valid_config_passes(self, config):
        validate_config(config)

    @pytest.mark.parametrize("browser", ["chromium", "firefox", "webkit"])
    def test_supported_browsers(self, config, browser):
        config.browser = browser
        validate_config(config)

    def test_unknown_browser_rejected(self, config):
        config.browser = "edge"
        with pytest.raises(ConfigurationError, match="Unsupported browser 'edge'"):
            validate_config(config)

    @pytest.mark.parametrize(
        "key, flag",
        [
            ("workspace_path", "--workspacePath"),
            ("extension_development_path", "--extensionDevelopmentPath"),
            ("extension_tests_path", "--extensionTestsPath"),
        ],
    )
    def test_required_paths(self, config, key, flag):
        config[key] = None
        with pytest.raises(ConfigurationError, match=f"{flag} is required"):
            validate_config(config)

    def test_missing_path_on_disk(self, config, tmp_path):
        config.workspace_path = str(tmp_path / "nowhere")
        with pytest.raises(ConfigurationError, match="does not exist"):
            validate_config(config)

    def test_missing_path_allowed_without_check(self, config, tmp_path):
        config.workspace_path = str(tmp_path / "nowhere")
        validate_config(config, check_paths=False)

    def test_negative_timeout_rejected(self, config):
        config.server_ready_timeout = -1
        with pytest.raises(ConfigurationError, match="must not be negative"):
            validate_config(config)

    def test_zero_timeout_allowed(self, config):
        config.server_ready_timeout = 0
        validate_config(config)

    def test_all_console_message_types(self, config):
        config.console_message_types = "all"
        validate_config(config)

    def test_unknown_console_message_type_rejected(self, config):
        config.console_message_types = ["error", "shout"]
        with pytest.raises(ConfigurationError, match="shout"):
            validate_config(config)
