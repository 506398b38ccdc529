#   Copyright (c) European Space Agency, 2025.
#
#   This file is subject to the terms and conditions defined in file 'LICENCE.txt', which
#   is part of this source code package. No part of the package, including
#   this file, may be copied, modified, propagated, or distributed except according to
#   the terms contained in the file 'LICENCE.txt'.
"""Exception types raised by the browser integration harness."""


class HarnessError(Exception):
    """Base class for all harness errors."""


class ConfigurationError(HarnessError):
    """Raised when the harness is missing required configuration."""


class ServerLaunchError(HarnessError):
    """Raised when the editor server cannot be started or never becomes ready."""


class ExitRequested(HarnessError):
    """Raised by a guarded setup step when an exit was requested while it ran."""

    def __init__(self, code: int):
        super().__init__(f"Exit requested with code {code}")
        self.code = code
