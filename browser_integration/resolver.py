#   Copyright (c) European Space Agency, 2025.
#
#   This file is subject to the terms and conditions defined in file 'LICENCE.txt', which
#   is part of this source code package. No part of the package, including
#   this file, may be copied, modified, propagated, or distributed except according to
#   the terms contained in the file 'LICENCE.txt'.
"""Address resolution: attach to a running server or launch one."""

from typing import Optional, Tuple

from dotmap import DotMap
from loguru import logger

from .endpoint import Endpoint, parse_endpoint
from .lifecycle import Lifecycle
from .server_supervisor import ServerHandle, ServerSupervisor


async def resolve_endpoint(
    config: DotMap, lifecycle: Lifecycle
) -> Tuple[Endpoint, Optional[ServerHandle]]:
    """
    Produce the endpoint the browser session navigates to.

    Args:
        config: Harness configuration; config.endpoint skips launching a server
        lifecycle: Lifecycle manager that takes ownership of a launched server

    Returns:
        The endpoint and the server handle (None when attaching to a running server)
    """
    if config.endpoint:
        endpoint = parse_endpoint(config.endpoint)
        logger.info(f"Using running server at {endpoint.href}")
        return endpoint, None

    return await ServerSupervisor(config, lifecycle).launch()
