#   Copyright (c) European Space Agency, 2025.
#
#   This file is subject to the terms and conditions defined in file 'LICENCE.txt', which
#   is part of this source code package. No part of the package, including
#   this file, may be copied, modified, propagated, or distributed except according to
#   the terms contained in the file 'LICENCE.txt'.
"""
Logging configuration for the browser integration harness.

Configures loguru with these sinks:
- harness messages on stderr
- in-page output (bridge and console relay) unformatted: warnings and errors on
  stderr, everything else on stdout
- an optional rotating log file
"""

import sys
import time
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from loguru import logger

# Channel name bound on records that carry output produced inside the page
PAGE_CHANNEL = "page"
# Page records at this level and above are printed on stderr
_PAGE_ERROR_LEVEL = logger.level("WARNING").no

# Handler ids added by setup_logging, so user handlers are never touched
_handler_ids: List[int] = []
_first_setup_done = False


def page_logger():
    """Return a logger bound to the page output channel."""
    return logger.bind(channel=PAGE_CHANNEL)


def _is_page_record(record) -> bool:
    return record["extra"].get("channel") == PAGE_CHANNEL


def _is_harness_record(record) -> bool:
    return not _is_page_record(record)


def _is_page_output(record) -> bool:
    return _is_page_record(record) and record["level"].no < _PAGE_ERROR_LEVEL


def _is_page_error(record) -> bool:
    return _is_page_record(record) and record["level"].no >= _PAGE_ERROR_LEVEL


def setup_logging(
    log_level: str = "INFO",
    log_dir: Optional[str] = None,
    colorize: bool = True,
    console_level: str = "INFO",
    session_timestamp: str = None,
) -> None:
    """
    Configure logging for the harness.

    Calling this again replaces the handlers from the previous call. Handlers added
    by the caller are left alone.

    Args:
        log_level: Logging level for file output (DEBUG, INFO, WARNING, ERROR, CRITICAL, TRACE)
        log_dir: Directory for log files, None disables the file sink
        colorize: Whether to enable colorized console output
        console_level: Logging level for harness messages on stderr
        session_timestamp: Shared timestamp used in the log file name (optional)
    """
    global _first_setup_done

    cleanup_logging(wait=False)

    _handler_ids.append(
        logger.add(
            sys.stderr,
            level=console_level,
            format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>",
            colorize=colorize,
            filter=_is_harness_record,
        )
    )

    # In-page output is printed verbatim, whatever the console level
    _handler_ids.append(
        logger.add(
            sys.stdout,
            level="TRACE",
            format="{message}",
            colorize=False,
            filter=_is_page_output,
        )
    )
    _handler_ids.append(
        logger.add(
            sys.stderr,
            level="TRACE",
            format="{message}",
            colorize=False,
            filter=_is_page_error,
        )
    )

    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)

        if session_timestamp is None:
            session_timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")[:-3]

        log_filename = f"browser_integration_{session_timestamp}.log"

        _handler_ids.append(
            logger.add(
                f"{log_dir}/{log_filename}",
                level=log_level,
                format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
                "{name}:{function}:{line} - {message}",
                rotation="10 MB",
                retention="7 days",
                compression="gz",
                backtrace=True,
                diagnose=True,
                colorize=False,
                enqueue=True,
            )
        )

    if not _first_setup_done:
        logger.debug(
            "Logging configured - console shows {}, files capture {}",
            console_level,
            log_level if log_dir else "nothing",
        )
        _first_setup_done = True


def cleanup_logging(wait: bool = True):
    """
    Remove the handlers added by setup_logging.

    Args:
        wait: Give the enqueued file sink a moment to release its file handle
    """
    for handler_id in _handler_ids:
        try:
            logger.remove(handler_id)
        except ValueError:
            pass
    _handler_ids.clear()

    if wait:
        time.sleep(0.1)
