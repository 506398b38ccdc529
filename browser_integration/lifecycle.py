#   Copyright (c) European Space Agency, 2025.
#
#   This file is subject to the terms and conditions defined in file 'LICENCE.txt', which
#   is part of this source code package. No part of the package, including
#   this file, may be copied, modified, propagated, or distributed except according to
#   the terms contained in the file 'LICENCE.txt'.
"""
Run lifecycle for the browser integration harness.

This module handles:
- The ordered list of cleanup actions (browser close, server kill, temp dir removal)
- The run state machine RUNNING -> TERMINATING -> TERMINATED
- Exit requests from the in-page bridge and from SIGINT/SIGTERM
- Running the cleanup actions exactly once, whichever path asks for it
"""

import asyncio
import atexit
import inspect
import signal
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from loguru import logger

from .errors import ExitRequested

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class RunState(Enum):
    RUNNING = "running"
    TERMINATING = "terminating"
    TERMINATED = "terminated"


def signal_exit_code(signum: int) -> int:
    """Conventional shell exit code for a process ended by a signal."""
    return 128 + int(signum)


class Lifecycle:
    """
    Owns the cleanup actions of one harness run and decides when the run ends.

    Cleanup actions run in reverse registration order, so resources registered last
    (the browser) are released before the ones they depend on (the server).
    """

    def __init__(self):
        self.state = RunState.RUNNING
        self.exit_code: Optional[int] = None
        self._actions: List[Tuple[str, Callable[[], Any], bool]] = []
        self._completed: set = set()
        self._exit_waiter: Optional[asyncio.Future] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._installed_signals: List[int] = []
        self._previous_handlers = {}
        self._atexit_registered = False

    # ---- cleanup registration -------------------------------------------------

    def add_cleanup(self, name: str, action: Callable[[], Any], blocking: bool = False) -> None:
        """
        Register a cleanup action.

        Args:
            name: Name used in log messages
            action: Callable run at teardown; may return an awaitable
            blocking: Run the action in a worker thread instead of on the event loop
        """
        if self.state is RunState.TERMINATED:
            raise RuntimeError(f"Cannot register cleanup '{name}' after teardown")
        self._actions.append((name, action, blocking))
        logger.debug(f"Registered cleanup action '{name}'")

        if not self._atexit_registered:
            atexit.register(self._run_at_exit)
            self._atexit_registered = True

    # ---- exit requests --------------------------------------------------------

    def _waiter(self) -> asyncio.Future:
        if self._exit_waiter is None:
            self._exit_waiter = asyncio.get_running_loop().create_future()
            if self.exit_code is not None:
                self._exit_waiter.set_result(self.exit_code)
        return self._exit_waiter

    @property
    def exit_requested(self) -> bool:
        return self.exit_code is not None

    def request_exit(self, code: int) -> bool:
        """
        Ask the run to end with the given exit code.

        Only the first request counts; later ones are ignored.

        Args:
            code: Process exit code

        Returns:
            True if this request decided the exit code
        """
        if self.exit_code is not None:
            logger.debug(
                f"Ignoring exit request with code {code}, already exiting with {self.exit_code}"
            )
            return False

        self.exit_code = int(code)
        if self.state is RunState.RUNNING:
            self.state = RunState.TERMINATING
        logger.info(f"Exit requested with code {self.exit_code}")

        if self._exit_waiter is not None and not self._exit_waiter.done():
            self._exit_waiter.set_result(self.exit_code)
        return True

    def handle_signal(self, signum: int) -> None:
        """Request exit with 128 + signum after SIGINT/SIGTERM."""
        try:
            name = signal.Signals(signum).name
        except ValueError:
            name = str(signum)
        logger.warning(f"Received {name}, shutting down")
        self.request_exit(signal_exit_code(signum))

    async def wait_for_exit(self) -> int:
        """Suspend until an exit is requested and return its code."""
        return await self._waiter()

    async def guard(self, awaitable: Awaitable) -> Any:
        """
        Await a setup step unless an exit is requested while it runs.

        Args:
            awaitable: Setup step (server launch, browser start, navigation)

        Returns:
            Result of the setup step

        Raises:
            ExitRequested: If an exit was requested first; the step is cancelled
        """
        waiter = self._waiter()
        if waiter.done():
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            raise ExitRequested(self.exit_code)

        task = asyncio.ensure_future(awaitable)
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        if task.done():
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise ExitRequested(self.exit_code)

    # ---- signals --------------------------------------------------------------

    def install_signal_handlers(self) -> None:
        """Route SIGINT and SIGTERM to handle_signal."""
        self._loop = asyncio.get_running_loop()
        for signum in HANDLED_SIGNALS:
            try:
                self._loop.add_signal_handler(signum, self.handle_signal, signum)
            except (NotImplementedError, RuntimeError):
                # Windows event loops have no add_signal_handler
                self._previous_handlers[signum] = signal.signal(signum, self._on_raw_signal)
            self._installed_signals.append(signum)

    def _on_raw_signal(self, signum, _frame) -> None:
        self._loop.call_soon_threadsafe(self.handle_signal, signum)

    def remove_signal_handlers(self) -> None:
        for signum in self._installed_signals:
            if signum in self._previous_handlers:
                signal.signal(signum, self._previous_handlers.pop(signum))
            elif self._loop is not None and not self._loop.is_closed():
                self._loop.remove_signal_handler(signum)
        self._installed_signals.clear()

    # ---- teardown -------------------------------------------------------------

    async def shutdown(self) -> int:
        """
        Run every cleanup action once and return the exit code.

        Failures are logged and do not stop the remaining actions.
        """
        if self.state is RunState.TERMINATED:
            return self.exit_code

        if self.exit_code is None:
            self.exit_code = 0
        self.state = RunState.TERMINATING

        for index, (name, action, blocking) in reversed(list(enumerate(self._actions))):
            if index in self._completed:
                continue
            self._completed.add(index)
            try:
                if blocking:
                    result = await asyncio.to_thread(action)
                else:
                    result = action()
                if inspect.isawaitable(result):
                    await result
                logger.debug(f"Cleanup action '{name}' done")
            except Exception as e:
                logger.error(f"Cleanup action '{name}' failed: {e}")

        self.state = RunState.TERMINATED
        self.remove_signal_handlers()
        return self.exit_code

    def _run_at_exit(self) -> None:
        """Run the synchronous cleanup actions that shutdown() did not get to."""
        if self.state is RunState.TERMINATED:
            return

        for index, (name, action, _blocking) in reversed(list(enumerate(self._actions))):
            if index in self._completed or inspect.iscoroutinefunction(action):
                continue
            self._completed.add(index)
            try:
                action()
            except Exception as e:
                logger.error(f"Cleanup action '{name}' failed at exit: {e}")
        self.state = RunState.TERMINATED
