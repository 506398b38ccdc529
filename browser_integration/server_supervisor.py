#   Copyright (c) European Space Agency, 2025.
#
#   This file is subject to the terms and conditions defined in file 'LICENCE.txt', which
#   is part of this source code package. No part of the package, including
#   this file, may be copied, modified, propagated, or distributed except according to
#   the terms contained in the file 'LICENCE.txt'.
"""
Server supervisor - spawns the editor server and owns its process.

This module handles:
- Locating the server launcher from VSCODE_REMOTE_SERVER_PATH and its product.json
- A throw-away server data directory, removed at teardown
- Spawning the server in its own process group with a prepared environment
- Scanning stdout for the "Web UI available at <url>" ready line
- Killing the whole server process tree exactly once
"""

import asyncio
import json
import os
import re
import shutil
import signal
import tempfile
from functools import partial
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

import psutil
from dotmap import DotMap
from loguru import logger

from .endpoint import Endpoint, parse_endpoint
from .errors import ConfigurationError, ServerLaunchError
from .lifecycle import Lifecycle

SERVER_PATH_ENV = "VSCODE_REMOTE_SERVER_PATH"
READY_PATTERN = re.compile(r"Web UI available at (.+)")

_READ_CHUNK_SIZE = 4096
_KILL_TIMEOUT_SECONDS = 5.0


def find_ready_url(text: str) -> Optional[str]:
    """Return the url of the first ready line in text, if any."""
    match = READY_PATTERN.search(text)
    if match is None:
        return None
    return match.group(1).strip()


def build_server_env(browser: str, environ: Mapping[str, str]) -> Dict[str, str]:
    """Environment for the server: the current environment plus the browser kind."""
    return {"VSCODE_BROWSER": browser, **environ}


def build_server_args(server_data_dir: str) -> List[str]:
    """Command line arguments selecting the web driver mode."""
    return [
        "--driver",
        "web",
        "--enable-proposed-api",
        "--disable-telemetry",
        "--server-data-dir",
        server_data_dir,
    ]


def server_executable(server_path: str) -> str:
    """
    Resolve the server launcher inside a server distribution.

    Args:
        server_path: Root of the server distribution

    Returns:
        Path of bin/<serverApplicationName> (with .cmd on Windows)

    Raises:
        ServerLaunchError: If product.json is missing or has no serverApplicationName
    """
    product_file = Path(server_path) / "product.json"
    try:
        with open(product_file, "r", encoding="utf-8") as f:
            product = json.load(f)
        application_name = product["serverApplicationName"]
    except (OSError, ValueError, KeyError, TypeError) as e:
        raise ServerLaunchError(f"Cannot read serverApplicationName from {product_file}: {e}")

    suffix = ".cmd" if os.name == "nt" else ""
    return str(Path(server_path) / "bin" / f"{application_name}{suffix}")


def process_group_members(pgid: int) -> List[psutil.Process]:
    """Live processes whose process group is pgid (always empty on Windows)."""
    if os.name == "nt":
        return []

    members = []
    for proc in psutil.process_iter():
        try:
            if os.getpgid(proc.pid) == pgid and proc.status() != psutil.STATUS_ZOMBIE:
                members.append(proc)
        except (OSError, psutil.Error):
            continue
    return members


def kill_process_tree(pid: int, timeout: float = _KILL_TIMEOUT_SECONDS) -> None:
    """
    Terminate a process and all of its descendants.

    Sends SIGTERM to the process group (POSIX) and to every process of the tree, then
    SIGKILLs whatever is still alive after the timeout. The group is signalled even
    when the root has already exited, so orphaned children are not left behind.

    Args:
        pid: Root process id, also the process group id on POSIX
        timeout: Seconds to wait before force killing
    """
    if os.name != "nt":
        try:
            os.killpg(pid, signal.SIGTERM)
        except (ProcessLookupError, PermissionError) as e:
            logger.debug(f"Process group {pid} not signalled: {e}")

    procs = {proc.pid: proc for proc in process_group_members(pid)}
    try:
        root = psutil.Process(pid)
        for proc in root.children(recursive=True) + [root]:
            procs.setdefault(proc.pid, proc)
    except psutil.NoSuchProcess:
        logger.debug(f"Process {pid} already gone")

    if not procs:
        return

    procs = list(procs.values())
    for proc in procs:
        try:
            proc.terminate()
        except psutil.NoSuchProcess:
            pass

    _, alive = psutil.wait_procs(procs, timeout=timeout)
    for proc in alive:
        logger.warning(f"Force killing server process {proc.pid}")
        try:
            proc.kill()
        except psutil.NoSuchProcess:
            pass


class ServerHandle:
    """The spawned server process. Killed at most once."""

    def __init__(self, process: asyncio.subprocess.Process):
        self.process = process
        self.killed = False

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> Optional[int]:
        return self.process.returncode

    def kill(self) -> None:
        """Kill the server process tree; errors are logged, not raised."""
        if self.killed:
            return
        self.killed = True

        logger.info(f"Killing server process tree (pid: {self.pid})")
        try:
            kill_process_tree(self.pid)
        except Exception as e:
            logger.error(f"Error when killing server process tree (pid: {self.pid}): {e}")


class ServerSupervisor:
    """
    Launches the editor server and waits for it to report its address.

    All resources it creates (data directory, process, output readers) are handed to
    the lifecycle manager for teardown.
    """

    def __init__(self, config: DotMap, lifecycle: Lifecycle):
        """
        Args:
            config: Harness configuration (browser, debug, server_path, server_ready_timeout)
            lifecycle: Lifecycle manager receiving the cleanup actions
        """
        self.config = config
        self.lifecycle = lifecycle
        self.handle: Optional[ServerHandle] = None
        self.data_dir: Optional[str] = None
        self._ready: Optional[asyncio.Future] = None
        self._readers: List[asyncio.Task] = []

    def server_path(self) -> str:
        """Server distribution from the config or VSCODE_REMOTE_SERVER_PATH."""
        server_path = self.config.server_path or os.environ.get(SERVER_PATH_ENV)
        if not server_path:
            raise ConfigurationError(f"{SERVER_PATH_ENV} env variable not provided")
        return server_path

    async def launch(self) -> Tuple[Endpoint, ServerHandle]:
        """
        Spawn the server and wait until it prints its address.

        Returns:
            The endpoint the server listens on and the handle owning its process

        Raises:
            ConfigurationError: If no server distribution is configured
            ServerLaunchError: If the server cannot be spawned, exits early or times out
        """
        if self.handle is not None:
            raise ServerLaunchError("Server already launched")

        executable = server_executable(self.server_path())

        self.data_dir = tempfile.mkdtemp(prefix="t")
        self.lifecycle.add_cleanup(
            "remove server data dir", partial(shutil.rmtree, self.data_dir, ignore_errors=True)
        )
        server_data_dir = os.path.join(self.data_dir, "d")

        env = build_server_env(self.config.browser, os.environ)
        args = build_server_args(server_data_dir)
        debug = bool(self.config.debug)

        logger.info(f"Starting server: {executable} {' '.join(args)}")
        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *args,
                env=env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE if debug else asyncio.subprocess.DEVNULL,
                start_new_session=os.name != "nt",
            )
        except OSError as e:
            raise ServerLaunchError(f"Failed to start server {executable}: {e}")

        self.handle = ServerHandle(process)
        self.lifecycle.add_cleanup("stop server output readers", self._stop_readers)
        self.lifecycle.add_cleanup("kill server", self.handle.kill, blocking=True)
        logger.info(f"Server started (pid: {process.pid})")

        self._ready = asyncio.get_running_loop().create_future()
        self._readers.append(asyncio.ensure_future(self._read_stdout(process, debug)))
        if debug:
            self._readers.append(asyncio.ensure_future(self._read_stderr(process)))

        endpoint = await self._wait_until_ready()
        logger.info(f"Server ready at {endpoint.href}")
        return endpoint, self.handle

    async def _wait_until_ready(self) -> Endpoint:
        timeout = self.config.server_ready_timeout or None
        try:
            url = await asyncio.wait_for(self._ready, timeout)
        except asyncio.TimeoutError:
            raise ServerLaunchError(
                f"Server did not print its address within {timeout} seconds"
            ) from None
        return parse_endpoint(url)

    def _set_ready(self, url: str) -> None:
        if not self._ready.done():
            self._ready.set_result(url)

    def _set_failed(self, error: Exception) -> None:
        if not self._ready.done():
            self._ready.set_exception(error)

    async def _read_stdout(self, process: asyncio.subprocess.Process, echo: bool) -> None:
        """Scan stdout for the ready line, then keep draining it until EOF."""
        pending = ""
        while True:
            chunk = await process.stdout.read(_READ_CHUNK_SIZE)
            if not chunk:
                break
            text = chunk.decode("ascii", errors="replace")
            if echo:
                logger.info(f"Server stdout: {text.rstrip()}")

            if self._ready.done():
                continue

            # Only complete lines are scanned so the url is never cut short
            *lines, pending = (pending + text).split("\n")
            for line in lines:
                url = find_ready_url(line)
                if url is not None:
                    self._set_ready(url)
                    break

        if not self._ready.done():
            url = find_ready_url(pending)
            if url is not None:
                self._set_ready(url)
                return
            returncode = await process.wait()
            self._set_failed(
                ServerLaunchError(f"Server exited with code {returncode} before it was ready")
            )

    async def _read_stderr(self, process: asyncio.subprocess.Process) -> None:
        while True:
            chunk = await process.stderr.read(_READ_CHUNK_SIZE)
            if not chunk:
                break
            logger.info(f"Server stderr: {chunk.decode('utf-8', errors='replace').rstrip()}")

    def _stop_readers(self) -> None:
        for task in self._readers:
            task.cancel()
        self._readers.clear()
