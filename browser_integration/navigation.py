#   Copyright (c) European Space Agency, 2025.
#
#   This file is subject to the terms and conditions defined in file 'LICENCE.txt', which
#   is part of this source code package. No part of the package, including
#   this file, may be copied, modified, propagated, or distributed except according to
#   the terms contained in the file 'LICENCE.txt'.
"""
Navigation url for the test run.

The page is opened on the server with either a folder or a workspace file, and a
payload telling the in-page test runner where the extension under test and its
tests live. Extension locations use the vscode-remote scheme so the page loads them
through the server.
"""

import json
import os
import re
from dataclasses import dataclass
from typing import Dict, List, Mapping, Tuple
from urllib.parse import quote, urlencode, urlsplit, urlunsplit

from dotmap import DotMap

from .endpoint import Endpoint

REMOTE_SCHEME = "vscode-remote"
WORKSPACE_EXTENSION = ".code-workspace"

DEFAULT_PAYLOAD_FLAGS: Tuple[Tuple[str, str], ...] = (
    ("enableProposedApi", ""),
    ("skipWelcome", "true"),
)

_DRIVE_LETTER = re.compile(r"^/([A-Za-z]):")


def file_uri_path(path: str) -> str:
    """
    Absolute path in the form used by file uris.

    "/home/me/ws" stays as is, "C:\\ws" becomes "/c:/ws".
    """
    uri_path = os.path.abspath(path).replace("\\", "/")
    if not uri_path.startswith("/"):
        uri_path = "/" + uri_path
    return _DRIVE_LETTER.sub(lambda m: f"/{m.group(1).lower()}:", uri_path)


def remote_uri(host: str, path: str) -> str:
    """vscode-remote uri for a path on the server host."""
    return f"{REMOTE_SCHEME}://{host}{file_uri_path(path)}"


def is_workspace_file(path: str) -> bool:
    """True for multi-root workspace descriptors (*.code-workspace)."""
    return os.path.splitext(path)[1] == WORKSPACE_EXTENSION


@dataclass(frozen=True)
class NavigationPayload:
    """Parameters embedded in the navigation url."""

    workspace_path: str
    extension_development_uri: str
    extension_tests_uri: str
    flags: Tuple[Tuple[str, str], ...] = DEFAULT_PAYLOAD_FLAGS

    @classmethod
    def from_config(cls, config: DotMap, endpoint: Endpoint) -> "NavigationPayload":
        """
        Build the payload from the configured paths.

        Args:
            config: Harness configuration with the three test paths and payload_flags
            endpoint: Server endpoint whose host is used for the remote uris

        Returns:
            NavigationPayload for the run
        """
        return cls(
            workspace_path=file_uri_path(config.workspace_path),
            extension_development_uri=remote_uri(endpoint.host, config.extension_development_path),
            extension_tests_uri=remote_uri(endpoint.host, config.extension_tests_path),
            flags=merge_flags(config.payload_flags or {}),
        )

    @property
    def opens_workspace(self) -> bool:
        return is_workspace_file(self.workspace_path)

    def to_pairs(self) -> List[List[str]]:
        pairs = [
            ["extensionDevelopmentPath", self.extension_development_uri],
            ["extensionTestsPath", self.extension_tests_uri],
        ]
        pairs.extend([key, value] for key, value in self.flags)
        return pairs

    def to_json(self) -> str:
        return json.dumps(self.to_pairs(), separators=(",", ":"))


def merge_flags(extra: Mapping[str, object]) -> Tuple[Tuple[str, str], ...]:
    """Default payload flags updated with extra ones; values become strings."""
    flags: Dict[str, str] = dict(DEFAULT_PAYLOAD_FLAGS)
    for key, value in extra.items():
        if isinstance(value, bool):
            value = "true" if value else "false"
        flags[str(key)] = str(value)
    return tuple(flags.items())


def build_navigation_url(endpoint: Endpoint, payload: NavigationPayload) -> str:
    """
    Url the page navigates to.

    Exactly one of "workspace" or "folder" is set, depending on whether the workspace
    path is a *.code-workspace file.

    Args:
        endpoint: Server endpoint; its query (e.g. a connection token) and fragment are kept
        payload: Navigation payload

    Returns:
        The navigation url
    """
    target = "workspace" if payload.opens_workspace else "folder"
    query = urlencode(
        [(target, payload.workspace_path), ("payload", payload.to_json())],
        quote_via=quote,
        safe="/:",
    )
    parts = urlsplit(endpoint.href)
    if parts.query:
        query = f"{parts.query}&{query}"
    return urlunsplit(parts._replace(query=query))
