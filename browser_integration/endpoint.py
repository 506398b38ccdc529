#   Copyright (c) European Space Agency, 2025.
#
#   This file is subject to the terms and conditions defined in file 'LICENCE.txt', which
#   is part of this source code package. No part of the package, including
#   this file, may be copied, modified, propagated, or distributed except according to
#   the terms contained in the file 'LICENCE.txt'.
"""Network endpoint of the server under test."""

from dataclasses import dataclass
from urllib.parse import urlsplit

from .errors import ConfigurationError


@dataclass(frozen=True)
class Endpoint:
    """
    Resolved address of the server under test.

    Attributes:
        href: Full url as printed by the server or given on the command line
        host: hostname[:port], used for vscode-remote:// resource uris
        scheme: Url scheme (http or https)
        query: Query string of href without the leading '?', may be empty
    """

    href: str
    host: str
    scheme: str
    query: str

    @property
    def has_query(self) -> bool:
        return "?" in self.href.split("#", 1)[0]


def parse_endpoint(text: str) -> Endpoint:
    """
    Parse a server url into an Endpoint.

    Args:
        text: Url such as "http://127.0.0.1:9888/?tkn=abc"

    Returns:
        Endpoint for the url

    Raises:
        ConfigurationError: If the url has no network location
    """
    href = text.strip()
    parts = urlsplit(href)
    if not parts.scheme or not parts.netloc:
        raise ConfigurationError(f"Invalid server endpoint: {text!r}")

    # Credentials are not part of the host used for resource uris
    host = parts.netloc.rsplit("@", 1)[-1]
    return Endpoint(href=href, host=host, scheme=parts.scheme, query=parts.query)
