#   Copyright (c) European Space Agency, 2025.
#
#   This file is subject to the terms and conditions defined in file 'LICENCE.txt', which
#   is part of this source code package. No part of the package, including
#   this file, may be copied, modified, propagated, or distributed except according to
#   the terms contained in the file 'LICENCE.txt'.
"""
Authentication cookie decoding.

Some hosted servers (e.g. gitpod) require an authentication cookie. It is passed as a
base64 encoded JSON object, either with --authCookie or in the AUTH_COOKIE environment
variable, and is added to the browser context before any page is created.
"""

import base64
import binascii
import json
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Optional, Union

from loguru import logger

from .errors import ConfigurationError

AUTH_COOKIE_ENV = "AUTH_COOKIE"


@dataclass(frozen=True)
class AuthCookie:
    """A cookie in the shape Playwright's BrowserContext.add_cookies expects."""

    name: str
    value: str
    url: Optional[str] = None
    domain: Optional[str] = None
    path: Optional[str] = None
    expires: Optional[Union[int, float]] = None
    http_only: Optional[bool] = None
    secure: Optional[bool] = None
    same_site: Optional[str] = None

    def to_playwright(self) -> Dict[str, Any]:
        """Return the cookie as a dict for add_cookies, leaving out unset fields."""
        fields = {
            "name": self.name,
            "value": self.value,
            "url": self.url,
            "domain": self.domain,
            "path": self.path,
            "expires": self.expires,
            "httpOnly": self.http_only,
            "secure": self.secure,
            "sameSite": self.same_site,
        }
        return {key: value for key, value in fields.items() if value is not None}


def expires_to_epoch(expires: str) -> int:
    """
    Convert a cookie expiry date string to epoch seconds.

    Accepts ISO 8601 ("2026-10-21T07:28:00Z") and RFC 1123 ("Wed, 21 Oct 2026 07:28:00 GMT")
    dates. Dates without a timezone are taken as UTC.

    Args:
        expires: Date string

    Returns:
        Seconds since the epoch, rounded to the nearest second

    Raises:
        ConfigurationError: If the string is not a recognised date
    """
    text = expires.strip()
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = parsedate_to_datetime(text)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Invalid auth cookie expiry date: {expires!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return round(parsed.timestamp())


def capitalize_same_site(same_site: str) -> str:
    """Upper-case the first letter of a sameSite value ("lax" -> "Lax")."""
    return same_site[:1].upper() + same_site[1:]


def normalize_cookie(raw: Dict[str, Any]) -> AuthCookie:
    """
    Build an AuthCookie from a decoded JSON object.

    A string "expires" becomes epoch seconds and a string "sameSite" gets its first
    letter capitalised. Other fields are passed through unchanged.

    Args:
        raw: Cookie object as decoded from JSON

    Returns:
        The normalised cookie

    Raises:
        ConfigurationError: If the object is not a cookie
    """
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Auth cookie must be a JSON object, got {type(raw).__name__}")
    if "name" not in raw or "value" not in raw:
        raise ConfigurationError("Auth cookie must have a 'name' and a 'value'")

    expires = raw.get("expires")
    if isinstance(expires, str):
        expires = expires_to_epoch(expires)

    same_site = raw.get("sameSite")
    if isinstance(same_site, str):
        same_site = capitalize_same_site(same_site)

    return AuthCookie(
        name=raw["name"],
        value=raw["value"],
        url=raw.get("url"),
        domain=raw.get("domain"),
        path=raw.get("path"),
        expires=expires,
        http_only=raw.get("httpOnly"),
        secure=raw.get("secure"),
        same_site=same_site,
    )


def decode_auth_cookie(encoded: str) -> AuthCookie:
    """Decode a base64 encoded JSON cookie."""
    try:
        decoded = base64.b64decode(encoded).decode("utf-8")
        raw = json.loads(decoded)
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Auth cookie is not base64 encoded JSON: {e}")
    return normalize_cookie(raw)


def get_auth_cookie(flag_value: Optional[str] = None) -> Optional[AuthCookie]:
    """
    Return the auth cookie from the command line flag or the AUTH_COOKIE variable.

    Args:
        flag_value: Value of --authCookie, takes precedence over the environment

    Returns:
        The decoded cookie, or None when neither source is set
    """
    encoded = flag_value or os.environ.get(AUTH_COOKIE_ENV)
    if not encoded:
        return None

    cookie = decode_auth_cookie(encoded)
    logger.debug(f"Using auth cookie '{cookie.name}' for domain {cookie.domain or cookie.url}")
    return cookie
