"""Pull the stored Salesforce session out of an inbound request's cookies.

Setting and clearing these cookies belongs to the web layer; this module only
reads them.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Optional, Union
from urllib.parse import unquote

from .exceptions import AuthenticationMissing
from .models import ConnectionDescriptor

_logger = logging.getLogger(__name__)

ACCESS_TOKEN_COOKIE = "sf_access_token"
INSTANCE_URL_COOKIE = "sf_instance_url"
REFRESH_TOKEN_COOKIE = "sf_refresh_token"
USER_INFO_COOKIE = "sf_user_info"

CookieSource = Union[str, Mapping[str, str], None]


def parse_cookies(source: CookieSource) -> Dict[str, str]:
    """Normalise a raw ``Cookie`` header or an existing mapping to a dict."""
    if not source:
        return {}
    if not isinstance(source, str):
        return {k: v for k, v in source.items() if v is not None}

    # Browsers send whatever other apps stored on the domain, so a junk cookie
    # must only drop itself. First occurrence of a name wins.
    jar: Dict[str, str] = {}
    for piece in source.split(";"):
        name, sep, value = piece.partition("=")
        name = name.strip()
        if not sep or not name or name in jar:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] == '"':
            value = value[1:-1]
        # values are percent-encoded by the login callback
        jar[name] = unquote(value)
    return jar


def get_salesforce_connection(cookies: CookieSource) -> Optional[ConnectionDescriptor]:
    """Return the caller's connection, or None when they are not logged in."""
    jar = parse_cookies(cookies)
    access_token = jar.get(ACCESS_TOKEN_COOKIE)
    instance_url = jar.get(INSTANCE_URL_COOKIE)
    if not access_token or not instance_url:
        return None
    return ConnectionDescriptor(
        access_token=access_token,
        instance_url=instance_url,
        refresh_token=jar.get(REFRESH_TOKEN_COOKIE) or None,
    )


def require_connection(cookies: CookieSource) -> ConnectionDescriptor:
    """Like get_salesforce_connection() but raises AuthenticationMissing."""
    conn = get_salesforce_connection(cookies)
    if conn is None:
        jar = parse_cookies(cookies)
        missing = [c for c in (ACCESS_TOKEN_COOKIE, INSTANCE_URL_COOKIE) if not jar.get(c)]
        raise AuthenticationMissing(missing)
    return conn


def get_session_user(cookies: CookieSource) -> Optional[Dict[str, Any]]:
    """Describe the logged-in user from the ``sf_user_info`` cookie.

    Returns None when the session is incomplete or the stored JSON is invalid.
    """
    jar = parse_cookies(cookies)
    if not (jar.get(ACCESS_TOKEN_COOKIE) and jar.get(INSTANCE_URL_COOKIE)):
        return None
    raw = jar.get(USER_INFO_COOKIE)
    if not raw:
        return None
    try:
        user = json.loads(raw)
    except ValueError:
        _logger.debug("sf_user_info cookie is not valid JSON")
        return None
    return {
        "user": user,
        "instanceUrl": jar[INSTANCE_URL_COOKIE],
        "isAuthenticated": True,
    }
