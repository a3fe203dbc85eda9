from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from common.errors import NetworkError
from common.logging_setup import get_logger


log = get_logger(__name__)


def http_get(
    session: requests.Session,
    url: str,
    *,
    timeout: float,
    params: Optional[Dict[str, Any]] = None,
) -> requests.Response:
    """
    GET through the shared session. Transport failures (DNS, refused
    connection, timeout) become NetworkError; HTTP error statuses are returned
    to the caller untouched.
    """
    try:
        return session.get(url, params=params, timeout=timeout)
    except requests.Timeout as e:
        log.warning("Upstream request timed out after %.1fs", timeout)
        raise NetworkError(f"Request timed out after {timeout:g}s") from e
    except requests.RequestException as e:
        log.warning("Upstream request failed: %s", e)
        raise NetworkError(str(e)) from e


def redact_key(url: str) -> str:
    """Strip the API key value from a URL before logging it."""
    head, sep, tail = url.partition("key=")
    if not sep:
        return url
    _, amp, rest = tail.partition("&")
    return f"{head}key=***{amp}{rest}"
