from __future__ import annotations

"""
Google URL signing (HMAC-SHA1, web-safe base64).

Not used by the proxy routes; available for deployments whose key requires
signed requests.
"""

import base64
import hashlib
import hmac
from urllib.parse import urlparse


def _decode_secret(secret: str) -> bytes:
    # Secrets are issued web-safe; accept the standard alphabet too.
    normalized = secret.strip().replace("+", "-").replace("/", "_")
    normalized += "=" * (-len(normalized) % 4)
    return base64.urlsafe_b64decode(normalized)


def sign_url(url: str, secret: str) -> str:
    """
    Append `&signature=...` computed over the URL's path and query.

    Params:
        url: fully-qualified URL that already carries a query string (key=...)
        secret: base64 signing secret from the Cloud console
    """
    if not secret:
        raise ValueError("URL signing secret is required")
    parts = urlparse(url)
    to_sign = parts.path + (f"?{parts.query}" if parts.query else "")
    digest = hmac.new(_decode_secret(secret), to_sign.encode("utf-8"), hashlib.sha1).digest()
    signature = base64.urlsafe_b64encode(digest).decode("ascii")
    return f"{url}&signature={signature}"
