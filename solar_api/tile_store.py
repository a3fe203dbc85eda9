from __future__ import annotations

from typing import Iterable, Optional
from urllib.parse import urlparse

import requests

from common.errors import FetchError, ValidationError
from common.logging_setup import get_logger
from common.types import FetchedTile
from solar_api.transport import http_get


log = get_logger(__name__)


class TileStore:
    """
    Fetches raw raster bytes behind a data-layer tile reference.

    Tile references (rgbUrl, maskUrl, annualFluxUrl, ...) point at the Solar
    API's geoTiff:get endpoint and need the API key appended. The key is only
    ever sent to hosts in `allowed_hosts`.
    """

    def __init__(
        self,
        api_key: Optional[str],
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
        allowed_hosts: Iterable[str] = ("solar.googleapis.com",),
    ):
        if not api_key:
            raise ValueError("Google API key is required to fetch tiles")
        self.api_key = api_key
        self.session = session or requests.Session()
        self.timeout = timeout
        self.allowed_hosts = frozenset(h.lower() for h in allowed_hosts)

    def authenticated_url(self, tile_reference: Optional[str]) -> str:
        if not tile_reference or not tile_reference.strip():
            raise ValidationError("URL parameter is required")
        parts = urlparse(tile_reference.strip())
        if parts.scheme not in ("http", "https") or not parts.hostname:
            raise ValidationError("URL must be an absolute http(s) URL")
        if parts.hostname.lower() not in self.allowed_hosts:
            raise ValidationError(f"Host not allowed: {parts.hostname}")
        sep = "&" if parts.query else "?"
        return f"{tile_reference.strip()}{sep}key={self.api_key}"

    def fetch(self, tile_reference: Optional[str]) -> FetchedTile:
        """
        Raises:
            ValidationError: empty/relative reference or host not allowed
            FetchError: upstream answered non-2xx or with an empty body
            NetworkError: transport failure / timeout
        """
        url = self.authenticated_url(tile_reference)
        r = http_get(self.session, url, timeout=self.timeout)
        if not (200 <= r.status_code < 300) or not r.content:
            log.warning("Tile fetch failed: %s %s", r.status_code, r.text[:200])
            raise FetchError(f"Failed to fetch image: {r.status_code}", status=r.status_code)
        content_type = r.headers.get("content-type") or "application/octet-stream"
        return FetchedTile(content=r.content, content_type=content_type)
