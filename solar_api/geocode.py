from __future__ import annotations

"""
Google Geocoding adapter: free-text address -> Coordinate.

Usage:
    resolver = AddressResolver(api_key="...")
    result = resolver.resolve("1600 Amphitheatre Pkwy, Mountain View")
    # result.coordinate.latitude, result.coordinate.longitude, result.formatted_address
"""

import json
from typing import Dict, Optional
from urllib.parse import quote, urlencode

import requests

from common.errors import UpstreamError, ValidationError
from common.logging_setup import get_logger
from common.types import Coordinate, GeocodeResult
from solar_api.transport import http_get


log = get_logger(__name__)

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


class AddressResolver:
    def __init__(
        self,
        api_key: Optional[str],
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
    ):
        """
        Params:
            api_key: Google API key with the Geocoding API enabled
            session: optional requests.Session for connection reuse
            timeout: per-request timeout in seconds
        """
        if not api_key:
            raise ValueError("Google API key is required for geocoding")
        self.api_key = api_key
        self.base_url = GEOCODE_URL
        self.session = session or requests.Session()
        self.timeout = timeout

    def build_url(self, address: str) -> str:
        # encodeURIComponent-style: spaces as %20, '/' escaped
        params = {"address": address, "key": self.api_key}
        return f"{self.base_url}?{urlencode(params, quote_via=quote, safe='')}"

    def resolve(self, address: Optional[str]) -> GeocodeResult:
        """
        Geocode `address` and return the first result.

        Raises:
            ValidationError: address missing or blank (no request is made)
            UpstreamError: status != OK, zero results, a malformed result
                or a non-JSON body
            NetworkError: transport failure / timeout
        """
        if not isinstance(address, str) or not address.strip():
            raise ValidationError("Address is required")

        r = http_get(self.session, self.build_url(address), timeout=self.timeout)
        try:
            data: Dict = json.loads(r.text)
        except ValueError:
            log.error("Geocoding returned non-JSON body (HTTP %s): %s", r.status_code, r.text[:200])
            raise UpstreamError(f"Geocoding failed: HTTP {r.status_code}", status=r.status_code) from None

        status = data.get("status")
        results = data.get("results") or []
        if status != "OK" or not results:
            log.info("Geocoding failed", extra={"ctx": {"status": status, "results": len(results)}})
            raise UpstreamError(f"Geocoding failed: {status}", status=status)

        first = results[0]
        try:
            loc = first["geometry"]["location"]
            lat, lng = float(loc["lat"]), float(loc["lng"])
        except (KeyError, TypeError, ValueError):
            log.error("Geocoding returned a malformed result: %s", str(first)[:200])
            raise UpstreamError("Geocoding failed: malformed result", status=status) from None
        return GeocodeResult(
            coordinate=Coordinate(lat, lng),
            formatted_address=first.get("formatted_address", ""),
        )
