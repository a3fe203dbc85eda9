from __future__ import annotations

"""
Error taxonomy shared by the upstream clients, the raster pipeline and the server.

Every error carries the HTTP status the server answers with when the error
reaches a route unhandled.
"""

from typing import Optional


class SolarProxyError(Exception):
    """Base exception for all proxy errors."""

    http_status: int = 500


class ValidationError(SolarProxyError):
    """
    Caller input is missing or malformed.
    Raised before any outbound request is made.
    """

    http_status = 400


class ConfigurationError(SolarProxyError):
    """A required setting (e.g. the Google API key) is not configured."""

    http_status = 503


class NetworkError(SolarProxyError):
    """
    Transport-level failure reaching an upstream (connection error, timeout).
    Distinct from UpstreamError so callers can pick their own retry policy.
    """

    http_status = 502


class UpstreamError(SolarProxyError):
    """
    Upstream was reachable but answered with a semantic failure
    (non-OK geocoding status, zero results, quota exceeded, bad JSON...).
    """

    http_status = 502

    def __init__(self, message: str, *, status: Optional[object] = None):
        super().__init__(message)
        self.status = status


class FetchError(UpstreamError):
    """Raw tile bytes could not be fetched (non-2xx from the tile store)."""


class NoDataAvailable(SolarProxyError):
    """Every quality tier reported that no data exists for the location."""

    http_status = 404

    def __init__(self, message: str = "No solar data available for this location"):
        super().__init__(message)


class UnsupportedFormat(SolarProxyError):
    """Raster has too few channels for the requested layer kind."""

    http_status = 422


class DecodeError(SolarProxyError):
    """Raster bytes could not be parsed or re-encoded."""

    http_status = 422
