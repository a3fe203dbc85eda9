from __future__ import annotations

"""
Google Solar API adapters built on the quality-tiered fetcher.

  SolarInsightsFetcher  buildingInsights:findClosest, failures propagate
  ImageryFetcher        dataLayers:get, failures become ImageryResult(available=False)

Usage:
    insights = SolarInsightsFetcher(api_key="...").fetch(Coordinate(37.42, -122.08))
    insights.quality, insights.quality_description, insights.payload["solarPotential"]

    layers = ImageryFetcher(api_key="...").fetch(Coordinate(37.42, -122.08))
    if layers.available:
        layers.payload["rgbUrl"], layers.payload["annualFluxUrl"]
"""

from typing import Dict, Optional
from urllib.parse import urlencode

import requests

from common.types import Coordinate, ImageryResult, QualityTier, SolarInsightsResult
from solar_api.tiered_fetch import FailurePolicy, QualityTieredFetcher


SOLAR_BASE_URL = "https://solar.googleapis.com/v1"
DEFAULT_RADIUS_M = 100


class _SolarEndpoint:
    """Shared URL construction for the Solar API endpoints."""

    path = ""

    def __init__(self, api_key: Optional[str], session: Optional[requests.Session], timeout: float):
        if not api_key:
            raise ValueError("Google API key is required for the Solar API")
        self.api_key = api_key
        self.base_url = f"{SOLAR_BASE_URL}/{self.path}"
        self.session = session or requests.Session()
        self.timeout = timeout

    def extra_params(self) -> Dict[str, str]:
        return {}

    def build_url(self, coordinate: Coordinate, tier: QualityTier) -> str:
        """Construct the request URL for one tier (no request performed)."""
        params = {
            "location.latitude": coordinate.latitude,
            "location.longitude": coordinate.longitude,
        }
        params.update(self.extra_params())
        params["requiredQuality"] = tier.value
        params.update(tier.extra_params())
        params["key"] = self.api_key
        return f"{self.base_url}?{urlencode(params)}"


class SolarInsightsFetcher(_SolarEndpoint):
    path = "buildingInsights:findClosest"

    def __init__(
        self,
        api_key: Optional[str],
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
    ):
        super().__init__(api_key, session, timeout)
        self._fetcher = QualityTieredFetcher(
            self.build_url,
            session=self.session,
            policy=FailurePolicy.PROPAGATE,
            timeout=timeout,
            label="Building Insights",
        )

    def fetch(self, coordinate: Coordinate) -> SolarInsightsResult:
        """
        Raises:
            NoDataAvailable: no tier has data for the location
            UpstreamError: quota, malformed request, non-JSON body
            NetworkError: transport failure / timeout
        """
        found = self._fetcher.fetch_best_available(coordinate)
        return SolarInsightsResult(
            quality=found.tier,
            quality_description=found.tier.description,
            payload=found.payload,
        )


class ImageryFetcher(_SolarEndpoint):
    path = "dataLayers:get"

    def __init__(
        self,
        api_key: Optional[str],
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
        radius_m: int = DEFAULT_RADIUS_M,
    ):
        super().__init__(api_key, session, timeout)
        self.radius_m = int(radius_m)
        self._fetcher = QualityTieredFetcher(
            self.build_url,
            session=self.session,
            policy=FailurePolicy.SWALLOW,
            timeout=timeout,
            label="Data Layers",
        )

    def extra_params(self) -> Dict[str, str]:
        return {"radiusMeters": str(self.radius_m)}

    def fetch(self, coordinate: Coordinate) -> ImageryResult:
        """Never raises for upstream outcomes; missing imagery is ImageryResult(available=False)."""
        found = self._fetcher.fetch_best_available(coordinate)
        if found is None:
            return ImageryResult.unavailable()
        return ImageryResult(available=True, quality=found.tier, payload=found.payload)
