"""
Unit tests for the Solar API adapters (building insights, data layers)
"""

import os
import sys
from urllib.parse import parse_qs, urlparse

import pytest
import requests

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.errors import NoDataAvailable, UpstreamError
from common.types import Coordinate, ImageryResult, QualityTier
from solar_api.solar import ImageryFetcher, SolarInsightsFetcher
from tests.helpers import fake_session, make_response, not_found, quota_exceeded


def _query(url):
    return {k: v[0] for k, v in parse_qs(urlparse(url).query).items()}


class TestSolarInsightsFetcher:
    """Test cases for SolarInsightsFetcher"""

    def test_init_with_api_key(self):
        """Test initialization with API key"""
        fetcher = SolarInsightsFetcher(api_key="test_api_key")
        assert fetcher.api_key == "test_api_key"
        assert fetcher.base_url == "https://solar.googleapis.com/v1/buildingInsights:findClosest"

    def test_init_no_api_key(self):
        """Test initialization without API key raises error"""
        with pytest.raises(ValueError, match="Google API key is required"):
            SolarInsightsFetcher(api_key=None)

    def test_build_url_high(self):
        fetcher = SolarInsightsFetcher(api_key="k")
        q = _query(fetcher.build_url(Coordinate(37.5, -122.25), QualityTier.HIGH))
        assert q == {
            "location.latitude": "37.5",
            "location.longitude": "-122.25",
            "requiredQuality": "HIGH",
            "key": "k",
        }

    def test_build_url_base_enables_expanded_coverage(self):
        fetcher = SolarInsightsFetcher(api_key="k")
        q = _query(fetcher.build_url(Coordinate(1.0, 2.0), QualityTier.BASE))
        assert q["requiredQuality"] == "BASE"
        assert q["experiments"] == "EXPANDED_COVERAGE"

    def test_fetch_high(self, coordinate):
        """Test successful insights retrieval at HIGH quality"""
        payload = {"name": "buildings/ChIJ", "solarPotential": {"maxArrayPanelsCount": 42}}
        fetcher = SolarInsightsFetcher(api_key="k", session=fake_session(make_response(200, payload)))

        result = fetcher.fetch(coordinate)

        assert result.quality is QualityTier.HIGH
        assert result.quality_description == "0.1m/pixel aerial"
        assert result.to_dict() == {"quality": "HIGH", "qualityInfo": "0.1m/pixel aerial", "data": payload}

    def test_fetch_medium_description(self, coordinate):
        session = fake_session(not_found(), make_response(200, {}))
        result = SolarInsightsFetcher(api_key="k", session=session).fetch(coordinate)
        assert result.quality_description == "0.25m/pixel aerial"

    def test_fetch_falls_back_to_base(self, coordinate):
        """HIGH and MEDIUM not found; BASE is requested with the experiment flag"""
        session = fake_session(not_found(), not_found(), make_response(200, {"imageryQuality": "BASE"}))

        result = SolarInsightsFetcher(api_key="k", session=session).fetch(coordinate)

        assert result.quality is QualityTier.BASE
        assert result.quality_description == "0.25m/pixel satellite (experimental)"
        high_q = _query(session.get.call_args_list[0][0][0])
        base_q = _query(session.get.call_args_list[2][0][0])
        assert "experiments" not in high_q
        assert base_q["experiments"] == "EXPANDED_COVERAGE"

    def test_fetch_no_data(self, coordinate):
        session = fake_session(not_found(), not_found(), not_found())
        with pytest.raises(NoDataAvailable) as exc:
            SolarInsightsFetcher(api_key="k", session=session).fetch(coordinate)
        assert str(exc.value) == "No solar data available for this location"

    def test_fetch_quota_propagates(self, coordinate):
        session = fake_session(quota_exceeded())
        with pytest.raises(UpstreamError, match="Quota exceeded"):
            SolarInsightsFetcher(api_key="k", session=session).fetch(coordinate)
        assert session.get.call_count == 1


class TestImageryFetcher:
    """Test cases for ImageryFetcher"""

    def test_build_url_has_radius(self):
        fetcher = ImageryFetcher(api_key="k")
        url = fetcher.build_url(Coordinate(10.0, 20.0), QualityTier.MEDIUM)
        assert url.startswith("https://solar.googleapis.com/v1/dataLayers:get?")
        q = _query(url)
        assert q["radiusMeters"] == "100"
        assert q["requiredQuality"] == "MEDIUM"

    def test_custom_radius(self):
        fetcher = ImageryFetcher(api_key="k", radius_m=50)
        assert _query(fetcher.build_url(Coordinate(0.0, 0.0), QualityTier.HIGH))["radiusMeters"] == "50"

    def test_fetch_success(self, coordinate):
        layers = {"rgbUrl": "https://solar.googleapis.com/v1/geoTiff:get?id=rgb", "imageryQuality": "MEDIUM"}
        session = fake_session(not_found(), make_response(200, layers))

        result = ImageryFetcher(api_key="k", session=session).fetch(coordinate)

        assert result == ImageryResult(available=True, quality=QualityTier.MEDIUM, payload=layers)

    @pytest.mark.parametrize(
        "responses",
        [
            [not_found(), not_found(), not_found()],
            [quota_exceeded()],
            [requests.ConnectionError("boom")],
            [make_response(200, text="<<not json>>")],
            [not_found(), not_found(), make_response(500, {"error": {"message": "Internal error"}})],
        ],
    )
    def test_fetch_never_raises(self, coordinate, responses):
        """Missing imagery is a normal outcome, reported as available=False"""
        result = ImageryFetcher(api_key="k", session=fake_session(*responses)).fetch(coordinate)
        assert result == ImageryResult.unavailable()
        assert result.available is False
