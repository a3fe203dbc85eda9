"""
Upstream adapters for the Google Maps Platform.

- geocode:      address -> Coordinate (Geocoding API)
- tiered_fetch: HIGH -> MEDIUM -> BASE fallback driver with a terminal-failure policy
- solar:        building insights and data layers on top of the tiered driver
- tile_store:   authenticated raw tile byte fetch
- signing:      HMAC-SHA1 URL signing helper
"""
from .geocode import AddressResolver
from .solar import ImageryFetcher, SolarInsightsFetcher
from .tiered_fetch import FailurePolicy, QualityTieredFetcher
from .tile_store import TileStore

__all__ = [
    "AddressResolver",
    "FailurePolicy",
    "ImageryFetcher",
    "QualityTieredFetcher",
    "SolarInsightsFetcher",
    "TileStore",
]
