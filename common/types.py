from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import numpy as np

from common.errors import ValidationError


IsoTime = str


def now_iso() -> IsoTime:
    """UTC timestamp in RFC3339/ISO-8601 with 'Z' suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _as_number(value: Any, name: str) -> float:
    if value is None:
        raise ValidationError(f"{name} is required")
    # bool is an int subclass; "true" is not a latitude
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number") from None


@dataclass(frozen=True, slots=True)
class Coordinate:
    """
    WGS84 point handed to the solar fetchers.

    Attributes:
        latitude: degrees in [-90, 90]
        longitude: degrees in [-180, 180]
    """
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.latitude) and math.isfinite(self.longitude)):
            raise ValidationError("Latitude and longitude must be finite numbers")
        if not (-90.0 <= self.latitude <= 90.0) or not (-180.0 <= self.longitude <= 180.0):
            raise ValidationError("lat/lng out of range")

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> "Coordinate":
        """Build from a client JSON body `{lat, lng}`. Zero is a valid value; None is missing."""
        payload = payload or {}
        if payload.get("lat") is None or payload.get("lng") is None:
            raise ValidationError("Latitude and longitude are required")
        return cls(_as_number(payload["lat"], "lat"), _as_number(payload["lng"], "lng"))


class QualityTier(str, Enum):
    """Upstream imagery quality levels, best first."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    BASE = "BASE"

    @classmethod
    def ordered(cls) -> Tuple["QualityTier", ...]:
        return (cls.HIGH, cls.MEDIUM, cls.BASE)

    @property
    def description(self) -> str:
        return _TIER_DESCRIPTIONS[self]

    @property
    def is_last(self) -> bool:
        return self is QualityTier.BASE

    def extra_params(self) -> Dict[str, str]:
        # BASE is only served with the expanded-coverage experiment enabled
        if self is QualityTier.BASE:
            return {"experiments": "EXPANDED_COVERAGE"}
        return {}


_TIER_DESCRIPTIONS = {
    QualityTier.HIGH: "0.1m/pixel aerial",
    QualityTier.MEDIUM: "0.25m/pixel aerial",
    QualityTier.BASE: "0.25m/pixel satellite (experimental)",
}


@dataclass(slots=True)
class FetchAttempt:
    """
    One request against one quality tier. Never persisted.

    Attributes:
        tier: tier that was requested
        status: HTTP status code
        body: raw response text
        payload: parsed JSON body (None until parsed)
    """
    tier: QualityTier
    status: int
    body: str
    payload: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def error_message(self) -> Optional[str]:
        if not isinstance(self.payload, dict):
            return None
        err = self.payload.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        return None

    @property
    def is_not_found(self) -> bool:
        msg = self.error_message
        return bool(msg) and "not found" in msg.lower()


@dataclass(frozen=True, slots=True)
class TieredResult:
    tier: QualityTier
    payload: Dict[str, Any]


@dataclass(frozen=True, slots=True)
class GeocodeResult:
    coordinate: Coordinate
    formatted_address: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lat": self.coordinate.latitude,
            "lng": self.coordinate.longitude,
            "formattedAddress": self.formatted_address,
        }


@dataclass(frozen=True, slots=True)
class SolarInsightsResult:
    quality: QualityTier
    quality_description: str
    payload: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "quality": self.quality.value,
            "qualityInfo": self.quality_description,
            "data": self.payload,
        }


@dataclass(frozen=True, slots=True)
class ImageryResult:
    """Data-layer references, or the `available=False` sentinel when no tier had data."""
    available: bool
    quality: Optional[QualityTier] = None
    payload: Optional[Dict[str, Any]] = None

    @classmethod
    def unavailable(cls) -> "ImageryResult":
        return cls(available=False)


@dataclass(frozen=True, slots=True)
class FetchedTile:
    content: bytes
    content_type: str


@dataclass(slots=True)
class RasterTile:
    """
    Decoded raster held for the duration of one request.

    Attributes:
        samples: flat uint8 array, pixel-interleaved, row-major
                 (len == width * height * channel_count)
        width, height: dimensions in pixels
        channel_count: samples per pixel
        source_format: lower-case container format ("tiff", "png", "jpeg", ...)
    """
    samples: np.ndarray = field(repr=False)
    width: int
    height: int
    channel_count: int
    source_format: str

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0 or self.channel_count <= 0:
            raise ValueError("width, height and channel_count must be > 0")
        self.samples = np.ascontiguousarray(self.samples, dtype=np.uint8).reshape(-1)
        expected = self.width * self.height * self.channel_count
        if self.samples.size != expected:
            raise ValueError(f"expected {expected} samples, got {self.samples.size}")

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    @property
    def is_tiled_scientific(self) -> bool:
        return self.source_format == "tiff"

    def channel(self, index: int, stride: Optional[int] = None) -> np.ndarray:
        """Samples of one channel, taken every `stride` samples (default: channel_count)."""
        step = self.channel_count if stride is None else stride
        if not (0 <= index < step):
            raise IndexError(f"channel {index} out of range for stride {step}")
        return self.samples[index::step]

    def as_image_array(self) -> np.ndarray:
        """(H, W, C) view of the samples."""
        return self.samples.reshape(self.height, self.width, self.channel_count)


@dataclass(frozen=True, slots=True)
class BandStats:
    min: float
    max: float
    mean: float

    def to_dict(self) -> Dict[str, float]:
        return {"min": self.min, "max": self.max, "mean": self.mean}


@dataclass(slots=True)
class RGBLayer:
    width: int
    height: int
    red: np.ndarray = field(repr=False)
    green: np.ndarray = field(repr=False)
    blue: np.ndarray = field(repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "rgb",
            "width": self.width,
            "height": self.height,
            "data": {
                "red": self.red.tolist(),
                "green": self.green.tolist(),
                "blue": self.blue.tolist(),
            },
        }


@dataclass(slots=True)
class SingleBandLayer:
    width: int
    height: int
    stats: BandStats
    values: np.ndarray = field(repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "single_band",
            "width": self.width,
            "height": self.height,
            "stats": self.stats.to_dict(),
            "data": self.values.tolist(),
        }


DecodedLayer = RGBLayer | SingleBandLayer
