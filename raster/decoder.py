from __future__ import annotations

"""
Raster decoding for Solar API data layers.

Data-layer tiles are GeoTIFFs: `rgb` has three (or more) bands, while `mask`,
`dsm`, `annualFlux` and `monthlyFlux` carry one scalar per pixel. Every tile is
decoded into a RasterTile (flat, pixel-interleaved uint8 samples) and then
split into per-channel sequences.

Pixel values 0 and 255 mark "no measurement" in these layers; they are kept in
the returned values and left out of the statistics.

Samples are uint8 end to end. Float layers (`dsm`, `annualFlux`,
`monthlyFlux`) are clamped to 0..255 (NaN -> 0) at decode time, before any
statistics are computed: a flux layer whose values are all above 255 comes
back as 255s and its stats fall back to min 0, max 255, mean 0.
"""

import io
import warnings
from enum import Enum
from typing import Any, Iterable, Optional

import numpy as np
from PIL import Image
from rasterio.errors import NotGeoreferencedWarning, RasterioError
from rasterio.io import MemoryFile

from common.errors import DecodeError, UnsupportedFormat
from common.logging_setup import get_logger
from common.types import BandStats, DecodedLayer, RasterTile, RGBLayer, SingleBandLayer
from solar_api.tile_store import TileStore


log = get_logger(__name__)

# classic TIFF and BigTIFF, both byte orders
TIFF_MAGIC = (b"II*\x00", b"MM\x00*", b"II+\x00", b"MM\x00+")
SENTINELS = (0.0, 255.0)


class LayerKind(str, Enum):
    RGB = "rgb"
    SINGLE_BAND = "single_band"

    @classmethod
    def from_layer(cls, layer: Optional[str]) -> "LayerKind":
        """`rgb` (the default) is the only colour layer; mask/dsm/flux layers are single-band."""
        name = (layer or cls.RGB.value).strip().lower()
        return cls.RGB if name == cls.RGB.value else cls.SINGLE_BAND


# ----------------------------
# Bytes -> RasterTile
# ----------------------------
def _to_uint8(arr: np.ndarray) -> np.ndarray:
    if arr.dtype == np.uint8:
        return arr
    out = np.nan_to_num(arr.astype(np.float64), nan=0.0, posinf=255.0, neginf=0.0)
    return np.clip(out, 0, 255).astype(np.uint8)


def _decode_tiff(data: bytes) -> RasterTile:
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", NotGeoreferencedWarning)
            with MemoryFile(data) as memfile, memfile.open() as ds:
                bands = ds.read()  # (count, H, W)
    except RasterioError as e:
        raise DecodeError(f"Failed to decode GeoTIFF: {e}") from e

    pixels = np.moveaxis(_to_uint8(bands), 0, -1)  # (H, W, count)
    h, w, c = pixels.shape
    return RasterTile(samples=pixels.reshape(-1), width=w, height=h, channel_count=c, source_format="tiff")


def _decode_image(data: bytes) -> RasterTile:
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            fmt = (img.format or "").lower()
            if img.mode == "P":
                img = img.convert("RGBA" if "transparency" in img.info else "RGB")
            elif img.mode == "1":
                img = img.convert("L")
            elif img.mode in ("CMYK", "YCbCr", "LAB", "HSV"):
                img = img.convert("RGB")
            pixels = np.asarray(img)
    except (OSError, ValueError) as e:
        raise DecodeError(f"Failed to decode image: {e}") from e

    pixels = _to_uint8(pixels)
    if pixels.ndim == 2:
        pixels = pixels[:, :, np.newaxis]
    h, w, c = pixels.shape
    return RasterTile(samples=pixels.reshape(-1), width=w, height=h, channel_count=c, source_format=fmt)


def decode_raster(data: bytes) -> RasterTile:
    """
    Decode raw tile bytes. TIFFs go through rasterio; anything else
    (PNG, JPEG, ...) through Pillow.

    Raises:
        DecodeError: empty buffer or unparseable bytes
    """
    if not data:
        raise DecodeError("Empty raster buffer")
    tile = _decode_tiff(data) if data[:4] in TIFF_MAGIC else _decode_image(data)
    log.debug(
        "Decoded raster %dx%d, %d channel(s), format=%s",
        tile.width, tile.height, tile.channel_count, tile.source_format,
    )
    return tile


# ----------------------------
# RasterTile -> DecodedLayer
# ----------------------------
def _number_or_nan(v: Any) -> float:
    if isinstance(v, (bool, np.bool_)):
        return float("nan")
    if isinstance(v, (int, float, np.integer, np.floating)):
        return float(v)
    return float("nan")


def compute_band_stats(values: Iterable[Any]) -> BandStats:
    """
    min/max/mean over `values`, ignoring sentinels (0, 255) and non-numeric
    or non-finite entries. An empty remainder yields min=0, max=255, mean=0.
    """
    arr = np.asarray(values if isinstance(values, np.ndarray) else list(values))
    if arr.dtype.kind in "iuf":
        arr = arr.astype(np.float64).reshape(-1)
    else:
        arr = np.array([_number_or_nan(v) for v in arr.reshape(-1)], dtype=np.float64)

    kept = arr[np.isfinite(arr) & ~np.isin(arr, SENTINELS)]
    if kept.size == 0:
        return BandStats(min=0.0, max=255.0, mean=0.0)
    return BandStats(min=float(kept.min()), max=float(kept.max()), mean=float(kept.mean()))


def extract_rgb(raster: RasterTile) -> RGBLayer:
    if raster.channel_count < 3:
        raise UnsupportedFormat(
            f"RGB layer requires at least 3 channels, got {raster.channel_count}"
        )
    return RGBLayer(
        width=raster.width,
        height=raster.height,
        red=raster.channel(0),
        green=raster.channel(1),
        blue=raster.channel(2),
    )


def extract_single_band(raster: RasterTile) -> SingleBandLayer:
    # TIFF samples stay interleaved per pixel even with one logical band;
    # other formats are read sample by sample.
    stride = raster.channel_count if raster.is_tiled_scientific else 1
    values = raster.channel(0, stride=stride)
    return SingleBandLayer(
        width=raster.width,
        height=raster.height,
        stats=compute_band_stats(values),
        values=values,
    )


class RasterDecoder:
    def __init__(self, tile_store: TileStore):
        self.tile_store = tile_store

    def decode(self, tile_reference: str, layer_kind: LayerKind) -> DecodedLayer:
        """
        Fetch a tile and split it into per-channel arrays.

        Raises:
            ValidationError, FetchError, NetworkError: from the tile fetch
            DecodeError: bytes are not a readable raster
            UnsupportedFormat: RGB requested from a raster with < 3 channels
        """
        tile = self.tile_store.fetch(tile_reference)
        return self.decode_bytes(tile.content, layer_kind)

    def decode_bytes(self, data: bytes, layer_kind: LayerKind) -> DecodedLayer:
        raster = decode_raster(data)
        if layer_kind is LayerKind.RGB:
            return extract_rgb(raster)
        return extract_single_band(raster)
