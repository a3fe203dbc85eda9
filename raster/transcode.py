from __future__ import annotations

import io

import numpy as np
from PIL import Image

from common.errors import DecodeError
from common.logging_setup import get_logger
from common.types import RasterTile
from raster.decoder import decode_raster
from solar_api.tile_store import TileStore


log = get_logger(__name__)


def encode_png(raster: RasterTile) -> bytes:
    """
    Re-encode a decoded raster as PNG.
    1 -> L, 2 -> LA, 3 -> RGB, 4 -> RGBA; wider rasters keep their first three channels.
    """
    pixels = raster.as_image_array()
    if raster.channel_count > 4:
        pixels = pixels[:, :, :3]
    if pixels.shape[2] == 1:
        pixels = pixels[:, :, 0]
    try:
        img = Image.fromarray(np.ascontiguousarray(pixels))
        buf = io.BytesIO()
        img.save(buf, format="PNG")
    except (OSError, ValueError, TypeError) as e:
        raise DecodeError(f"Failed to encode PNG: {e}") from e
    return buf.getvalue()


class ImageTranscoder:
    """Serves any upstream raster as a PNG for clients that cannot read GeoTIFF."""

    def __init__(self, tile_store: TileStore):
        self.tile_store = tile_store

    def transcode(self, tile_reference: str) -> bytes:
        tile = self.tile_store.fetch(tile_reference)
        return self.transcode_bytes(tile.content)

    def transcode_bytes(self, data: bytes) -> bytes:
        raster = decode_raster(data)
        png = encode_png(raster)
        log.info(
            "Converted %s raster %dx%d to PNG (%d bytes)",
            raster.source_format or "unknown", raster.width, raster.height, len(png),
        )
        return png
