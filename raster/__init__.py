"""
Raster post-processing for Solar API data layers.

- decoder:   tile bytes -> RasterTile -> RGB channels or single-band values + stats
- transcode: tile bytes -> PNG
"""
from .decoder import LayerKind, RasterDecoder, compute_band_stats, decode_raster
from .transcode import ImageTranscoder, encode_png

__all__ = [
    "ImageTranscoder",
    "LayerKind",
    "RasterDecoder",
    "compute_band_stats",
    "decode_raster",
    "encode_png",
]
