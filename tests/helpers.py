"""
Fakes shared by the unit and integration tests.
"""

import io
import json
from typing import Dict, Optional
from unittest.mock import Mock

import numpy as np
from PIL import Image
from rasterio.io import MemoryFile


def make_response(
    status_code: int = 200,
    json_body: Optional[object] = None,
    text: Optional[str] = None,
    content: Optional[bytes] = None,
    headers: Optional[Dict[str, str]] = None,
) -> Mock:
    """A stand-in for requests.Response with the attributes the adapters read."""
    if text is None:
        text = json.dumps(json_body) if json_body is not None else ""
    r = Mock()
    r.status_code = status_code
    r.text = text
    r.content = content if content is not None else text.encode("utf-8")
    r.headers = headers if headers is not None else {"content-type": "application/json"}
    return r


def not_found() -> Mock:
    return make_response(
        404,
        {"error": {"code": 404, "message": "Requested entity was not found.", "status": "NOT_FOUND"}},
    )


def quota_exceeded() -> Mock:
    return make_response(
        429,
        {"error": {"code": 429, "message": "Quota exceeded for quota metric 'Requests'.", "status": "RESOURCE_EXHAUSTED"}},
    )


def fake_session(*responses) -> Mock:
    """Session whose get() returns (or raises) each item in turn."""
    session = Mock()
    session.get.side_effect = list(responses)
    return session


def make_tiff(bands: np.ndarray) -> bytes:
    """Encode a (count, H, W) array as an (ungeoreferenced) GeoTIFF."""
    count, height, width = bands.shape
    with MemoryFile() as memfile:
        with memfile.open(
            driver="GTiff",
            width=width,
            height=height,
            count=count,
            dtype=bands.dtype.name,
        ) as ds:
            ds.write(bands)
        return memfile.read()


def make_image(pixels: np.ndarray, fmt: str = "PNG") -> bytes:
    """Encode an (H, W) or (H, W, C) uint8 array with Pillow."""
    buf = io.BytesIO()
    Image.fromarray(pixels).save(buf, format=fmt)
    return buf.getvalue()
