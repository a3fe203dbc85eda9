from __future__ import annotations

"""
Solar proxy HTTP API.

Keeps the Google API key server-side and hides the quality-tier fallback and
raster decoding from the browser client.

Run:
    solar-proxy                                   # uses load_settings()
    uvicorn proxy.server:create_app --factory --port 3000
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
import uvicorn
from fastapi import APIRouter, Body, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from common.config import Settings, load_settings
from common.errors import (
    ConfigurationError,
    NetworkError,
    SolarProxyError,
    UpstreamError,
    ValidationError,
)
from common.logging_setup import get_logger, setup_logging
from common.types import Coordinate, now_iso
from raster.decoder import LayerKind, RasterDecoder
from raster.transcode import ImageTranscoder
from solar_api.geocode import AddressResolver
from solar_api.solar import ImageryFetcher, SolarInsightsFetcher
from solar_api.tile_store import TileStore


log = get_logger(__name__)


@dataclass
class Services:
    """Collaborators built once per app from Settings; None when no API key is configured."""
    settings: Settings
    resolver: Optional[AddressResolver] = None
    insights: Optional[SolarInsightsFetcher] = None
    imagery: Optional[ImageryFetcher] = None
    tiles: Optional[TileStore] = None
    decoder: Optional[RasterDecoder] = None
    transcoder: Optional[ImageTranscoder] = None
    init_error: Optional[str] = None

    def require(self, name: str) -> Any:
        svc = getattr(self, name)
        if svc is None:
            raise ConfigurationError(self.init_error or "Google API key is not configured")
        return svc


def build_services(settings: Settings, session: Optional[requests.Session] = None) -> Services:
    if not settings.has_api_key:
        return Services(settings=settings, init_error="Google API key is not configured")

    session = session or requests.Session()
    key, timeout = settings.google_api_key, settings.request_timeout_s
    tiles = TileStore(key, session=session, timeout=timeout, allowed_hosts=settings.allowed_tile_hosts)
    return Services(
        settings=settings,
        resolver=AddressResolver(key, session=session, timeout=timeout),
        insights=SolarInsightsFetcher(key, session=session, timeout=timeout),
        imagery=ImageryFetcher(key, session=session, timeout=timeout, radius_m=settings.imagery_radius_m),
        tiles=tiles,
        decoder=RasterDecoder(tiles),
        transcoder=ImageTranscoder(tiles),
    )


# ----------------------------
# Response helpers
# ----------------------------
def _fail(status_code: int, message: object) -> JSONResponse:
    return JSONResponse({"success": False, "error": str(message)}, status_code=status_code)


def _error(e: SolarProxyError) -> JSONResponse:
    return JSONResponse({"error": str(e)}, status_code=e.http_status)


def _services(request: Request) -> Services:
    return request.app.state.services


def _require_url(url: Optional[str]) -> str:
    if not url or not url.strip():
        raise ValidationError("URL parameter is required")
    return url


router = APIRouter(prefix="/api")


@router.post("/geocode")
def geocode(request: Request, body: Optional[Dict[str, Any]] = Body(None)):
    address = (body or {}).get("address")
    if not isinstance(address, str) or not address.strip():
        return _fail(400, "Address is required")
    try:
        result = _services(request).require("resolver").resolve(address)
    except ConfigurationError as e:
        return _fail(e.http_status, e)
    except (ValidationError, UpstreamError) as e:
        return _fail(400, e)
    except NetworkError as e:
        log.error("Geocoding error: %s", e)
        return _fail(500, f"Network error: {e}")
    return {"success": True, **result.to_dict()}


@router.post("/solar/building-insights")
def building_insights(request: Request, body: Optional[Dict[str, Any]] = Body(None)):
    try:
        coordinate = Coordinate.from_payload(body)
    except ValidationError as e:
        return _fail(400, e)
    try:
        result = _services(request).require("insights").fetch(coordinate)
    except ConfigurationError as e:
        return _fail(e.http_status, e)
    except SolarProxyError as e:
        log.error("Solar API error: %s", e)
        return _fail(500, e)
    return {"success": True, **result.to_dict()}


@router.post("/solar/imagery")
def imagery(request: Request, body: Optional[Dict[str, Any]] = Body(None)):
    try:
        coordinate = Coordinate.from_payload(body)
    except ValidationError as e:
        return _fail(400, e)
    try:
        result = _services(request).require("imagery").fetch(coordinate)
    except ConfigurationError as e:
        return _fail(e.http_status, e)
    if not result.available:
        return {"success": False, "data": None}
    return {"success": True, "quality": result.quality.value, "data": result.payload}


@router.get("/proxy-image")
def proxy_image(request: Request, url: Optional[str] = Query(None)):
    """Stream upstream image bytes with the upstream Content-Type."""
    try:
        tile = _services(request).require("tiles").fetch(_require_url(url))
    except SolarProxyError as e:
        log.warning("Image proxy error: %s", e)
        return _error(e)
    return Response(content=tile.content, media_type=tile.content_type, headers={"Cache-Control": "no-store"})


@router.get("/process-geotiff")
def process_geotiff(request: Request, url: Optional[str] = Query(None), layer: Optional[str] = Query(None)):
    """
    Decode a data-layer GeoTIFF into per-pixel arrays.

    layer=rgb -> {type: "rgb", data: {red, green, blue}}
    otherwise -> {type: "single_band", stats: {min, max, mean}, data: [...]}
    """
    try:
        decoded = _services(request).require("decoder").decode(_require_url(url), LayerKind.from_layer(layer))
    except SolarProxyError as e:
        log.warning("GeoTIFF processing error: %s", e)
        return _error(e)
    return {"success": True, **decoded.to_dict()}


@router.get("/convert-image")
def convert_image(request: Request, url: Optional[str] = Query(None)):
    try:
        png = _services(request).require("transcoder").transcode(_require_url(url))
    except SolarProxyError as e:
        log.warning("Image conversion error: %s", e)
        return _error(e)
    return Response(content=png, media_type="image/png", headers={"Cache-Control": "no-store"})


@router.get("/health")
def health(request: Request):
    settings = _services(request).settings
    return {
        "status": "healthy",
        "timestamp": now_iso(),
        "env": {
            "hasApiKey": settings.has_api_key,
            "hasSigningSecret": settings.has_signing_secret,
        },
    }


def create_app(settings: Optional[Settings] = None, session: Optional[requests.Session] = None) -> FastAPI:
    """
    Build the API. `settings` defaults to load_settings(); `session` is shared
    by every upstream client (inject a fake one in tests).
    """
    settings = settings or load_settings()
    setup_logging(settings.log_level, force=True)

    app = FastAPI(title="Solar Proxy API", version="1.0.0")
    app.state.services = build_services(settings, session)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def _access_log(request: Request, call_next):
        t0 = time.perf_counter()
        response = await call_next(request)
        log.info(
            "%s %s -> %s",
            request.method,
            request.url.path,
            response.status_code,
            extra={"ctx": {"ms": int((time.perf_counter() - t0) * 1000)}},
        )
        return response

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        # body that is not JSON, or JSON that is not an object
        errors = exc.errors()
        kind = errors[0].get("type") if errors else None
        message = "Request body must be valid JSON" if kind == "json_invalid" else "Request body must be a JSON object"
        log.warning("Rejected request on %s %s: %s", request.method, request.url.path, message)
        return JSONResponse({"success": False, "error": message}, status_code=ValidationError.http_status)

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        log.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse({"error": str(exc)}, status_code=500)

    app.include_router(router)

    log.info(
        "Solar proxy configured",
        extra={"ctx": {"google_api_key": settings.has_api_key, "url_signing_secret": settings.has_signing_secret}},
    )
    if not settings.has_api_key:
        log.warning("GOOGLE_API_KEY is missing; upstream routes will answer 503")
    return app


def main() -> None:
    settings = load_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


# -------- local dev entrypoint --------
if __name__ == "__main__":
    main()
