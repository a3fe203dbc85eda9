"""
Solar proxy test suite

Structure:
- unit/: upstream adapters, tiered fetch, raster decoding, config
- integration/: HTTP routes through FastAPI's TestClient with a fake upstream session
- helpers.py: fake upstream responses and in-memory raster builders
"""
