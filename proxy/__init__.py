"""
Solar proxy HTTP surface

- POST /api/geocode, /api/solar/building-insights, /api/solar/imagery
- GET  /api/proxy-image, /api/process-geotiff, /api/convert-image, /api/health
"""
