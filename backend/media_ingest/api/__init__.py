"""
D4DHub Media Ingest API Package.

Endpoints are versioned under URL prefixes:
    - v1/: ingest.py (POST /api/v1/ingest/{category})
"""
