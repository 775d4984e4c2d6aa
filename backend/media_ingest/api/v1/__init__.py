"""
D4DHub Media Ingest API v1 Router Aggregator.

Combines the v1 endpoint routers into a single APIRouter that the application
mounts under the /api/v1 prefix.

Router Structure:
    - /ingest: Media upload validation and processing
"""

import logging

from fastapi import APIRouter

from media_ingest.api.v1.ingest import router as ingest_router


logger = logging.getLogger(__name__)

api_router = APIRouter()

api_router.include_router(
    ingest_router,
    prefix="/ingest",
    tags=["ingest"],
)

__all__ = ["api_router"]
