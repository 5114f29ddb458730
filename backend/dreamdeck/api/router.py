"""Master API router — mounts all sub-routers."""
from __future__ import annotations

from fastapi import APIRouter

from dreamdeck.api.images import router as images_router
from dreamdeck.api.metrics import router as metrics_router

api_router = APIRouter(prefix="/api", redirect_slashes=False)

api_router.include_router(images_router, tags=["Images"])
api_router.include_router(metrics_router, prefix="/metrics", tags=["Metrics"])
