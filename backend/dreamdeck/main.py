"""DreamDeck — FastAPI application entry point.

Mounts the image and metrics routes, the progress WebSocket, and CORS.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dreamdeck.api.images import close_http_client
from dreamdeck.api.router import api_router
from dreamdeck.api.ws import router as ws_router
from dreamdeck.config import get_settings

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: log config on startup, close the shared HTTP client on shutdown."""
    logger.info("%s starting up...", settings.APP_NAME)
    logger.info("FLUX endpoint: %s/%s", settings.FLUX_API_BASE, settings.FLUX_MODEL)
    logger.info("FLUX API key configured: %s", bool(settings.FLUX_API_KEY))
    logger.info("Image proxy hosts: %s", ", ".join(settings.image_proxy_allowed_hosts))

    yield

    await close_http_client()
    logger.info("%s shut down", settings.APP_NAME)


app = FastAPI(
    title="DreamDeck API",
    description="Tarot card image generation for the Oneiroi dream journal",
    version="0.1.0",
    lifespan=lifespan,
    redirect_slashes=False,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)
app.include_router(ws_router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"service": settings.APP_NAME, "status": "running"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "flux_endpoint": settings.FLUX_API_BASE,
        "flux_key_configured": bool(settings.FLUX_API_KEY),
    }
