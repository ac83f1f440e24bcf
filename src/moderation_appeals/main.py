# src/moderation_appeals/main.py
"""Main entry point for the moderation appeals service."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from moderation_appeals import __version__
from moderation_appeals.api.v1 import appeals_router, queue_router, system_router
from moderation_appeals.core.settings import settings
from moderation_appeals.services.events import get_event_publisher

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Appeals against moderation actions: filing, review and resolution",
    version=__version__,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(appeals_router, prefix="/api/v1")
app.include_router(queue_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    publisher = get_event_publisher()
    if publisher.enabled:
        logger.info("Publishing events to %s as %s", publisher.config.base_url, publisher.config.source)
    else:
        logger.info("Event publication disabled")


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await get_event_publisher().close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": __version__,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("moderation_appeals.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
