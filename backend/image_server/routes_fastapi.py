"""
Image Server API Routes

Provides endpoints for:
- Serving transformed images under the mount path (e.g. /img/photos/cat.jpg?width=400)
- Health check and cache statistics
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import Response
from pydantic import BaseModel

from .server import ImageServer

logger = logging.getLogger(__name__)


# ============================================
# Response Models
# ============================================

class CacheStats(BaseModel):
    """Cache directory statistics."""
    total_entries: int
    total_size_bytes: int
    total_size_mb: float
    cache_ttl_hours: int
    pending_transforms: int


class StatsResponse(BaseModel):
    success: bool
    stats: CacheStats


class HealthResponse(BaseModel):
    status: str
    service: str
    cache_stats: CacheStats


# ============================================
# Routers
# ============================================

def create_router(server: ImageServer) -> APIRouter:
    """Router serving images at the configured mount path."""
    router = APIRouter(prefix=server.config.mount_path.rstrip("/"), tags=["Image Server"])

    @router.get("/{image_path:path}")
    async def serve_image(image_path: str, request: Request) -> Response:
        """
        Serve an image, transformed per query parameters.

        Query parameters (all optional): width, height, quality, ext, resizeMode.
        Invalid values fall back to configured defaults.

        Example:
            GET /img/photos/cat.jpg?width=400&height=300&ext=webp&resizeMode=contain
        """
        return await server.handle(f"/{image_path}", request.query_params)

    return router


def create_admin_router(server: ImageServer) -> APIRouter:
    """Router for operational endpoints."""
    router = APIRouter(prefix="/api/image-server", tags=["Image Server Admin"])

    @router.get("/stats", response_model=StatsResponse)
    async def get_cache_stats():
        """Get cache statistics."""
        return StatsResponse(success=True, stats=CacheStats(**server.store.get_stats()))

    @router.get("/health", response_model=HealthResponse)
    async def health_check():
        """Health check endpoint."""
        return HealthResponse(
            status="healthy",
            service="image-server",
            cache_stats=CacheStats(**server.store.get_stats()),
        )

    return router
