"""
Image Server Application

Builds the FastAPI app serving transformed images at the configured
mount path, plus operational endpoints under /api/image-server.

Run:
    cd backend
    python main.py
"""

import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request

from image_server import (
    ImageServer,
    ImageServerConfig,
    TransformOrchestrator,
    create_admin_router,
    create_router,
)

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(
    config: Optional[ImageServerConfig] = None,
    orchestrator: Optional[TransformOrchestrator] = None,
) -> FastAPI:
    """
    Create the application.

    Args:
        config: Server configuration; read from IMAGE_SERVER_* env vars if omitted
        orchestrator: Transform orchestrator; one with the Pillow codec if omitted

    Raises:
        ConfigurationError: If directories or the fallback image are unusable.
    """
    config = config or ImageServerConfig.from_env()
    server = ImageServer(config, orchestrator)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await server.shutdown()

    app = FastAPI(title="Image Server", lifespan=lifespan)
    app.state.image_server = server

    @app.middleware("http")
    async def log_request_time(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.debug(
            f"[ImageServer] {request.method} {request.url.path} "
            f"-> {response.status_code} ({elapsed_ms:.1f}ms)"
        )
        return response

    app.include_router(create_admin_router(server))
    app.include_router(create_router(server))

    return app


if __name__ == "__main__":
    import uvicorn

    configure_logging()
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run(create_app(), host="0.0.0.0", port=port)
