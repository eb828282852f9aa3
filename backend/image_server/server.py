"""
Image Server

Per-request pipeline:
    query -> resolve_options -> cache store (lookup / transform) -> response policy

Nothing request-specific is stored on the server; every value flows
through local variables so concurrent requests cannot see each other's state.
"""

import logging
from typing import Any, Mapping, Optional

from fastapi.responses import Response

from .bootstrap import validate_config
from .cache_store import ImageCacheStore
from .config import ImageServerConfig
from .options import resolve_options
from .response_policy import ResponsePolicy
from .transformer import TransformOrchestrator

logger = logging.getLogger(__name__)


class ImageServer:
    """
    Serves transformed images from a source directory through a disk cache.

    Usage:
        server = ImageServer(ImageServerConfig(img_path="./uploads", cache_dir="./cache"))
        app.include_router(create_router(server))
    """

    def __init__(
        self,
        config: ImageServerConfig,
        orchestrator: Optional[TransformOrchestrator] = None,
    ):
        validate_config(config)
        self.config = config
        self.orchestrator = orchestrator or TransformOrchestrator()
        self.store = ImageCacheStore(config, self.orchestrator)
        self.policy = ResponsePolicy(config)

    async def handle(self, request_path: str, query: Mapping[str, Any]) -> Response:
        """
        Serve request_path (relative to the source directory).

        Always returns a response; errors end in the failure response.
        """
        try:
            options = resolve_options(query, self.config)
            lookup = await self.store.resolve(request_path, options)
        except Exception as e:
            logger.error(f"[ImageServer] Unexpected error for {request_path}: {e}", exc_info=True)
            return self.policy.failure()

        if not lookup.outcome.servable:
            return self.policy.failure()

        return self.policy.success(lookup.cache_path, lookup.outcome)

    async def shutdown(self) -> None:
        """Let abandoned transforms finish writing before exit."""
        pending = len(self.orchestrator.pending_jobs)
        if pending:
            logger.info(f"[ImageServer] Waiting for {pending} pending transforms")
        await self.orchestrator.drain()
