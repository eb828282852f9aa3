"""
Response Policy

Chooses headers and body for the two outcomes a client can see:
the transformed image with cache headers, or 404 / fallback image without.
"""

import logging
import time
from email.utils import formatdate
from pathlib import Path
from typing import Dict, Optional

from fastapi.responses import FileResponse, PlainTextResponse, Response

from .cache_store import CacheOutcome
from .config import ImageServerConfig

logger = logging.getLogger(__name__)

# Extension to content-type mapping
MEDIA_TYPES = {
    ".webp": "image/webp",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
}


def media_type_for(path: Path) -> Optional[str]:
    """Content type for a served file; None lets FileResponse guess."""
    return MEDIA_TYPES.get(path.suffix.lower())


class ResponsePolicy:
    """
    Builds success and failure responses.

    Cache headers are computed once here, so Expires does not advance
    over the process lifetime.
    """

    def __init__(self, config: ImageServerConfig, now: Optional[float] = None):
        self.config = config
        now = time.time() if now is None else now
        self.cache_headers: Dict[str, str] = {
            "Cache-Control": f"public, max-age={config.cache_time}",
            "Expires": formatdate(now + config.cache_time, usegmt=True),
        }

    def success(self, path: Path, outcome: CacheOutcome) -> Response:
        """Serve a cache file with cache headers."""
        headers = dict(self.cache_headers)
        headers["X-Cache"] = "HIT" if outcome is CacheOutcome.HIT else "MISS"
        return FileResponse(path, media_type=media_type_for(path), headers=headers)

    def failure(self) -> Response:
        """404 or the fallback image, never with cache headers."""
        if self.config.return_404:
            return self.not_found()

        fallback = Path(self.config.default_img)
        if not fallback.is_file():
            logger.error(f"[ImageServer] Fallback image missing: {fallback}, responding 404")
            return self.not_found()
        return FileResponse(fallback, media_type=media_type_for(fallback))

    @staticmethod
    def not_found() -> Response:
        return PlainTextResponse("404", status_code=404)
