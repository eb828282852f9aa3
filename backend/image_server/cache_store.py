"""
Image Cache Store

Flat file cache of transformed images.

Cache structure:
cache_dir/
├── width-1920-height-1080-quality-80-ext-webp-resizemode-cover-photo.webp
└── ...

A file's existence is the cache hit; there is no index or metadata file.
Entries are never deleted here; expiry is only advertised to clients.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from .cache_key import derive_cache_key
from .config import ImageServerConfig
from .options import ResolvedOptions
from .transformer import TransformOrchestrator

logger = logging.getLogger(__name__)


class CacheOutcome(str, Enum):
    """Result of resolving a request against the cache"""
    HIT = "hit"
    MISS = "miss"                          # Freshly transformed
    SOURCE_NOT_FOUND = "source_not_found"
    TRANSFORM_FAILED = "transform_failed"

    @property
    def servable(self) -> bool:
        return self in (CacheOutcome.HIT, CacheOutcome.MISS)


@dataclass(frozen=True)
class CacheLookup:
    """Request-scoped lookup result."""
    outcome: CacheOutcome
    cache_key: str
    cache_path: Optional[Path] = None


class ImageCacheStore:
    """
    Looks up transformed images and fills the cache on a miss.

    Holds only read-only configuration; every lookup keeps its paths local.
    """

    def __init__(self, config: ImageServerConfig, orchestrator: TransformOrchestrator):
        self.config = config
        self.orchestrator = orchestrator
        self.img_dir = Path(config.img_path).resolve()
        self.cache_dir = Path(config.cache_dir).resolve()

    def cache_path_for(self, cache_key: str) -> Path:
        """Get the file path for a cache key."""
        return self.cache_dir / cache_key

    def source_path_for(self, request_path: str) -> Optional[Path]:
        """
        Map a request path onto the source directory.

        Returns None if the path escapes the source directory.
        """
        candidate = (self.img_dir / request_path.lstrip("/")).resolve()
        if candidate != self.img_dir and self.img_dir not in candidate.parents:
            return None
        return candidate

    async def resolve(self, request_path: str, options: ResolvedOptions) -> CacheLookup:
        """
        Resolve a request to a servable cache file.

        1. Serve the cache file if it exists
        2. Otherwise check the source exists
        3. Transform the source into the cache file within the deadline

        Returns:
            CacheLookup; cache_path is set for HIT and MISS only.
        """
        cache_key = derive_cache_key(request_path, options)
        cache_path = self.cache_path_for(cache_key)

        if cache_path.is_file():
            logger.debug(f"[ImageCache] Cache hit: {cache_key}")
            return CacheLookup(CacheOutcome.HIT, cache_key, cache_path)

        source_path = self.source_path_for(request_path)
        if source_path is None or not source_path.is_file():
            logger.info(f"[ImageCache] Source not found: {request_path}")
            return CacheLookup(CacheOutcome.SOURCE_NOT_FOUND, cache_key)

        logger.info(f"[ImageCache] Cache miss, transforming: {request_path} -> {cache_key}")
        ok = await self.orchestrator.transform(
            source_path, options, cache_path, deadline=self.config.timeout
        )
        if not ok:
            return CacheLookup(CacheOutcome.TRANSFORM_FAILED, cache_key)

        return CacheLookup(CacheOutcome.MISS, cache_key, cache_path)

    def get_stats(self) -> dict:
        """Get cache statistics."""
        entries = [
            p for p in self.cache_dir.iterdir()
            if p.is_file() and not p.name.startswith(".")
        ]
        total_size = sum(p.stat().st_size for p in entries)
        return {
            "total_entries": len(entries),
            "total_size_bytes": total_size,
            "total_size_mb": round(total_size / (1024 * 1024), 2),
            "cache_ttl_hours": self.config.cache_time // 3600,
            "pending_transforms": len(self.orchestrator.pending_jobs),
        }
