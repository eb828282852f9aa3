"""
Image Server Module

Serves images from a source directory, resized and re-encoded on demand
according to query parameters, through a flat on-disk cache.

Features:
- Query parameters bounded and defaulted, never rejected
- Deterministic cache file names from path + resolved options
- Soft per-request transform deadline with 404 / placeholder fallback
"""

from .config import ConfigurationError, FitMode, ImageServerConfig, OutputFormat
from .options import ResolvedOptions, resolve_options
from .cache_key import derive_cache_key
from .cache_store import CacheLookup, CacheOutcome, ImageCacheStore
from .transformer import TransformOrchestrator
from .server import ImageServer
from .routes_fastapi import create_admin_router, create_router

__all__ = [
    "ConfigurationError",
    "FitMode",
    "ImageServerConfig",
    "OutputFormat",
    "ResolvedOptions",
    "resolve_options",
    "derive_cache_key",
    "CacheLookup",
    "CacheOutcome",
    "ImageCacheStore",
    "TransformOrchestrator",
    "ImageServer",
    "create_router",
    "create_admin_router",
]
