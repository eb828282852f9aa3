"""
Option Resolver

Turns untrusted query parameters into a fully populated, bounded set of
transform options. Invalid input never fails a request; it falls back to
the configured default for that field.
"""

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

from .config import FitMode, ImageServerConfig, OutputFormat


@dataclass(frozen=True)
class ResolvedOptions:
    """Per-request transform parameters, every field populated."""
    width: int
    height: int
    quality: int
    ext: OutputFormat
    resize_mode: FitMode


# Order used when building cache keys: (wire name, attribute)
CACHE_KEY_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("width", "width"),
    ("height", "height"),
    ("quality", "quality"),
    ("ext", "ext"),
    ("resizeMode", "resize_mode"),
)


def _to_positive_int(value: Any) -> Optional[int]:
    """Parse a wire value as a number, truncated; None if not a number >= 1."""
    if value is None or isinstance(value, bool):
        return None
    # float() also takes digit separators and non-ASCII digits; the wire does not
    if isinstance(value, str) and ("_" in value or not value.isascii()):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    number = int(number)
    return number if number >= 1 else None


def _bounded(value: Any, upper: int, default: int) -> int:
    number = _to_positive_int(value)
    if number is None or number >= upper:
        return default
    return number


def resolve_options(query: Mapping[str, Any], config: ImageServerConfig) -> ResolvedOptions:
    """
    Resolve query parameters against the server config.

    Args:
        query: Request query parameters (width, height, quality, ext, resizeMode)
        config: Server configuration supplying bounds and defaults

    Returns:
        ResolvedOptions with every field set.
    """
    ext = OutputFormat.parse(query.get("ext"))
    if ext is None or ext not in config.allowed_formats:
        ext = config.default_format

    resize_mode = FitMode.parse(query.get("resizeMode"))
    if resize_mode is None:
        resize_mode = config.resize_mode

    return ResolvedOptions(
        width=_bounded(query.get("width"), config.max_width, config.max_width),
        height=_bounded(query.get("height"), config.max_height, config.max_height),
        quality=_bounded(query.get("quality"), 100, config.quality),
        ext=ext,
        resize_mode=resize_mode,
    )
