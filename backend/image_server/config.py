"""
Image Server Configuration

Process-wide settings for the on-demand image server.
Immutable after startup; every request reads the same instance.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class ConfigurationError(Exception):
    """Raised when the server cannot start with the given settings."""


# ============================================
# Enums
# ============================================

class OutputFormat(str, Enum):
    """Output formats the codec can encode"""
    WEBP = "webp"
    JPG = "jpg"
    JPEG = "jpeg"
    PNG = "png"
    GIF = "gif"

    @classmethod
    def parse(cls, value) -> Optional["OutputFormat"]:
        """Map a wire value to a format, or None if it is not one."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class FitMode(str, Enum):
    """How source dimensions map onto the target box"""
    COVER = "cover"        # fill the box, crop overflow
    CONTAIN = "contain"    # fit inside the box, no crop
    FILL = "fill"          # stretch to the box

    @classmethod
    def parse(cls, value) -> Optional["FitMode"]:
        """Map a wire value to a fit mode, or None if it is not one."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value)
        except ValueError:
            return None


ALL_FORMATS: Tuple[OutputFormat, ...] = tuple(OutputFormat)


# ============================================
# Config
# ============================================

@dataclass(frozen=True)
class ImageServerConfig:
    """Configuration for serving, transforming and caching images."""
    # Directories
    img_path: str = "./uploads"         # Source image directory
    cache_dir: str = "./cache"          # Transformed image cache

    # Client-facing cache lifetime
    cache_time: int = 7 * 24 * 60 * 60  # Seconds (7 days)

    # Transform bounds and defaults
    max_width: int = 1920
    max_height: int = 1080
    quality: int = 80                   # Default quality (1-99)
    allowed_formats: Tuple[OutputFormat, ...] = field(default=ALL_FORMATS)
    default_format: OutputFormat = OutputFormat.WEBP
    resize_mode: FitMode = FitMode.COVER

    # Failure handling
    timeout: float = 5.0                # Transform deadline in seconds
    default_img: str = "./uploads/placeholder-image.png"
    return_404: bool = False

    # Routing
    mount_path: str = "/img"

    def __post_init__(self):
        if self.max_width < 1 or self.max_height < 1:
            raise ConfigurationError("max_width and max_height must be positive")
        if not 1 <= self.quality <= 99:
            raise ConfigurationError(f"quality must be between 1 and 99, got {self.quality}")
        if self.cache_time < 0:
            raise ConfigurationError("cache_time must not be negative")
        if self.timeout <= 0:
            raise ConfigurationError("timeout must be positive")
        if not self.allowed_formats:
            raise ConfigurationError("allowed_formats must not be empty")
        if self.default_format not in self.allowed_formats:
            raise ConfigurationError(
                f"default_format {self.default_format.value} is not in allowed_formats"
            )

    @classmethod
    def from_env(cls) -> "ImageServerConfig":
        """Build a config from IMAGE_SERVER_* environment variables."""
        defaults = cls()

        formats_raw = os.getenv("IMAGE_SERVER_ALLOWED_FORMATS")
        if formats_raw:
            allowed = tuple(
                _parse_enum(OutputFormat, name.strip(), "IMAGE_SERVER_ALLOWED_FORMATS")
                for name in formats_raw.split(",")
                if name.strip()
            )
        else:
            allowed = defaults.allowed_formats

        try:
            return cls(
                img_path=os.getenv("IMAGE_SERVER_IMG_PATH", defaults.img_path),
                cache_dir=os.getenv("IMAGE_SERVER_CACHE_DIR", defaults.cache_dir),
                cache_time=int(os.getenv("IMAGE_SERVER_CACHE_TIME", str(defaults.cache_time))),
                max_width=int(os.getenv("IMAGE_SERVER_MAX_WIDTH", str(defaults.max_width))),
                max_height=int(os.getenv("IMAGE_SERVER_MAX_HEIGHT", str(defaults.max_height))),
                quality=int(os.getenv("IMAGE_SERVER_QUALITY", str(defaults.quality))),
                allowed_formats=allowed,
                default_format=_parse_enum(
                    OutputFormat,
                    os.getenv("IMAGE_SERVER_DEFAULT_FORMAT", defaults.default_format.value),
                    "IMAGE_SERVER_DEFAULT_FORMAT",
                ),
                resize_mode=_parse_enum(
                    FitMode,
                    os.getenv("IMAGE_SERVER_RESIZE_MODE", defaults.resize_mode.value),
                    "IMAGE_SERVER_RESIZE_MODE",
                ),
                timeout=float(os.getenv("IMAGE_SERVER_TIMEOUT", str(defaults.timeout))),
                default_img=os.getenv("IMAGE_SERVER_DEFAULT_IMG", defaults.default_img),
                return_404=_parse_bool(os.getenv("IMAGE_SERVER_RETURN_404"), defaults.return_404),
                mount_path=os.getenv("IMAGE_SERVER_MOUNT_PATH", defaults.mount_path),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}") from e


def _parse_enum(enum_cls, value: str, setting: str):
    parsed = enum_cls.parse(value)
    if parsed is None:
        choices = ", ".join(member.value for member in enum_cls)
        raise ConfigurationError(f"{setting}: '{value}' is not one of {choices}")
    return parsed


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")
