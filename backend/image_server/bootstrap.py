"""One-time startup checks. A server that fails them never serves."""

import logging
import os

from .config import ConfigurationError, ImageServerConfig

logger = logging.getLogger(__name__)


def validate_writable_dir(path: str) -> None:
    """Ensure path exists, is a directory and is writable."""
    if not os.path.exists(path):
        raise ConfigurationError(f"{path} does not exist")

    if not os.path.isdir(path):
        raise ConfigurationError(f"{path} is not a directory")

    if not os.access(path, os.W_OK):
        raise ConfigurationError(f"{path} is not writable")


def validate_fallback_image(config: ImageServerConfig) -> None:
    """The fallback image is required unless failures return 404."""
    if config.return_404:
        return
    if not os.path.isfile(config.default_img):
        raise ConfigurationError(f"{config.default_img} does not exist")


def validate_config(config: ImageServerConfig) -> None:
    validate_writable_dir(config.cache_dir)
    validate_writable_dir(config.img_path)
    validate_fallback_image(config)
    logger.info(
        f"[ImageServer] Serving {config.img_path} at {config.mount_path}, "
        f"cache: {config.cache_dir}"
    )
