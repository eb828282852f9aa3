"""
Image Codec

Pillow implementation of the pixel-level transform:
decode -> resize (centered, never enlarged) -> encode with quality.
Pure bytes in, bytes out; no filesystem access.
"""

import logging
from io import BytesIO
from typing import Tuple

from PIL import Image, ImageOps

from .config import FitMode, OutputFormat
from .options import ResolvedOptions

logger = logging.getLogger(__name__)

# Pillow format names
FORMAT_MAP = {
    OutputFormat.WEBP: "WEBP",
    OutputFormat.JPEG: "JPEG",
    OutputFormat.JPG: "JPEG",
    OutputFormat.PNG: "PNG",
    OutputFormat.GIF: "GIF",
}

LOSSY_FORMATS = ("JPEG", "WEBP")


class CodecError(Exception):
    """Raised when an image cannot be decoded, resized or encoded."""


def _target_box(size: Tuple[int, int], options: ResolvedOptions) -> Tuple[int, int]:
    """Requested box, clamped so no side exceeds the source."""
    width, height = size
    return min(options.width, width), min(options.height, height)


def _resize(img: Image.Image, options: ResolvedOptions) -> Image.Image:
    box = _target_box(img.size, options)
    mode = options.resize_mode

    if mode is FitMode.COVER:
        return ImageOps.fit(img, box, Image.Resampling.LANCZOS, centering=(0.5, 0.5))

    if mode is FitMode.CONTAIN:
        width, height = img.size
        ratio = min(options.width / width, options.height / height, 1.0)
        new_size = (max(1, round(width * ratio)), max(1, round(height * ratio)))
        if new_size == img.size:
            return img
        return img.resize(new_size, Image.Resampling.LANCZOS)

    if mode is FitMode.FILL:
        if box == img.size:
            return img
        return img.resize(box, Image.Resampling.LANCZOS)

    raise CodecError(f"Unsupported fit mode: {mode}")


def _prepare_mode(img: Image.Image, save_format: str) -> Image.Image:
    """Convert color mode so the target encoder accepts it."""
    has_alpha = img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info)

    if save_format == "JPEG":
        if has_alpha:
            # White background for transparency
            rgba = img.convert("RGBA")
            background = Image.new("RGB", rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.split()[3])
            return background
        if img.mode != "RGB":
            return img.convert("RGB")
        return img

    if img.mode not in ("RGB", "RGBA"):
        return img.convert("RGBA" if has_alpha else "RGB")
    return img


def transform_image(data: bytes, options: ResolvedOptions) -> bytes:
    """
    Resize and re-encode an image.

    Args:
        data: Encoded source image
        options: Target box, fit mode, output format and quality

    Returns:
        Encoded output image.

    Raises:
        CodecError: If Pillow cannot process the image.
    """
    save_format = FORMAT_MAP[options.ext]

    try:
        with Image.open(BytesIO(data)) as source:
            source.load()
            original_size = source.size
            img = _prepare_mode(source, save_format)
            img = _resize(img, options)

            save_kwargs = {"format": save_format}
            if save_format in LOSSY_FORMATS:
                save_kwargs["quality"] = options.quality
            if save_format == "WEBP":
                save_kwargs["method"] = 4  # Compression method (0-6)

            output = BytesIO()
            img.save(output, **save_kwargs)
            output_size = img.size
    except CodecError:
        raise
    except Exception as e:
        raise CodecError(f"{type(e).__name__}: {e}") from e

    logger.debug(
        f"[Codec] {original_size[0]}x{original_size[1]} -> {output_size[0]}x{output_size[1]} "
        f"{save_format} q={options.quality} ({output.tell()} bytes)"
    )
    return output.getvalue()
