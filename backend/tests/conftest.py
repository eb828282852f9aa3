"""
Image Server test configuration

Fixtures build a throwaway source directory with real Pillow images,
an empty cache directory and a placeholder image, so every test runs
against the filesystem the server would see in production.
"""

import sys
import threading
import time
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

# Add backend directory to the Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from image_server.codec import transform_image
from image_server.config import ImageServerConfig


# ============================================
# Image helpers
# ============================================

def make_image_bytes(size=(800, 600), mode="RGB", fmt="JPEG", color=(200, 40, 40)) -> bytes:
    """Encode a solid-color image."""
    if mode == "RGBA" and len(color) == 3:
        color = (*color, 128)
    img = Image.new(mode, size, color)
    buffer = BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


def open_image(data: bytes) -> Image.Image:
    img = Image.open(BytesIO(data))
    img.load()
    return img


class CountingCodec:
    """Wraps the real codec, counting calls and optionally sleeping first."""

    def __init__(self, delay: float = 0.0, fail: bool = False):
        self.delay = delay
        self.fail = fail
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, data, options):
        with self._lock:
            self.calls.append(options)
        if self.delay:
            time.sleep(self.delay)
        if self.fail:
            raise ValueError("codec exploded")
        return transform_image(data, options)

    @property
    def call_count(self) -> int:
        return len(self.calls)


# ============================================
# Directory fixtures
# ============================================

@pytest.fixture
def img_dir(tmp_path):
    """
    Source directory with:
    - /photo.jpg: 800x600 JPEG
    - /wide.png: 1200x300 RGBA PNG
    - /albums/summer/beach.jpg: 640x480 JPEG
    - /placeholder-image.png: fallback image
    """
    root = tmp_path / "uploads"
    root.mkdir()
    (root / "photo.jpg").write_bytes(make_image_bytes())
    (root / "wide.png").write_bytes(make_image_bytes((1200, 300), "RGBA", "PNG"))
    (root / "albums" / "summer").mkdir(parents=True)
    (root / "albums" / "summer" / "beach.jpg").write_bytes(make_image_bytes((640, 480)))
    (root / "placeholder-image.png").write_bytes(
        make_image_bytes((10, 10), "RGB", "PNG", (128, 128, 128))
    )
    return root


@pytest.fixture
def cache_dir(tmp_path):
    root = tmp_path / "cache"
    root.mkdir()
    return root


@pytest.fixture
def config(img_dir, cache_dir):
    """Reference configuration: placeholder on failure."""
    return ImageServerConfig(
        img_path=str(img_dir),
        cache_dir=str(cache_dir),
        default_img=str(img_dir / "placeholder-image.png"),
    )


@pytest.fixture
def config_404(img_dir, cache_dir):
    """Reference configuration: plain 404 on failure."""
    return ImageServerConfig(
        img_path=str(img_dir),
        cache_dir=str(cache_dir),
        default_img=str(img_dir / "missing.png"),
        return_404=True,
    )


def cache_files(cache_dir: Path):
    """Visible cache entries (temp files excluded)."""
    return sorted(p.name for p in cache_dir.iterdir() if not p.name.startswith("."))
