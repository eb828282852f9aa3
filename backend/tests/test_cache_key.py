"""
Cache Key Deriver tests

Run:
    cd backend
    pytest tests/test_cache_key.py -v
"""

import dataclasses
import re

import pytest

from image_server.cache_key import MAX_SLUG_BYTES, derive_cache_key, slugify, strip_extension
from image_server.config import FitMode, OutputFormat
from image_server.options import ResolvedOptions

BASE = ResolvedOptions(
    width=1920,
    height=1080,
    quality=80,
    ext=OutputFormat.WEBP,
    resize_mode=FitMode.COVER,
)

SAFE_SEGMENT = re.compile(r"^[\w-]+\.[a-z]+$")

LONG_NAME = "p" * 220


class TestSlugify:
    """slugify"""

    def test_lower_cases(self):
        """Test: upper case is lowered"""
        assert slugify("Photo") == "photo"

    def test_collapses_symbol_runs(self):
        """Test: runs of symbols become one separator"""
        assert slugify("a  /_.b") == "a-b"

    def test_trims_separators(self):
        """Test: no leading or trailing separator"""
        assert slugify("--/a/--") == "a"

    def test_only_symbols_is_empty(self):
        """Test: a string of symbols slugs to nothing"""
        assert slugify("/../") == ""


class TestStripExtension:
    """strip_extension"""

    @pytest.mark.parametrize("path,expected", [
        ("/photo.jpg", "/photo"),
        ("/a.b.jpg", "/a.b"),
        ("/dir.v2/photo", "/dir.v2/photo"),
        ("/albums/summer/beach.jpeg", "/albums/summer/beach"),
    ])
    def test_only_last_segment(self, path, expected):
        """Test: only the last segment's extension is removed"""
        assert strip_extension(path) == expected


class TestDeriveCacheKey:
    """derive_cache_key"""

    def test_reference_layout(self):
        """Test: options in fixed order, then the path, then the format"""
        key = derive_cache_key("/photo.jpg", BASE)
        assert key == "width-1920-height-1080-quality-80-ext-webp-resizemode-cover-photo.webp"

    def test_nested_path(self):
        """Test: directories become part of the slug"""
        key = derive_cache_key("/albums/summer/beach.jpg", BASE)
        assert key.endswith("-albums-summer-beach.webp")

    def test_extension_is_resolved_format(self):
        """Test: the file extension is the output format"""
        options = dataclasses.replace(BASE, ext=OutputFormat.PNG)
        assert derive_cache_key("/photo.jpg", options).endswith(".png")

    def test_deterministic(self):
        """Test: equal inputs give equal keys"""
        first = derive_cache_key("/albums/summer/beach.jpg", BASE)
        second = derive_cache_key(
            "/albums/summer/beach.jpg",
            ResolvedOptions(1920, 1080, 80, OutputFormat.WEBP, FitMode.COVER),
        )
        assert first == second

    @pytest.mark.parametrize("change", [
        {"width": 800},
        {"height": 600},
        {"quality": 60},
        {"ext": OutputFormat.JPG},
        {"resize_mode": FitMode.CONTAIN},
        {"resize_mode": FitMode.FILL},
    ])
    def test_any_option_change_changes_key(self, change):
        """Test: every option field takes part in the key"""
        options = dataclasses.replace(BASE, **change)
        assert derive_cache_key("/photo.jpg", options) != derive_cache_key("/photo.jpg", BASE)

    def test_swapped_dimensions_differ(self):
        """Test: width and height are not interchangeable"""
        a = dataclasses.replace(BASE, width=800, height=600)
        b = dataclasses.replace(BASE, width=600, height=800)
        assert derive_cache_key("/photo.jpg", a) != derive_cache_key("/photo.jpg", b)

    def test_source_extension_not_part_of_key(self):
        """Test: only the output format decides the extension"""
        assert derive_cache_key("/photo.jpg", BASE) == derive_cache_key("/photo.png", BASE)

    def test_different_paths_differ(self):
        """Test: different sources get different keys"""
        assert derive_cache_key("/photo.jpg", BASE) != derive_cache_key("/photo2.jpg", BASE)

    def test_known_collision_class(self):
        """Test: case and punctuation differences in the path share a key"""
        keys = {
            derive_cache_key("/a/b.jpg", BASE),
            derive_cache_key("/a-b.jpg", BASE),
            derive_cache_key("/A_B.png", BASE),
        }
        assert len(keys) == 1

    @pytest.mark.parametrize("path", [
        "/../../etc/passwd",
        "/with space/and%20escapes.jpg",
        "/weird;name&x=1.png",
        "/.hidden.jpg",
    ])
    def test_single_safe_path_segment(self, path):
        """Test: the key is one safe, non-hidden path segment"""
        key = derive_cache_key(path, BASE)
        assert "/" not in key
        assert ".." not in key
        assert not key.startswith(".")
        assert SAFE_SEGMENT.match(key)


class TestLongNames:
    """Keys for sources with very long names"""

    @pytest.mark.parametrize("path", [
        f"/{LONG_NAME}.jpg",
        f"/albums/{LONG_NAME}/{LONG_NAME}.jpg",
        "/" + "é" * 200 + ".jpg",
    ])
    def test_fits_in_a_file_name(self, path):
        """Test: the key stays under the 255-byte file name limit"""
        key = derive_cache_key(path, BASE)
        slug, _, ext = key.rpartition(".")
        assert len(slug.encode("utf-8")) <= MAX_SLUG_BYTES
        assert len(key.encode("utf-8")) < 255
        assert ext == "webp"
        assert SAFE_SEGMENT.match(key)

    def test_deterministic(self):
        """Test: long keys are still stable"""
        path = f"/{LONG_NAME}.jpg"
        assert derive_cache_key(path, BASE) == derive_cache_key(path, BASE)

    def test_keeps_readable_prefix(self):
        """Test: the key starts with the option prefix"""
        key = derive_cache_key(f"/{LONG_NAME}.jpg", BASE)
        assert key.startswith("width-1920-height-1080-quality-80-ext-webp-resizemode-cover-ppp")

    def test_tail_difference_changes_key(self):
        """Test: long paths differing only at the end get different keys"""
        a = derive_cache_key(f"/{LONG_NAME}a.jpg", BASE)
        b = derive_cache_key(f"/{LONG_NAME}b.jpg", BASE)
        assert a != b

    def test_option_change_changes_key(self):
        """Test: options still take part in long keys"""
        path = f"/{LONG_NAME}.jpg"
        other = dataclasses.replace(BASE, quality=60)
        assert derive_cache_key(path, BASE) != derive_cache_key(path, other)

    def test_short_keys_are_not_hashed(self):
        """Test: keys under the cap are left as they are"""
        path = "/" + "p" * 100 + ".jpg"
        assert derive_cache_key(path, BASE).endswith("-" + "p" * 100 + ".webp")
