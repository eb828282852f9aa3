"""
Cache Key Deriver

Builds the file name a transformed image is cached under:
    -width-800-height-600-quality-80-ext-webp-resizemode-cover-photos-cat.webp

Paths that differ only in case or punctuation slug to the same key
(/a/b.jpg, /a-b.jpg and /A_B.png all share "a-b").
Slugs over MAX_SLUG_BYTES keep a prefix and end in a sha256 digest.
"""

import hashlib
import posixpath
import re

from .options import CACHE_KEY_FIELDS, ResolvedOptions

_SEPARATOR = "-"
_UNSAFE = re.compile(r"[\W_]+")

# Leaves room for ".jpeg" and the temp-file prefix under the 255-byte name limit
MAX_SLUG_BYTES = 200
_DIGEST_LENGTH = 16


def slugify(text: str) -> str:
    """Lower-case text and collapse every non-word run into a single '-'."""
    slug = _UNSAFE.sub(_SEPARATOR, text.lower())
    return slug.strip(_SEPARATOR)


def strip_extension(request_path: str) -> str:
    """Drop the extension of the last path segment only."""
    root, _ext = posixpath.splitext(request_path)
    return root


def derive_cache_key(request_path: str, options: ResolvedOptions) -> str:
    """
    Derive the cache file name for a source path and resolved options.

    Returns:
        A single path segment: "<slug>.<format>"
    """
    parts = []
    for wire_name, attr in CACHE_KEY_FIELDS:
        value = getattr(options, attr)
        parts.append(f"-{wire_name}-{getattr(value, 'value', value)}")
    parts.append(f"-{strip_extension(request_path)}")

    intermediate = "".join(parts)
    return f"{_truncate(slugify(intermediate), intermediate)}.{options.ext.value}"


def _truncate(slug: str, intermediate: str) -> str:
    """Cap long slugs: keep a prefix, append a sha256 of the full key text."""
    encoded = slug.encode("utf-8")
    if len(encoded) <= MAX_SLUG_BYTES:
        return slug

    digest = hashlib.sha256(intermediate.encode("utf-8")).hexdigest()[:_DIGEST_LENGTH]
    keep = MAX_SLUG_BYTES - _DIGEST_LENGTH - 1
    prefix = encoded[:keep].decode("utf-8", "ignore").rstrip(_SEPARATOR)
    return f"{prefix}{_SEPARATOR}{digest}"
