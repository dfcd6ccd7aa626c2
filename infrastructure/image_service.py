"""Image decoding and content identity computation.

Decodes files with Pillow (HEIC/HEIF through pillow-heif) into the raw raster
the identity engine hashes, and memoises identities per file signature.
"""

from __future__ import annotations

from collections import OrderedDict
import gc
import hashlib
import os

from loguru import logger
from PIL import Image
from pillow_heif import register_heif_opener

from core.identity import DecodedImage, compute_identity

register_heif_opener()

# Modes carrying alpha are hashed as RGBA, everything else as RGB
_ALPHA_MODES = {"RGBA", "LA", "PA"}


def _compute_cache_key(path: str) -> str:
    """Compute a stable cache key from path, mtime and size."""
    try:
        st = os.stat(path)
        sig = f"{path}|{int(st.st_mtime_ns)}|{int(st.st_size)}".encode("utf-8", errors="ignore")
    except OSError:
        sig = f"{path}|0|0".encode("utf-8", errors="ignore")
    return hashlib.sha1(sig).hexdigest()


class _LRUCache:
    def __init__(self, capacity: int) -> None:
        self._cap = max(1, int(capacity or 1))
        self._data: OrderedDict[str, str] = OrderedDict()

    def get(self, key: str) -> str | None:
        """Return cached value for key, moving it to the MRU position."""
        value = self._data.get(key)
        if value is None:
            return None
        self._data.move_to_end(key)
        return value

    def put(self, key: str, value: str) -> None:
        """Insert or update `key`, evicting LRU when over capacity."""
        self._data[key] = value
        self._data.move_to_end(key)
        while len(self._data) > self._cap:
            self._data.popitem(last=False)


def pil_to_decoded(im: Image.Image) -> DecodedImage:
    """Convert a Pillow image to 8-bit RGB(A) samples."""
    mode = "RGBA" if im.mode in _ALPHA_MODES or "transparency" in im.info else "RGB"
    if im.mode != mode:
        im = im.convert(mode)
    channels = len(mode)
    return DecodedImage(
        width=im.width,
        height=im.height,
        channels=channels,
        bits_per_sample=8,
        rowstride=im.width * channels,
        pixels=im.tobytes("raw", mode),
    )


class ImageService:
    """Decode image files and compute their content identity."""

    def __init__(self, settings: object | None = None) -> None:
        """Initialize the identity cache and decoder options from settings."""
        self._cache_size = 256
        self._collect_garbage = True
        if settings is not None:
            try:
                self._cache_size = int(settings.get("identity.cache_size", 256) or 256)
            except (ValueError, TypeError):
                self._cache_size = 256
            self._collect_garbage = bool(settings.get("identity.collect_garbage", True))
        self._cache = _LRUCache(self._cache_size)

    def decode(self, path: str) -> DecodedImage:
        """Decode the image at `path`; raises OSError if Pillow cannot read it."""
        if self._collect_garbage:
            # Decoded rasters are large; release the previous one first.
            gc.collect()
        with Image.open(path) as im:
            im.load()
            return pil_to_decoded(im)

    def compute_identity(self, path: str) -> str:
        """Return the content identity of the image at `path`."""
        key = _compute_cache_key(path)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        decoded = self.decode(path)
        identity = compute_identity(decoded)
        logger.debug("Identity of {} ({}x{}): {}", path, decoded.width, decoded.height, identity)
        self._cache.put(key, identity)
        return identity

    def get_dimensions(self, path: str) -> tuple[int, int] | None:
        """Return (width, height) of the image at `path` without decoding pixels."""
        try:
            with Image.open(path) as im:
                return im.width, im.height
        except (OSError, ValueError) as ex:
            logger.debug("Cannot read dimensions of {}: {}", path, ex)
            return None
