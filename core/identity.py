"""Content identity for decoded images.

The identity is a fingerprint of the decoded pixels only. Decoders pad each
scanline to a row stride that depends on the library and its version, so the
padding is excluded: the same photograph decoded by different decoders (or
stored as a lossless copy in another container) yields the same string.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
import hashlib


@dataclass(frozen=True)
class DecodedImage:
    """A decoded raster as handed over by an image decoder."""

    width: int
    height: int
    channels: int
    bits_per_sample: int
    rowstride: int
    pixels: bytes

    @property
    def row_width(self) -> int:
        """Number of meaningful bytes in each scanline."""
        return self.width * self.channels * self.bits_per_sample // 8


def compute_identity(image: DecodedImage) -> str:
    """Return the base64-encoded SHA-1 of the image's unpadded scanlines."""
    row_width = image.row_width
    stride = image.rowstride
    if row_width > stride:
        raise ValueError(f"row width {row_width} exceeds row stride {stride}")

    digest = hashlib.sha1()
    if row_width == stride:
        digest.update(image.pixels)
    else:
        view = memoryview(image.pixels)
        offset = 0
        # The last row is not necessarily padded out to the stride.
        for _ in range(image.height):
            digest.update(view[offset : offset + row_width])
            offset += stride
    return base64.b64encode(digest.digest()).decode("ascii")
