"""Utilities for path canonicalization, image discovery and date extraction.

This module centralizes filesystem and metadata helpers so the rest of the
app can depend on a single behavior. Date extraction is best-effort and will
not raise on errors; callers should expect `None` when data is not available.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import datetime
import os
from pathlib import Path
from typing import Any

from loguru import logger
from PIL import Image

# Optional rawpy for RAW metadata (DNG)
try:  # pragma: no cover - optional dependency
    import rawpy  # type: ignore

    RAWPY_AVAILABLE = True
except ImportError:  # pragma: no cover - optional dependency
    RAWPY_AVAILABLE = False

TAKEN_TIME_FMT = "%Y-%m-%d %H:%M:%S"

IMAGE_SUFFIXES = frozenset(
    {".jpg", ".jpeg", ".png", ".gif", ".bmp", ".tif", ".tiff", ".webp", ".heic", ".heif", ".dng"}
)

# EXIF tags: DateTimeOriginal lives in the Exif sub-IFD, DateTime in IFD0
_EXIF_IFD = 0x8769
_DATETIME_ORIGINAL = 36867
_DATETIME = 306


def split_canonical_path(filename: str | Path) -> tuple[str, str]:
    """Return the (directory, basename) of the real path of `filename`.

    Symlinks are resolved; raises FileNotFoundError if the file is missing.
    """
    real = Path(filename).resolve(strict=True)
    return str(real.parent), real.name


def is_image_file(path: str | Path) -> bool:
    """True if `path` has one of the recognised image suffixes."""
    return Path(path).suffix.lower() in IMAGE_SUFFIXES


def iter_image_files(paths: Iterable[str], recurse: bool = False) -> Iterator[str]:
    """Yield the files named by `paths`, expanding directories.

    Plain files are yielded as given. Directories yield their image files in
    name order, descending into subdirectories only when `recurse` is set.
    """
    for path in paths:
        if os.path.isdir(path):
            yield from _iter_directory(path, recurse)
        else:
            yield path


def _iter_directory(directory: str, recurse: bool) -> Iterator[str]:
    try:
        entries = sorted(os.scandir(directory), key=lambda e: e.name)
    except OSError as ex:
        logger.warning("Cannot list {}: {}", directory, ex)
        return
    for entry in entries:
        if entry.is_dir():
            if recurse:
                yield from _iter_directory(entry.path, recurse)
        elif is_image_file(entry.name):
            yield entry.path


def get_file_mtime(path: str) -> datetime:
    """Modification time of the file at `path`."""
    return datetime.fromtimestamp(os.path.getmtime(path))


def format_taken_time(dt: datetime | None) -> str | None:
    """Format `dt` the way taken times are stored; None when missing."""
    try:
        return dt.strftime(TAKEN_TIME_FMT) if dt else None
    except (ValueError, TypeError, AttributeError):
        return None


def parse_exif_datetime(value: Any) -> datetime | None:
    """Parse an EXIF "YYYY:MM:DD HH:MM:SS" value; None for blank or zeroed dates."""
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if not value:
        return None
    val_str = str(value).strip().rstrip("\x00")
    # Cameras without a clock write "0000:00:00 00:00:00"
    if not val_str or val_str.startswith("0"):
        return None
    try:
        if len(val_str) >= 19 and val_str[4] == ":" and val_str[7] == ":":
            return datetime.strptime(val_str[:19], "%Y:%m:%d %H:%M:%S")
        return datetime.fromisoformat(val_str.replace("/", "-"))
    except ValueError:
        logger.debug("Unparseable EXIF date: {}", val_str)
        return None


# pylint: disable-next=too-many-return-statements
def get_exif_datetime_original(path: str) -> datetime | None:
    """Extract EXIF DateTimeOriginal (or DateTime) if available via Pillow.

    Falls back to rawpy for DNG files when Pillow cannot read them.
    """
    try:
        with Image.open(path) as im:
            exif = im.getexif()
            if not exif:
                return None
            val = exif.get_ifd(_EXIF_IFD).get(_DATETIME_ORIGINAL) or exif.get(_DATETIME)
            return parse_exif_datetime(val)
    except (OSError, ValueError, TypeError) as ex:
        logger.debug("EXIF read failed for {}: {}", path, ex)
        if not (RAWPY_AVAILABLE and path.lower().endswith(".dng")):
            return None
        try:
            with rawpy.imread(path) as raw:  # type: ignore[attr-defined]
                md = getattr(raw, "metadata", None)
                # rawpy exposes .timestamp or .shooting_datetime across versions
                ts = None
                if md is not None:
                    ts = getattr(md, "timestamp", None) or getattr(md, "shooting_datetime", None)
                if isinstance(ts, datetime):
                    return ts
                if ts:
                    return datetime.fromtimestamp(float(ts))
        except (OSError, ValueError, TypeError) as raw_ex:  # pragma: no cover
            logger.debug("rawpy EXIF fallback failed for {}: {}", path, raw_ex)
        return None


def get_taken_time(path: str) -> str | None:
    """Taken time of the photo at `path` in stored form, if known."""
    return format_taken_time(get_exif_datetime_original(path))
