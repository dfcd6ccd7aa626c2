"""Lightweight view model wrapper around `Photo`."""

from __future__ import annotations

from dataclasses import dataclass
import os

from core.models import Photo


@dataclass
class PhotoVM:
    """Expose convenient properties for command output."""

    record: Photo

    @property
    def filename(self) -> str:
        """Full path of the file."""
        return self.record.filename

    @property
    def file_name(self) -> str:
        """Base name of the file path."""
        return self.record.basename

    @property
    def folder_path(self) -> str:
        """Folder portion of the file path."""
        return os.path.dirname(self.record.filename)

    @property
    def tag_names(self) -> list[str]:
        """Sorted tag texts."""
        return self.record.tag_names

    @property
    def rating(self) -> int | None:
        return self.record.rating

    @property
    def taken_time(self) -> str | None:
        return self.record.taken_time

    @property
    def is_locked(self) -> bool:
        """True if the record is locked."""
        return bool(self.record.is_locked)
