"""Import of image files into the catalogue.

Resolves a file to its photo record, creating the record on first sight, and
merges values from an optional XMP sidecar and from identical photos. The
filesystem, decoder and sidecar access are injected so the policy here stays
independent of them.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
import os

from loguru import logger

from core.models import Photo


@dataclass
class ImportOptions:
    """Per-import policy switches.

    Attributes:
        copy_tags: Copy tags (and a rating, if unrated) from identical photos.
        purge_identical_images: Delete identical records whose files are gone.
        force_purge: With `purge_identical_images`, delete them even if their
            files still exist.
    """

    copy_tags: bool = False
    purge_identical_images: bool = False
    force_purge: bool = False


class ImportService:
    """Find or create photo records for files."""

    def __init__(
        self,
        repo,
        compute_identity: Callable[[str], str],
        split_path: Callable[[str], tuple[str, str]],
        read_sidecar: Callable[[str], object | None] | None = None,
        get_taken_time: Callable[[str], str | None] | None = None,
        get_mtime: Callable[[str], datetime] | None = None,
        get_dimensions: Callable[[str], tuple[int, int] | None] | None = None,
        file_exists: Callable[[str], bool] = os.path.exists,
    ) -> None:
        """Create an ImportService.

        Args:
            repo: Store with `find_or_create`, `add_tag`, `set_rating`,
                `identical` and `purge`.
            compute_identity: Content identity of the image at a path.
            split_path: Canonical (directory, basename) of a path.
            read_sidecar: Returns an object with `tags`, `sha1`, `taken_time`
                and `rating` for a path, or None.
            get_taken_time: Taken time of the image at a path, or None.
            get_mtime: File modification time of a path.
            get_dimensions: (width, height) of the image at a path, or None.
            file_exists: Existence check used when purging identical records.
        """
        self._repo = repo
        self._compute_identity = compute_identity
        self._split_path = split_path
        self._read_sidecar = read_sidecar or (lambda _path: None)
        self._get_taken_time = get_taken_time or (lambda _path: None)
        self._get_mtime = get_mtime or (lambda path: datetime.fromtimestamp(os.path.getmtime(path)))
        self._get_dimensions = get_dimensions or (lambda _path: None)
        self._file_exists = file_exists

    def find_or_import(self, filename: str, options: ImportOptions | None = None) -> Photo:
        """Return the photo record for `filename`, importing it if needed."""
        options = options or ImportOptions()
        directory, basename = self._split_path(filename)
        path = os.path.join(directory, basename)
        sidecar = self._read_sidecar(path)

        def fill_new_photo(photo: Photo) -> None:
            # Only values derived from the file itself are taken from the
            # sidecar here; user-supplied values are merged below.
            if sidecar is not None:
                photo.sha1 = sidecar.sha1
                photo.taken_time = sidecar.taken_time
            photo.filedate = self._get_mtime(path)
            photo.created_at = datetime.now()
            if not photo.taken_time:
                photo.taken_time = self._get_taken_time(path)
            dimensions = self._get_dimensions(path)
            if dimensions:
                photo.pixel_width, photo.pixel_height = dimensions
            if not photo.sha1:
                photo.sha1 = self._compute_identity(path)

        photo = self._repo.find_or_create(directory, basename, fill_new_photo)

        # Sidecar tags are always merged; a rating only fills an unrated photo.
        if sidecar is not None:
            for tag in sidecar.tags:
                self._repo.add_tag(photo, tag)
            if photo.rating is None and sidecar.rating is not None:
                self._repo.set_rating(photo, sidecar.rating)

        if options.copy_tags:
            self.copy_from_identical(photo)

        if options.purge_identical_images:
            self.purge_identical(photo, force=options.force_purge)

        return photo

    def copy_from_identical(self, photo: Photo) -> int:
        """Copy tags and, if `photo` is unrated, a rating from identical photos.

        Returns the number of tags added.
        """
        added = 0
        for other in sorted(self._repo.identical(photo), key=lambda p: p.id):
            for tag in list(other.tags):
                if self._repo.add_tag(photo, tag.name):
                    added += 1
            if photo.rating is None and other.rating is not None:
                self._repo.set_rating(photo, other.rating)
        if added:
            logger.info("Copied {} tags to {} from identical photos", added, photo.filename)
        return added

    def purge_identical(self, photo: Photo, force: bool = False) -> list[str]:
        """Delete identical records whose files no longer exist (all if `force`)."""
        purged: list[str] = []
        for other in sorted(self._repo.identical(photo), key=lambda p: p.id):
            if force or not self._file_exists(other.filename):
                purged.append(other.filename)
                self._repo.purge(other)
        return purged
