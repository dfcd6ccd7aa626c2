"""Removal of catalogue records whose files have gone away."""

from __future__ import annotations

from collections.abc import Callable
import os

from loguru import logger

from core.services.interfaces import PurgeResult


class PurgeService:
    """Delete photo records for a directory, skipping locked records."""

    def __init__(self, repo, file_exists: Callable[[str], bool] = os.path.exists) -> None:
        self._repo = repo
        self._file_exists = file_exists

    def purge_directory(
        self,
        directory: str,
        recursive: bool = False,
        force: bool = False,
        dry_run: bool = False,
    ) -> PurgeResult:
        """Purge records in `directory` whose files no longer exist.

        Args:
            directory: Canonical directory of the records.
            recursive: Include records in subdirectories.
            force: Purge records even if their files exist.
            dry_run: Only report what would be purged.
        """
        result = PurgeResult(dry_run=dry_run)
        photos = sorted(
            self._repo.all_photos_in_directory(directory, recursive), key=lambda p: p.filename
        )
        for photo in photos:
            filename = photo.filename
            stale = force or not self._file_exists(filename)
            if photo.is_locked or not stale:
                result.kept_paths.append(filename)
                continue
            result.purged_paths.append(filename)
            if not dry_run:
                self._repo.purge(photo)
        logger.info(
            "Purge of {}: {} purged, {} kept{}",
            directory,
            len(result.purged_paths),
            len(result.kept_paths),
            " (dry run)" if dry_run else "",
        )
        return result
