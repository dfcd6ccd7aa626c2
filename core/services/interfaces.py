"""Core service interfaces and shared data structures.

This module defines the store protocol the query engine evaluates against
and simple dataclasses reporting the outcome of catalogue housekeeping.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol


class PhotoStore(Protocol):
    """Read primitives used as the leaves of tag expressions.

    Every method returns a set of photo objects; within one store each photo
    is represented by a single object so the results can be combined with
    set operations.
    """

    def photos_with_tag_exact(self, text: str) -> set:
        """Photos tagged exactly `text`."""
        raise NotImplementedError

    def photos_with_tag_pattern(self, pattern: str) -> set:
        """Photos with a tag matching the `%` wildcard `pattern`."""
        raise NotImplementedError

    def photos_taken_on_prefix(self, date_prefix: str) -> set:
        """Photos whose taken time starts with `date_prefix`."""
        raise NotImplementedError

    def photos_taken_before(self, date: str) -> set:
        """Photos whose taken time sorts before `date`."""
        raise NotImplementedError

    def photos_taken_on_or_after(self, date: str) -> set:
        """Photos whose taken time sorts at or after `date`."""
        raise NotImplementedError

    def photos_with_rating_in(self, ratings: set[int]) -> set:
        """Photos rated with one of `ratings`."""
        raise NotImplementedError

    def photos_with_no_rating(self) -> set:
        """Photos that have not been rated."""
        raise NotImplementedError

    def all_photos_in_directory(self, directory: str, recursive: bool = False) -> set:
        """Photos in `directory`, and in its subdirectories if `recursive`."""
        raise NotImplementedError


@dataclass
class PurgeResult:
    """Outcome of a purge over one directory.

    Attributes:
        purged_paths: Filenames whose records were (or would be) deleted.
        kept_paths: Filenames whose records were left in place.
        dry_run: Whether the records were actually left untouched.
    """

    purged_paths: list[str] = field(default_factory=list)
    kept_paths: list[str] = field(default_factory=list)
    dry_run: bool = False


@dataclass
class CommandResult:
    """Outcome of a command applied to a list of files.

    Attributes:
        success_paths: Files processed successfully.
        failed: Tuples of (path, reason) for failures.
    """

    success_paths: list[str] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0
