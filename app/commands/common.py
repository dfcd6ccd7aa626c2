"""Shared plumbing for the command-line commands."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
import os
import sys

from loguru import logger

from core.services.import_service import ImportService
from core.services.interfaces import CommandResult
from core.services.sort_service import SortService
from infrastructure.sql_repository import SqlPhotoRepository
from infrastructure.utils import iter_image_files


@dataclass
class AppContext:
    """Collaborators handed to every command."""

    repo: SqlPhotoRepository
    importer: ImportService
    sorter: SortService
    settings: object | None = None


def emit(text: str, end: str = "\n") -> None:
    sys.stdout.write(f"{text}{end}")


def report_error(filename: str, ex: Exception) -> None:
    logger.error("{}: {}", filename, ex)
    print(f"error: {filename}: {ex}", file=sys.stderr)


def apply_to_files(
    ctx: AppContext,
    paths: Iterable[str],
    recurse: bool,
    action: Callable[[str], None],
) -> CommandResult:
    """Run `action` on every image file named by `paths`, committing per file.

    A failure is reported and rolled back, and processing continues with the
    next file.
    """
    result = CommandResult()
    for filename in iter_image_files(paths, recurse):
        try:
            action(filename)
            ctx.repo.commit()
        except (OSError, ValueError) as ex:
            ctx.repo.rollback()
            report_error(filename, ex)
            result.failed.append((filename, str(ex)))
        else:
            result.success_paths.append(filename)
    return result


def unique_directories(filenames: Iterable[str]) -> list[str]:
    """Containing directories of `filenames`, each once, in first-seen order."""
    seen: dict[str, None] = {}
    for filename in filenames:
        seen.setdefault(os.path.dirname(filename), None)
    return list(seen)
