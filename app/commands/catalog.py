"""Catalogue housekeeping commands: import, untagged, purge, duplicates, tags, move-dir."""

from __future__ import annotations

import argparse
import os
from pathlib import Path

from app.commands.common import AppContext, apply_to_files, emit, unique_directories
from app.viewmodels.photo_vm import PhotoVM
from core.services.import_service import ImportOptions
from core.services.purge_service import PurgeService
from infrastructure.utils import iter_image_files


def canonical_directory(directory: str) -> str:
    """Real path of `directory`, or its absolute path if it no longer exists."""
    try:
        return str(Path(directory).resolve(strict=True))
    except FileNotFoundError:
        # Gone from the filesystem; assume it was entered correctly.
        return os.path.abspath(directory)


def add_parsers(subparsers) -> None:
    p = subparsers.add_parser("import", help="Add files to the catalogue")
    p.add_argument("-r", "--recurse", action="store_true", help="Recurse into directories")
    p.add_argument("--copy-tags", action="store_true",
                   help="Copy tags and rating from identical photos")
    p.add_argument("--purge-identical", action="store_true",
                   help="Purge identical photos whose files no longer exist")
    p.add_argument("--force-purge", action="store_true",
                   help="With --purge-identical, purge identical photos even if they exist")
    p.add_argument("paths", nargs="+", metavar="file|directory")
    p.set_defaults(run=run_import)

    p = subparsers.add_parser("untagged", help="List files without tags")
    p.add_argument("--directories", action="store_true",
                   help="List directories with untagged files")
    p.add_argument("-r", "--recurse", action="store_true", help="Recurse into directories")
    p.add_argument("paths", nargs="+", metavar="file|directory")
    p.set_defaults(run=run_untagged)

    p = subparsers.add_parser("purge", help="Remove records of files that no longer exist")
    p.add_argument("-v", "--verbose", action="store_true", help="Show files being purged")
    p.add_argument("-n", "--dry-run", action="store_true",
                   help="Dry run: see what would be purged (implies -v)")
    p.add_argument("-r", "--recurse", action="store_true", help="Purge subdirectories too")
    p.add_argument("-f", "--force", action="store_true", help="Force removal even if file exists")
    p.add_argument("directory")
    p.set_defaults(run=run_purge)

    p = subparsers.add_parser("duplicates", help="List groups of identical photos")
    p.set_defaults(run=run_duplicates)

    p = subparsers.add_parser("tags", help="List tags in use")
    p.add_argument("directory", nargs="?", help="Only tags of photos in this directory")
    p.set_defaults(run=run_tags)

    p = subparsers.add_parser("move-dir", help="Point records at a renamed directory")
    p.add_argument("old_directory")
    p.add_argument("new_directory")
    p.set_defaults(run=run_move_directory)


def run_import(args: argparse.Namespace, ctx: AppContext) -> int:
    options = ImportOptions(
        copy_tags=args.copy_tags,
        purge_identical_images=args.purge_identical,
        force_purge=args.force_purge,
    )

    def import_file(filename: str) -> None:
        ctx.importer.find_or_import(filename, options)

    return apply_to_files(ctx, args.paths, args.recurse, import_file).exit_code


def run_untagged(args: argparse.Namespace, ctx: AppContext) -> int:
    untagged: list[str] = []
    for filename in iter_image_files(args.paths, args.recurse):
        photo = ctx.repo.find_by_filename(filename)
        if photo is None or not photo.tags:
            untagged.append(filename)
    if args.directories:
        for directory in unique_directories(untagged):
            emit(directory)
    else:
        for filename in untagged:
            emit(filename)
    return 0


def run_purge(args: argparse.Namespace, ctx: AppContext) -> int:
    directory = canonical_directory(args.directory)
    result = PurgeService(ctx.repo).purge_directory(
        directory, recursive=args.recurse, force=args.force, dry_run=args.dry_run
    )
    if args.verbose or args.dry_run:
        for filename in result.purged_paths:
            emit(filename)
    if not args.dry_run:
        ctx.repo.commit()
    return 0


def run_duplicates(_args: argparse.Namespace, ctx: AppContext) -> int:
    for group in ctx.repo.duplicate_groups():
        emit(f"Group {group.group_number} ({group.sha1}):")
        for vm in ctx.sorter.sort(PhotoVM(p) for p in group.items):
            emit(f"  {vm.filename}")
    return 0


def run_move_directory(args: argparse.Namespace, ctx: AppContext) -> int:
    old_directory = canonical_directory(args.old_directory)
    new_directory = canonical_directory(args.new_directory)
    count = ctx.repo.move_directory(old_directory, new_directory)
    ctx.repo.commit()
    emit(f"{count} photos moved")
    return 0


def run_tags(args: argparse.Namespace, ctx: AppContext) -> int:
    if args.directory is None:
        names = ctx.repo.all_tags()
    else:
        names = ctx.repo.tags_in_directory(canonical_directory(args.directory))
    for name in names:
        emit(name)
    return 0
