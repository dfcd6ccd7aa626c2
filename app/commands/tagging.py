"""The `tag`, `rate` and `lock` commands."""

from __future__ import annotations

import argparse

from loguru import logger

from app.commands.common import AppContext, apply_to_files
from core.services.import_service import ImportOptions


def parse_rating(value: str) -> int | None:
    """Parse a command-line rating: 1 to 5, or `null` to clear it."""
    if value == "null":
        return None
    try:
        rating = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid rating: {value!r}") from None
    if not 1 <= rating <= 5:
        raise argparse.ArgumentTypeError(f"rating must be 1-5 or null: {value!r}")
    return rating


def add_parsers(subparsers) -> None:
    p = subparsers.add_parser("tag", help="Add or remove tags on files")
    p.add_argument("-a", "--add", action="append", default=[], metavar="TAG",
                   help="Tag to add (repeatable)")
    p.add_argument("-d", "--delete", action="append", default=[], metavar="TAG",
                   help="Tag to remove (repeatable)")
    p.add_argument("-r", "--recurse", action="store_true", help="Recurse into directories")
    p.add_argument("paths", nargs="+", metavar="file|directory")
    p.set_defaults(run=run_tag)

    p = subparsers.add_parser("rate", help="Rate files")
    p.add_argument("-f", "--force", action="store_true", help="Change rating if already rated")
    p.add_argument("-r", "--recurse", action="store_true", help="Recurse into directories")
    p.add_argument("rating", type=parse_rating, help="1-5, or null")
    p.add_argument("paths", nargs="+", metavar="file|directory")
    p.set_defaults(run=run_rate)

    p = subparsers.add_parser("lock", help="Protect records from purge")
    p.add_argument("-u", "--unlock", action="store_true", help="Remove the protection instead")
    p.add_argument("-r", "--recurse", action="store_true", help="Recurse into directories")
    p.add_argument("paths", nargs="+", metavar="file|directory")
    p.set_defaults(run=run_lock)


def run_tag(args: argparse.Namespace, ctx: AppContext) -> int:
    options = ImportOptions(copy_tags=True)

    def tag_file(filename: str) -> None:
        photo = ctx.importer.find_or_import(filename, options)
        changed = [t for t in args.add if ctx.repo.add_tag(photo, t)]
        changed += [t for t in args.delete if ctx.repo.remove_tag(photo, t)]
        if not changed:
            logger.debug("No tag changes for {}", filename)

    return apply_to_files(ctx, args.paths, args.recurse, tag_file).exit_code


def run_rate(args: argparse.Namespace, ctx: AppContext) -> int:
    options = ImportOptions(copy_tags=True)

    def rate_file(filename: str) -> None:
        photo = ctx.importer.find_or_import(filename, options)
        if photo.rating is None or args.force:
            ctx.repo.set_rating(photo, args.rating)
        else:
            logger.info("Keeping rating {} of {}", photo.rating, filename)

    return apply_to_files(ctx, args.paths, args.recurse, rate_file).exit_code


def run_lock(args: argparse.Namespace, ctx: AppContext) -> int:
    locked = not args.unlock

    def lock_file(filename: str) -> None:
        photo = ctx.importer.find_or_import(filename)
        if bool(photo.is_locked) != locked:
            ctx.repo.set_locked(photo, locked)

    return apply_to_files(ctx, args.paths, args.recurse, lock_file).exit_code
