from __future__ import annotations

import argparse
import os
from pathlib import Path

from loguru import logger

from app.commands import catalog, query, tagging
from app.commands.common import AppContext
from core.services.import_service import ImportService
from core.services.sort_service import SortService
from infrastructure.database import create_db_engine, create_session, find_database_path
from infrastructure.image_service import ImageService
from infrastructure.logging import get_log_directory, init_logging
from infrastructure.settings import JsonSettings, load_settings
from infrastructure.sql_repository import SqlPhotoRepository
from infrastructure.utils import get_file_mtime, get_taken_time, split_canonical_path
from infrastructure.xmp import read_sidecar

BASE_DIR = Path(__file__).parent


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="photo-tagger", description="Photo tag catalogue")
    parser.add_argument("-v", "--verbose", action="store_true", help="Echo log messages to stderr")
    parser.add_argument("--db", help="Database file (overrides TAGGER_DB and .taggerdb)")
    subparsers = parser.add_subparsers(dest="command", required=True)
    query.add_parser(subparsers)
    tagging.add_parsers(subparsers)
    catalog.add_parsers(subparsers)
    return parser


def build_context(repo: SqlPhotoRepository, settings: JsonSettings) -> AppContext:
    images = ImageService(settings)
    importer = ImportService(
        repo,
        compute_identity=images.compute_identity,
        split_path=split_canonical_path,
        read_sidecar=read_sidecar,
        get_taken_time=get_taken_time,
        get_mtime=get_file_mtime,
        get_dimensions=images.get_dimensions,
    )
    sorter = SortService(settings.get_sort_keys() or None)
    return AppContext(repo=repo, importer=importer, sorter=sorter, settings=settings)


def main(argv: list[str] | None = None) -> int:
    settings = load_settings(BASE_DIR / "settings.json")
    parser = build_parser()
    args, extras = parser.parse_known_args(argv)
    if extras:
        # `tagged` stops option parsing at its first term, so only
        # unrecognised leading `-tag` terms can end up here.
        if not hasattr(args, "terms"):
            parser.error(f"unrecognized arguments: {' '.join(extras)}")
        args.terms = extras + args.terms

    console_level = "INFO" if args.verbose else settings.get("logging.console_level")
    init_logging(get_log_directory(settings), console_level)

    db_path = args.db or find_database_path(Path.cwd(), settings.get("database.default_path"))
    engine = create_db_engine(db_path)
    session = create_session(engine)
    try:
        ctx = build_context(SqlPhotoRepository(session), settings)
        logger.info("Running {} in {}", args.command, os.getcwd())
        return args.run(args, ctx)
    finally:
        session.close()
        engine.dispose()


if __name__ == "__main__":
    raise SystemExit(main())
