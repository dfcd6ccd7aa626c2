"""SQLite database location and session setup."""

from __future__ import annotations

import os
from pathlib import Path

from loguru import logger
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from core.models import Base

DB_ENV_VAR = "TAGGER_DB"
DB_MARKER_FILE = ".taggerdb"
DEFAULT_DB_PATH = str(Path.home() / "tagger" / "tags.db")


def find_database_path(start_dir: str | Path | None = None, default: str | None = None) -> Path:
    """Return the database file to use.

    The `TAGGER_DB` environment variable wins. Otherwise walk up from
    `start_dir` (default: the working directory) looking for a `.taggerdb`
    file whose first line names the database, falling back to `default`.
    """
    env_path = os.environ.get(DB_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()

    directory = Path(start_dir or Path.cwd()).resolve()
    for candidate in (directory, *directory.parents):
        marker = candidate / DB_MARKER_FILE
        if marker.is_file():
            with marker.open("r", encoding="utf-8") as f:
                first_line = f.readline().strip()
            if first_line:
                logger.debug("Database selected by {}: {}", marker, first_line)
                return Path(first_line).expanduser()

    return Path(os.path.expandvars(default or DEFAULT_DB_PATH)).expanduser()


def _configure_sqlite(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.execute("PRAGMA journal_mode = TRUNCATE")
    finally:
        cursor.close()


def create_db_engine(db_path: str | Path | None = None, echo: bool = False) -> Engine:
    """Create an engine for the SQLite file `db_path` and ensure the schema.

    A `db_path` of None gives a private in-memory database.
    """
    if db_path is None:
        url = "sqlite://"
    else:
        path = Path(db_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        url = f"sqlite:///{path}"
    engine = create_engine(url, echo=echo)
    event.listen(engine, "connect", _configure_sqlite)
    Base.metadata.create_all(engine)
    logger.info("Opened database {}", url)
    return engine


def create_session(engine: Engine) -> Session:
    """Return a new session bound to `engine`."""
    return sessionmaker(bind=engine, expire_on_commit=False)()
