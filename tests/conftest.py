from __future__ import annotations

from datetime import datetime
import itertools

from PIL import Image
import pytest

from infrastructure.database import create_db_engine, create_session
from infrastructure.sql_repository import SqlPhotoRepository


@pytest.fixture
def session():
    engine = create_db_engine(None)
    s = create_session(engine)
    yield s
    s.close()
    engine.dispose()


@pytest.fixture
def repo(session):
    return SqlPhotoRepository(session)


@pytest.fixture
def make_photo(repo):
    """Create catalogue rows without touching the filesystem."""
    counter = itertools.count(1)

    def _make(
        basename: str | None = None,
        *,
        directory: str = "/photos",
        tags: tuple[str, ...] = (),
        rating: int | None = None,
        taken_time: str | None = None,
        sha1: str | None = None,
    ):
        n = next(counter)

        def defaults(photo):
            photo.sha1 = sha1 or f"hash-{n}"
            photo.filedate = datetime(2020, 1, 1)
            photo.taken_time = taken_time
            photo.rating = rating

        photo = repo.find_or_create(directory, basename or f"img{n:03d}.jpg", defaults)
        for tag in tags:
            repo.add_tag(photo, tag)
        return photo

    return _make


@pytest.fixture
def make_image(tmp_path):
    """Write a small RGB image whose pixels depend on `seed`."""

    def _make(name: str, seed: int = 0, size: tuple[int, int] = (7, 5), fmt: str | None = None):
        im = Image.new("RGB", size)
        im.putdata(
            [((x * 31 + seed) % 256, (y * 17 + seed) % 256, (x + y + seed) % 256)
             for y in range(size[1]) for x in range(size[0])]
        )
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        im.save(path, format=fmt)
        return path

    return _make
