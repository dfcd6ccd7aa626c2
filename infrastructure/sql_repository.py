"""SQLAlchemy persistence for photos and tags.

Provides the lookup primitives tag expressions are evaluated against, and the
mutations used by the import, tagging, rating and purge commands. Query
methods return sets; the session's identity map guarantees one object per
row so sets from different queries combine correctly.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
from datetime import datetime
import os

from loguru import logger
from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from core.models import Photo, PhotoGroup, Tag
from infrastructure.utils import split_canonical_path

LIKE_ESCAPE = "\\"


def _escape_like(value: str, keep_percent: bool = False) -> str:
    """Escape LIKE metacharacters in `value`; `%` survives if `keep_percent`."""
    value = value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2).replace("_", LIKE_ESCAPE + "_")
    if not keep_percent:
        value = value.replace("%", LIKE_ESCAPE + "%")
    return value


class SqlPhotoRepository:
    """Photo and tag store backed by a SQLAlchemy session."""

    def __init__(self, session: Session) -> None:
        self._session = session

    @property
    def session(self) -> Session:
        return self._session

    # Lookup
    def find_by_path(self, directory: str, basename: str) -> Photo | None:
        """Return the photo stored as (`directory`, `basename`), if any."""
        stmt = select(Photo).where(Photo.directory == directory, Photo.basename == basename)
        return self._session.scalars(stmt).first()

    def find_by_filename(self, filename: str) -> Photo | None:
        """Return the photo for the file at `filename`, if it is catalogued."""
        try:
            directory, basename = split_canonical_path(filename)
        except OSError:
            directory, basename = os.path.split(os.path.abspath(filename))
        return self.find_by_path(directory, basename)

    def find_or_create(
        self,
        directory: str,
        basename: str,
        defaults: Callable[[Photo], None] | None = None,
    ) -> Photo:
        """Return the photo for (`directory`, `basename`), creating it if new.

        `defaults` is called with a new, unsaved photo so the caller can fill
        in its values before it is inserted; it is not called for an existing
        photo.
        """
        photo = self.find_by_path(directory, basename)
        if photo is not None:
            return photo

        photo = Photo(directory=directory, basename=basename, is_locked=False)
        if defaults is not None:
            defaults(photo)
        if photo.created_at is None:
            photo.created_at = datetime.now()
        self._session.add(photo)
        self._session.flush()
        logger.info("Added {}", photo.filename)
        return photo

    def identical(self, photo: Photo) -> set[Photo]:
        """Other photos with the same content hash as `photo`."""
        stmt = select(Photo).where(Photo.sha1 == photo.sha1, Photo.id != photo.id)
        return set(self._session.scalars(stmt))

    def duplicate_groups(self) -> list[PhotoGroup]:
        """Groups of two or more photos sharing a content hash."""
        shared = (
            select(Photo.sha1).group_by(Photo.sha1).having(func.count(Photo.id) > 1).subquery()
        )
        stmt = (
            select(Photo)
            .where(Photo.sha1.in_(select(shared.c.sha1)))
            .order_by(Photo.sha1, Photo.directory, Photo.basename)
        )
        by_hash: dict[str, list[Photo]] = defaultdict(list)
        for photo in self._session.scalars(stmt):
            by_hash[photo.sha1].append(photo)
        return [
            PhotoGroup(group_number=n, sha1=sha1, items=items)
            for n, (sha1, items) in enumerate(by_hash.items(), start=1)
        ]

    # Query leaves
    def photos_with_tag_exact(self, text: str) -> set[Photo]:
        return set(self._session.scalars(select(Photo).join(Photo.tags).where(Tag.name == text)))

    def photos_with_tag_pattern(self, pattern: str) -> set[Photo]:
        like = _escape_like(pattern, keep_percent=True)
        stmt = select(Photo).join(Photo.tags).where(Tag.name.like(like, escape=LIKE_ESCAPE))
        return set(self._session.scalars(stmt))

    def photos_taken_on_prefix(self, date_prefix: str) -> set[Photo]:
        like = _escape_like(date_prefix) + "%"
        stmt = select(Photo).where(Photo.taken_time.like(like, escape=LIKE_ESCAPE))
        return set(self._session.scalars(stmt))

    def photos_taken_before(self, date: str) -> set[Photo]:
        stmt = select(Photo).where(Photo.taken_time != "", Photo.taken_time < date)
        return set(self._session.scalars(stmt))

    def photos_taken_on_or_after(self, date: str) -> set[Photo]:
        stmt = select(Photo).where(Photo.taken_time != "", Photo.taken_time >= date)
        return set(self._session.scalars(stmt))

    def photos_with_rating_in(self, ratings: set[int]) -> set[Photo]:
        if not ratings:
            return set()
        stmt = select(Photo).where(Photo.rating.in_(sorted(ratings)))
        return set(self._session.scalars(stmt))

    def photos_with_no_rating(self) -> set[Photo]:
        return set(self._session.scalars(select(Photo).where(Photo.rating.is_(None))))

    def all_photos_in_directory(self, directory: str, recursive: bool = False) -> set[Photo]:
        directory = directory.rstrip(os.sep) or os.sep
        condition = Photo.directory == directory
        if recursive:
            # LIKE ignores ASCII case in SQLite; directories must match exactly.
            prefix = os.path.join(directory, "")
            condition = or_(condition, func.substr(Photo.directory, 1, len(prefix)) == prefix)
        return set(self._session.scalars(select(Photo).where(condition)))

    # Tags
    def ensure_tag(self, text: str) -> Tag:
        """Return the tag named `text`, creating it the first time."""
        tag = self._session.scalars(select(Tag).where(Tag.name == text)).first()
        if tag is None:
            tag = Tag(name=text, created_at=datetime.now())
            self._session.add(tag)
            self._session.flush()
            logger.debug("Created tag {!r}", text)
        return tag

    def add_tag(self, photo: Photo, text: str) -> bool:
        """Tag `photo` with `text`; return False if it was already tagged."""
        tag = self.ensure_tag(text)
        if tag in photo.tags:
            return False
        photo.tags.append(tag)
        self._session.flush()
        logger.info("Tagged {} with {!r}", photo.filename, text)
        return True

    def remove_tag(self, photo: Photo, text: str) -> bool:
        """Remove tag `text` from `photo`; return False if it was not applied."""
        for tag in photo.tags:
            if tag.name == text:
                photo.tags.remove(tag)
                self._session.flush()
                logger.info("Removed tag {!r} from {}", text, photo.filename)
                return True
        return False

    def set_locked(self, photo: Photo, locked: bool) -> None:
        photo.is_locked = locked
        self._session.flush()
        logger.info("{} {}", "Locked" if locked else "Unlocked", photo.filename)

    def all_tags(self) -> list[str]:
        return list(self._session.scalars(select(Tag.name).order_by(Tag.name)))

    def tags_in_directory(self, directory: str) -> list[str]:
        """Names of the tags used by any photo in `directory`."""
        stmt = (
            select(Tag.name)
            .join(Tag.photos)
            .where(Photo.directory == directory)
            .distinct()
            .order_by(Tag.name)
        )
        return list(self._session.scalars(stmt))

    # Mutation
    def set_rating(self, photo: Photo, rating: int | None) -> None:
        if rating is not None and not 1 <= rating <= 5:
            raise ValueError(f"rating must be between 1 and 5, got {rating}")
        photo.rating = rating
        self._session.flush()
        logger.info("Rated {}: {}", photo.filename, rating)

    def purge(self, photo: Photo) -> None:
        """Delete `photo` together with its tag associations."""
        filename = photo.filename
        photo.tags.clear()
        self._session.delete(photo)
        self._session.flush()
        logger.info("Purged {}", filename)

    def move_directory(self, old_directory: str, new_directory: str) -> int:
        """Point every photo in `old_directory` at `new_directory`."""
        stmt = (
            update(Photo)
            .where(Photo.directory == old_directory)
            .values(directory=new_directory, updated_at=datetime.now())
            .execution_options(synchronize_session="fetch")
        )
        count = self._session.execute(stmt).rowcount
        logger.info("Moved {} photos from {} to {}", count, old_directory, new_directory)
        return count

    def commit(self) -> None:
        self._session.commit()

    def rollback(self) -> None:
        self._session.rollback()
