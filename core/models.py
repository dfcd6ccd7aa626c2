"""Core domain models for photo records, tags and identical-photo groups."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import os

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship


class Base(DeclarativeBase):
    pass


photo_tags = Table(
    "photo_tags",
    Base.metadata,
    Column("photo_id", Integer, ForeignKey("photos.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class Photo(Base):
    """A single image file known to the catalogue.

    The (directory, basename) pair is the natural key; `id` is only used for
    the tag association and for identity within a session.
    """

    __tablename__ = "photos"
    __table_args__ = (UniqueConstraint("directory", "basename", name="uq_photos_path"),)

    id = Column(Integer, primary_key=True)
    directory = Column(String(500), nullable=False)
    basename = Column(String(500), nullable=False)
    sha1 = Column(String(28), nullable=False, index=True)
    # Date the file was modified
    filedate = Column(DateTime, nullable=False)
    # "yyyy-mm-dd hh:mm:ss", compared as a string
    taken_time = Column(String(100), nullable=True, index=True)
    rating = Column(Integer, nullable=True)
    pixel_width = Column(Integer, nullable=True)
    pixel_height = Column(Integer, nullable=True)
    is_locked = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    tags = relationship("Tag", secondary=photo_tags, back_populates="photos")

    @property
    def filename(self) -> str:
        """Full path of the photo file."""
        return os.path.join(self.directory, self.basename)

    @property
    def tag_names(self) -> list[str]:
        """Sorted texts of the tags applied to this photo."""
        return sorted(t.name for t in self.tags)

    def __repr__(self) -> str:
        return f"Photo(id={self.id!r}, filename={self.filename!r})"


class Tag(Base):
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True)
    created_at = Column(DateTime, nullable=True, default=datetime.now)

    photos = relationship("Photo", secondary=photo_tags, back_populates="tags")

    def __repr__(self) -> str:
        return f"Tag(name={self.name!r})"


@dataclass
class PhotoGroup:
    """A collection of photos sharing one content hash."""

    group_number: int
    sha1: str
    items: list[Photo] = field(default_factory=list)
