from __future__ import annotations

import json
import logging
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from photorenamer.core.errors import PersistenceError
from photorenamer.core.photo import PhotoRecord, PhotoSnapshot
from photorenamer.core.photo_index import PhotoIndex
from photorenamer.core.tag import Tag, TagIndex
from photorenamer.lib.database import get_engine, get_sessionmaker, init_db
from photorenamer.models import (
    PHOTO_STORE_TABLES,
    TAG_STORE_TABLES,
    PhotoEntry,
    PhotoTag,
    SnapshotEntry,
    TagEntry,
    TagMember,
)

logger = logging.getLogger(__name__)

DEFAULT_TAG_STORE = "./tag_manager.db"
DEFAULT_PHOTO_STORE = "./photos.db"


class IndexRepository:
    """Loads and stores the tag and photo indices.

    Each index lives in its own store and is rewritten in full, inside one
    transaction, every time it is stored, so a reader sees either the
    previous state or the new one.
    """

    def __init__(self, tag_session: Session, photo_session: Session):
        self.tag_session = tag_session
        self.photo_session = photo_session

    @classmethod
    def from_urls(cls, tag_store: str | None = None, photo_store: str | None = None) -> "IndexRepository":
        """Open (creating if needed) the two stores. Plain paths become SQLite files."""
        tag_engine = get_engine(tag_store or DEFAULT_TAG_STORE)
        photo_engine = get_engine(photo_store or DEFAULT_PHOTO_STORE)
        try:
            init_db(tag_engine, TAG_STORE_TABLES)
            init_db(photo_engine, PHOTO_STORE_TABLES)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Cannot open index stores: {exc}") from exc
        return cls(get_sessionmaker(tag_engine)(), get_sessionmaker(photo_engine)())

    # Loading
    def load(self) -> tuple[TagIndex, PhotoIndex]:
        """Read both stores. Empty stores give empty indices."""
        try:
            tag_rows = self.tag_session.query(TagEntry).all()
            member_rows = (
                self.tag_session.query(TagEntry.name, TagMember.photo_identity)
                .filter(TagEntry.id == TagMember.tag_id)
                .all()
            )
            photo_rows = self.photo_session.query(PhotoEntry).all()
            photo_tag_rows = self.photo_session.query(PhotoTag).order_by(PhotoTag.photo_id, PhotoTag.position).all()
            snapshot_rows = self.photo_session.query(SnapshotEntry).all()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Cannot read index stores: {exc}") from exc

        tags: dict[str, Tag] = {row.name: Tag(row.name) for row in tag_rows}

        photos_by_id: dict[int, PhotoRecord] = {}
        for row in photo_rows:
            photo = PhotoRecord(
                row.identity,
                Path(row.file_path),
                creation_timestamp=row.creation_timestamp,
                current_name=row.current_name,
            )
            photo.current_timestamp = row.active_timestamp
            photos_by_id[row.id] = photo

        for row in snapshot_rows:
            photo = photos_by_id.get(row.photo_id)
            if photo is None:
                continue
            photo.history[row.recorded_at] = PhotoSnapshot(row.name, frozenset(json.loads(row.tag_names or "[]")))

        # the photo store is authoritative for who carries which tag
        for row in photo_tag_rows:
            photo = photos_by_id.get(row.photo_id)
            if photo is None:
                continue
            tag = tags.get(row.tag_name)
            if tag is None:
                logger.warning("Tag %r of %s missing from tag store; restoring it", row.tag_name, photo.identity)
                tag = tags[row.tag_name] = Tag(row.tag_name)
            photo.tags[tag.name] = tag
            tag.add_photo(photo)

        for tag_name, identity in member_rows:
            tag = tags.get(tag_name)
            if tag is None or identity not in tag.photos:
                logger.warning("Dropping stale membership of %s in tag %r", identity, tag_name)

        tag_index = TagIndex(tags.values(), repository=self)
        photo_index = PhotoIndex(photos_by_id.values(), repository=self)
        logger.debug("Loaded %d tags and %d photos", len(tag_index), len(photo_index))
        return tag_index, photo_index

    # Storing
    def store_tags(self, tag_index: TagIndex) -> None:
        session = self.tag_session
        try:
            session.query(TagMember).delete()
            session.query(TagEntry).delete()
            for tag in tag_index.all().values():
                entry = TagEntry(name=tag.name)
                session.add(entry)
                session.flush()
                session.add_all(TagMember(tag_id=entry.id, photo_identity=identity) for identity in tag.photos)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise PersistenceError(f"Cannot store tag index: {exc}") from exc

    def store_photos(self, photo_index: PhotoIndex) -> None:
        session = self.photo_session
        try:
            session.query(SnapshotEntry).delete()
            session.query(PhotoTag).delete()
            session.query(PhotoEntry).delete()
            for photo in photo_index.all().values():
                entry = PhotoEntry(
                    identity=photo.identity,
                    current_name=photo.current_name,
                    file_path=str(photo.file_path),
                    creation_timestamp=photo.creation_timestamp,
                    active_timestamp=photo.current_timestamp,
                )
                session.add(entry)
                session.flush()
                session.add_all(
                    PhotoTag(photo_id=entry.id, tag_name=name, position=i)
                    for i, name in enumerate(photo.tags)
                )
                session.add_all(
                    SnapshotEntry(
                        photo_id=entry.id,
                        recorded_at=stamp,
                        name=snap.name,
                        tag_names=json.dumps(sorted(snap.tag_names)),
                    )
                    for stamp, snap in photo.history.items()
                )
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise PersistenceError(f"Cannot store photo index: {exc}") from exc

    def close(self) -> None:
        self.tag_session.close()
        self.photo_session.close()
