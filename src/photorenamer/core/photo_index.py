from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Optional

from photorenamer.core.errors import NotFoundError
from photorenamer.core.photo import PhotoRecord, format_timestamp
from photorenamer.lib.naming import canonical_name, identity_of, tags_of

if TYPE_CHECKING:
    from photorenamer.core.context import TaggingContext
    from photorenamer.services.repository import IndexRepository

logger = logging.getLogger(__name__)


class PhotoIndex:
    """All known photo records, keyed by identity (the untagged filename)."""

    def __init__(self, photos: Optional[Iterable[PhotoRecord]] = None, repository: Optional["IndexRepository"] = None):
        self._photos: dict[str, PhotoRecord] = {p.identity: p for p in (photos or [])}
        self._repository = repository

    def find(self, identity: str) -> Optional[PhotoRecord]:
        return self._photos.get(identity)

    def get(self, identity: str) -> PhotoRecord:
        photo = self._photos.get(identity)
        if photo is None:
            raise NotFoundError(f"No photo with identity {identity!r}")
        return photo

    def register(self, photo: PhotoRecord) -> None:
        self._photos[photo.identity] = photo
        self.persist()

    def all(self) -> dict[str, PhotoRecord]:
        return dict(self._photos)

    def persist(self) -> None:
        if self._repository is not None:
            self._repository.store_photos(self)

    def attach_repository(self, repository: "IndexRepository") -> None:
        self._repository = repository

    def select(self, path: Path, ctx: "TaggingContext") -> PhotoRecord:
        """Return the record for the file at ``path``, creating it if needed.

        The file's identity is its name with any encoded tags stripped, so
        ``img@beach.jpg`` resolves to the record first registered as
        ``img.jpg``. A file seen for the first time that already carries tags
        in its name adopts them, and a name with empty or repeated tag tokens
        (``img@@beach@beach.jpg``) is renamed to its canonical form.
        """
        path = Path(path).resolve()
        identity = identity_of(path.name)

        photo = self._photos.get(identity)
        if photo is not None:
            if photo.current_name != path.name:
                logger.warning(
                    "Selected %s but %s is recorded as %s", path.name, identity, photo.current_name
                )
            photo.file_path = path.with_name(photo.current_name)
            return photo

        photo = PhotoRecord(identity, path, creation_timestamp=format_timestamp(ctx.now()))
        logger.info("New photo %s (%s)", identity, path)
        self.register(photo)
        encoded = tags_of(path.name)
        if encoded or canonical_name(path.name) != path.name:
            photo.adopt_tags(encoded, ctx)
        return photo

    def __contains__(self, identity: str) -> bool:
        return identity in self._photos

    def __len__(self) -> int:
        return len(self._photos)
