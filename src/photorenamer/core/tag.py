from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Optional

from photorenamer.core.errors import NotFoundError
from photorenamer.lib.naming import validate_tag_name

if TYPE_CHECKING:
    from photorenamer.core.photo import PhotoRecord
    from photorenamer.services.repository import IndexRepository

logger = logging.getLogger(__name__)


class Tag:
    """A named label and the photos currently bearing it.

    Photos are keyed by their identity, so a photo that has been renamed
    many times is still a single member.
    """

    def __init__(self, name: str):
        self.name = validate_tag_name(name)
        self.photos: dict[str, "PhotoRecord"] = {}

    def add_photo(self, photo: "PhotoRecord") -> None:
        self.photos[photo.identity] = photo

    def remove_photo(self, photo: "PhotoRecord") -> None:
        self.photos.pop(photo.identity, None)

    def has_photo(self, photo: "PhotoRecord") -> bool:
        return self.photos.get(photo.identity) is photo

    @property
    def unused(self) -> bool:
        return not self.photos

    def __repr__(self) -> str:
        return f"Tag({self.name!r}, photos={sorted(self.photos)!r})"


class TagIndex:
    """All known tags, by name.

    Every mutating call writes the whole index through the repository (when
    one is attached) before returning, unless called with ``persist=False``
    while a failed operation is being unwound.
    """

    def __init__(self, tags: Optional[Iterable[Tag]] = None, repository: Optional["IndexRepository"] = None):
        self._tags: dict[str, Tag] = {t.name: t for t in (tags or [])}
        self._repository = repository

    def find(self, name: str) -> Optional[Tag]:
        return self._tags.get(name)

    def get(self, name: str) -> Tag:
        tag = self._tags.get(name)
        if tag is None:
            raise NotFoundError(f"No tag named {name!r}")
        return tag

    def find_or_create(self, name: str) -> Tag:
        """Return the known tag called ``name`` or a new, unregistered one."""
        name = validate_tag_name(name)
        return self._tags.get(name) or Tag(name)

    def register(self, tag: Tag, persist: bool = True) -> None:
        if self._tags.get(tag.name) is not tag:
            logger.debug("Registering tag %r", tag.name)
        self._tags[tag.name] = tag
        if persist:
            self.persist()

    def sweep_unused(self, persist: bool = True) -> list[str]:
        """Drop every tag with no photos and return the dropped names."""
        removed = [name for name, tag in self._tags.items() if tag.unused]
        for name in removed:
            del self._tags[name]
        if removed:
            logger.debug("Swept unused tags: %s", ", ".join(sorted(removed)))
        if persist:
            self.persist()
        return removed

    def all(self) -> dict[str, Tag]:
        return dict(self._tags)

    def persist(self) -> None:
        if self._repository is not None:
            self._repository.store_tags(self)

    def attach_repository(self, repository: "IndexRepository") -> None:
        self._repository = repository

    def __contains__(self, name: str) -> bool:
        return name in self._tags

    def __len__(self) -> int:
        return len(self._tags)
