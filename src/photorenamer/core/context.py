from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

from photorenamer.core.errors import ConsistencyError, UnsupportedMediaError
from photorenamer.core.photo import PhotoRecord
from photorenamer.core.photo_index import PhotoIndex
from photorenamer.core.tag import TagIndex
from photorenamer.lib.filetype import detect_media_type, is_supported_media


def split_tag_names(names: Union[str, Iterable[str]]) -> list[str]:
    """Turn ``"a, b,,c"`` (or an iterable of names) into ``["a", "b", "c"]``."""
    if isinstance(names, str):
        names = names.split(",")
    out: list[str] = []
    for n in names:
        n = n.strip()
        if n and n not in out:
            out.append(n)
    return out


class TaggingContext:
    """One tagging session: both indices, their repository and a clock.

    Built once per session and handed to every photo operation.

    Usage:
        ctx = TaggingContext.open(IndexRepository.from_urls(tag_url, photo_url))
        photo = ctx.select("/photos/img.jpg")
        ctx.add_tags(photo, "beach, sunset")
    """

    def __init__(
        self,
        tags: Optional[TagIndex] = None,
        photos: Optional[PhotoIndex] = None,
        repository=None,
        clock: Optional[Callable[[], datetime]] = None,
        check_media: bool = True,
    ):
        self.tags = tags if tags is not None else TagIndex(repository=repository)
        self.photos = photos if photos is not None else PhotoIndex(repository=repository)
        self.repository = repository
        self.clock = clock or datetime.now
        self.check_media = check_media

    @classmethod
    def open(cls, repository, clock: Optional[Callable[[], datetime]] = None, check_media: bool = True) -> "TaggingContext":
        tags, photos = repository.load()
        ctx = cls(tags, photos, repository=repository, clock=clock, check_media=check_media)
        ctx.verify_all()
        return ctx

    def now(self) -> datetime:
        return self.clock()

    def select(self, path: Union[str, Path]) -> PhotoRecord:
        """Resolve a file on disk to its photo record."""
        path = Path(path)
        if self.check_media:
            media_type = detect_media_type(str(path))
            if media_type is not None and not is_supported_media(media_type):
                raise UnsupportedMediaError(f"{path.name} is not an image ({media_type})")
        return self.photos.select(path, self)

    def add_tags(self, photo: PhotoRecord, names: Union[str, Iterable[str]]) -> list[str]:
        """Add each named tag the photo does not already have; return those added."""
        added = []
        for name in split_tag_names(names):
            if name in photo.tags:
                continue
            photo.add_tag(self.tags.find_or_create(name), self)
            added.append(name)
        return added

    def delete_tags(self, photo: PhotoRecord, names: Union[str, Iterable[str]]) -> list[str]:
        """Delete each named tag from the photo; return the names it actually had."""
        removed = []
        for name in split_tag_names(names):
            had = name in photo.tags
            tag = photo.tags.get(name) or self.tags.find_or_create(name)
            photo.delete_tag(tag, self)
            if had:
                removed.append(name)
        return removed

    def revert(self, photo: PhotoRecord, timestamp: str) -> bool:
        return photo.revert(timestamp, self)

    def verify(self, photo: PhotoRecord) -> None:
        """Check that ``photo`` and every tag agree on membership."""
        for name, tag in photo.tags.items():
            if tag.name != name or not tag.has_photo(photo):
                raise ConsistencyError(f"{photo.identity} lists tag {name!r} but the tag does not list it")
            if self.tags.find(name) is not tag:
                raise ConsistencyError(f"{photo.identity} holds tag {name!r} unknown to the tag index")
        for name, tag in self.tags.all().items():
            if photo.identity in tag.photos and photo.tags.get(name) is not tag:
                raise ConsistencyError(f"Tag {name!r} lists {photo.identity} but the photo does not carry it")

    def verify_all(self) -> None:
        for photo in self.photos.all().values():
            self.verify(photo)
