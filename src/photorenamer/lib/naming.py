"""Filename encoding of photo tags.

A tagged filename is the original stem, followed by one ``@name`` token per
tag in the order the tags were added, followed by the original extension::

    img.jpg  ->  img@beach.jpg  ->  img@beach@sunset.jpg

Names are handled as a base, an ordered list of tag tokens and an extension
rather than by substring arithmetic, so a tag that is a prefix of another
(``sun`` / ``sunset``) is never confused with it. Empty and repeated
tokens carry no tag and are dropped when a name is parsed, so formatting a
parsed name always gives the canonical name for its tags.
"""
from __future__ import annotations

import enum
import os
from dataclasses import dataclass, field
from pathlib import Path

from photorenamer.core.errors import InvalidTagError, RenameError

MARKER = "@"


class RenameMode(enum.Enum):
    ADD = "ADD"
    DELETE = "DELETE"


@dataclass(frozen=True)
class TaggedName:
    """A filename split into base, tag tokens and extension."""

    base: str
    tags: tuple[str, ...] = field(default_factory=tuple)
    ext: str = ""

    @classmethod
    def parse(cls, filename: str) -> "TaggedName":
        """Split ``filename`` into its parts.

        Examples:
            >>> TaggedName.parse("img@beach@sunset.jpg")
            TaggedName(base='img', tags=('beach', 'sunset'), ext='.jpg')
            >>> TaggedName.parse("img.jpg")
            TaggedName(base='img', tags=(), ext='.jpg')
            >>> TaggedName.parse("img@@a@a.jpg")
            TaggedName(base='img', tags=('a',), ext='.jpg')
        """
        p = Path(filename)
        ext = p.suffix
        stem = filename[: len(filename) - len(ext)] if ext else filename
        base, *tokens = stem.split(MARKER)
        tags: list[str] = []
        for t in tokens:
            if t and t not in tags:
                tags.append(t)
        return cls(base=base, tags=tuple(tags), ext=ext)

    def format(self) -> str:
        return self.base + "".join(MARKER + t for t in self.tags) + self.ext

    def with_tag(self, tag_name: str) -> "TaggedName":
        if tag_name in self.tags:
            return self
        return TaggedName(self.base, self.tags + (tag_name,), self.ext)

    def without_tag(self, tag_name: str) -> "TaggedName":
        if tag_name not in self.tags:
            return self
        tags = list(self.tags)
        tags.remove(tag_name)
        return TaggedName(self.base, tuple(tags), self.ext)


def validate_tag_name(name: str) -> str:
    """Return ``name`` stripped of surrounding whitespace, or raise.

    A tag must be non-empty and must not contain the marker character or a
    path separator, since it becomes part of a filename.
    """
    cleaned = (name or "").strip()
    if not cleaned:
        raise InvalidTagError("Tag name must not be empty")
    if MARKER in cleaned:
        raise InvalidTagError(f"Tag name must not contain '{MARKER}': {cleaned!r}")
    if "/" in cleaned or "\\" in cleaned:
        raise InvalidTagError(f"Tag name must not contain a path separator: {cleaned!r}")
    return cleaned


def apply(current_name: str, tag_name: str, mode: RenameMode) -> str:
    """Compute the filename after adding or removing one tag.

    The result is always the canonical name for the resulting tags. For a
    canonical ``current_name``, adding a tag it already carries, or removing
    one it does not carry, returns it unchanged.

    Examples:
        >>> apply("img.jpg", "beach", RenameMode.ADD)
        'img@beach.jpg'
        >>> apply("img@beach@sunset.jpg", "beach", RenameMode.DELETE)
        'img@sunset.jpg'
    """
    parsed = TaggedName.parse(current_name)
    if mode is RenameMode.ADD:
        updated = parsed.with_tag(tag_name)
    elif mode is RenameMode.DELETE:
        updated = parsed.without_tag(tag_name)
    else:
        raise ValueError(f"Unknown rename mode: {mode!r}")
    return updated.format()


def identity_of(filename: str) -> str:
    """Strip every encoded tag from ``filename``.

    Examples:
        >>> identity_of("img@beach@sunset.jpg")
        'img.jpg'
    """
    parsed = TaggedName.parse(filename)
    return parsed.base + parsed.ext


def tags_of(filename: str) -> list[str]:
    """Return the tag tokens encoded in ``filename``, in order."""
    return list(TaggedName.parse(filename).tags)


def canonical_name(filename: str) -> str:
    """Rewrite ``filename`` without empty or repeated tag tokens.

    Examples:
        >>> canonical_name("img@@b@b.jpg")
        'img@b.jpg'
    """
    return TaggedName.parse(filename).format()


def move(file_path: Path, new_name: str) -> Path:
    """Rename ``file_path`` to ``new_name`` inside the same directory.

    Returns the new path. Renaming a file to its own name does nothing.

    Raises:
        RenameError: the source is missing, the destination is a different
            existing file, or the OS refuses the rename.
    """
    src = Path(file_path)
    dst = src.with_name(new_name)
    if src.name == new_name:
        return src
    if not src.exists():
        raise RenameError(f"Cannot rename {src}: file does not exist")
    if dst.exists():
        try:
            same = os.path.samefile(src, dst)
        except OSError as exc:
            raise RenameError(f"Cannot rename {src} -> {dst.name}: {exc}") from exc
        if not same:
            raise RenameError(f"Cannot rename {src} -> {dst.name}: destination already exists")
    try:
        src.rename(dst)
    except OSError as exc:
        raise RenameError(f"Cannot rename {src} -> {dst.name}: {exc}") from exc
    return dst
