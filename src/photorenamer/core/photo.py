"""The versioned photo record.

A ``PhotoRecord`` owns its tag set and a history of snapshots keyed by
second-precision timestamps. Snapshots are plain values (a name and a set of
tag names); they never hold live tags or other records.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from photorenamer.core.errors import PersistenceError, RenameError
from photorenamer.lib import naming
from photorenamer.lib.naming import RenameMode

if TYPE_CHECKING:
    from photorenamer.core.context import TaggingContext
    from photorenamer.core.tag import Tag

logger = logging.getLogger(__name__)
rename_log = logging.getLogger("photorenamer.renames")

TIMESTAMP_FORMAT = "%Y/%m/%d %H:%M:%S"


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value, TIMESTAMP_FORMAT)


@dataclass(frozen=True)
class PhotoSnapshot:
    name: str
    tag_names: frozenset[str] = field(default_factory=frozenset)


@dataclass
class _Checkpoint:
    """What a mutation needs to put back when it fails part way."""

    name: str
    current_timestamp: Optional[str]
    tags: dict
    history: dict


class PhotoRecord:
    """A photo on disk, its current tags and its renaming history.

    ``identity`` is the untagged filename the photo was first registered
    under and never changes. ``current_name`` is always the identity with the
    current tags encoded into it.
    """

    def __init__(
        self,
        identity: str,
        file_path: Path,
        creation_timestamp: Optional[str] = None,
        current_name: Optional[str] = None,
    ):
        self.identity = identity
        self.file_path = Path(file_path)
        self.current_name = current_name or self.file_path.name
        self.creation_timestamp = creation_timestamp or format_timestamp(datetime.now())
        self.current_timestamp: Optional[str] = None
        self.tags: dict[str, "Tag"] = {}
        self.history: dict[str, PhotoSnapshot] = {}

    # Mutations
    def add_tag(self, tag: "Tag", ctx: "TaggingContext") -> None:
        """Attach ``tag`` and encode it into the filename.

        Adding a tag the photo already has leaves the tag set alone but still
        records a snapshot.

        Raises:
            RenameError: the file could not be renamed.
            PersistenceError: an index could not be stored.

        On either error the record, both indices and the file on disk are
        put back as they were before the call.
        """
        checkpoint = self._checkpoint()
        self._ensure_baseline()
        existing = self.tags.get(tag.name)
        if existing is not None:
            tag = existing
        try:
            self.tags[tag.name] = tag
            tag.add_photo(self)
            ctx.tags.register(tag)
            self._rename(naming.apply(self.current_name, tag.name, RenameMode.ADD))
            self._record(ctx)
            ctx.photos.register(self)
        except (RenameError, PersistenceError) as exc:
            self._restore(checkpoint, ctx, exc)
            raise
        ctx.verify(self)

    def delete_tag(self, tag: "Tag", ctx: "TaggingContext") -> None:
        """Detach ``tag`` and drop it from the filename.

        Deleting a tag the photo does not have still records a snapshot.
        Failures are unwound the same way as in :meth:`add_tag`.
        """
        checkpoint = self._checkpoint()
        self._ensure_baseline()
        try:
            current = self.tags.pop(tag.name, None)
            (current or tag).remove_photo(self)
            ctx.tags.sweep_unused()
            self._rename(naming.apply(self.current_name, tag.name, RenameMode.DELETE))
            self._record(ctx)
            ctx.photos.register(self)
        except (RenameError, PersistenceError) as exc:
            self._restore(checkpoint, ctx, exc)
            raise
        ctx.verify(self)

    def revert(self, timestamp: str, ctx: "TaggingContext") -> bool:
        """Restore the name and tags recorded at ``timestamp``.

        History later than ``timestamp`` is discarded. Returns False, without
        touching anything, when no snapshot was recorded at ``timestamp``.
        Tags come back in the order the restored name lists them.
        """
        snapshot = self.history.get(timestamp)
        if snapshot is None:
            logger.debug("No snapshot of %s at %s; nothing to revert", self.identity, timestamp)
            return False

        checkpoint = self._checkpoint()
        encoded = [n for n in naming.tags_of(snapshot.name) if n in snapshot.tag_names]
        order = encoded + sorted(snapshot.tag_names - set(encoded))
        try:
            self._rename(snapshot.name)

            restored: dict[str, "Tag"] = {}
            for name in order:
                tag = self.tags.get(name) or ctx.tags.find_or_create(name)
                tag.add_photo(self)
                ctx.tags.register(tag, persist=False)
                restored[name] = tag
            for name, tag in self.tags.items():
                if name not in restored:
                    tag.remove_photo(self)
            self.tags = restored

            self._prune_after(timestamp)
            self.current_timestamp = timestamp

            ctx.tags.sweep_unused()
            ctx.photos.persist()
        except (RenameError, PersistenceError) as exc:
            self._restore(checkpoint, ctx, exc)
            raise
        ctx.verify(self)
        rename_log.info("Reverted %s to %s with name %s", self.identity, timestamp, self.current_name)
        return True

    def adopt_tags(self, names: list[str], ctx: "TaggingContext") -> None:
        """Link tags already encoded in ``current_name``.

        Used when a file is first seen with tags in its name. The untagged
        baseline is recorded first, so reverting to it strips them. A name
        with empty or repeated tag tokens is renamed to its canonical form.
        """
        checkpoint = self._checkpoint()
        self._ensure_baseline()
        try:
            for name in names:
                tag = ctx.tags.find_or_create(name)
                self.tags[tag.name] = tag
                tag.add_photo(self)
                ctx.tags.register(tag)
            self._rename(naming.canonical_name(self.current_name))
            self._record(ctx)
            ctx.photos.register(self)
        except (RenameError, PersistenceError) as exc:
            self._restore(checkpoint, ctx, exc)
            raise
        ctx.verify(self)

    # Queries
    @property
    def tag_names(self) -> frozenset[str]:
        return frozenset(self.tags)

    def snapshots(self) -> list[tuple[str, PhotoSnapshot]]:
        """History entries in chronological order."""
        return sorted(self.history.items(), key=lambda item: parse_timestamp(item[0]))

    def describe_tags(self) -> str:
        lines = ["Here are all tags for this photo:"]
        lines.extend(sorted(self.tags))
        return "\n".join(lines) + "\n"

    # Internals
    def _ensure_baseline(self) -> None:
        if self.current_timestamp is not None:
            return
        self.history[self.creation_timestamp] = PhotoSnapshot(self.identity, frozenset())
        self.current_timestamp = self.creation_timestamp

    def _checkpoint(self) -> _Checkpoint:
        return _Checkpoint(
            name=self.current_name,
            current_timestamp=self.current_timestamp,
            tags=dict(self.tags),
            history=dict(self.history),
        )

    def _restore(self, checkpoint: _Checkpoint, ctx: "TaggingContext", error: Exception) -> None:
        # the file goes back first; if that fails memory still matches the disk
        self._rename(checkpoint.name)

        for name, tag in self.tags.items():
            if checkpoint.tags.get(name) is not tag:
                tag.remove_photo(self)
        for tag in checkpoint.tags.values():
            tag.add_photo(self)
            ctx.tags.register(tag, persist=False)
        self.tags = dict(checkpoint.tags)
        self.history = dict(checkpoint.history)
        self.current_timestamp = checkpoint.current_timestamp
        ctx.tags.sweep_unused(persist=False)
        logger.warning("Rolled back change to %s: %s", self.identity, error)

        if isinstance(error, RenameError):
            ctx.tags.persist()
            ctx.photos.persist()

    def _rename(self, new_name: str) -> None:
        if new_name == self.current_name:
            return
        self.file_path = naming.move(self.file_path, new_name)
        old_name, self.current_name = self.current_name, new_name
        rename_log.info("Renamed photo %s to %s", old_name, new_name)

    def _record(self, ctx: "TaggingContext") -> str:
        stamp = self._next_timestamp(ctx)
        self.history[stamp] = PhotoSnapshot(self.current_name, self.tag_names)
        self.current_timestamp = stamp
        return stamp

    def _next_timestamp(self, ctx: "TaggingContext") -> str:
        # keys are second precision; never reuse or go behind the latest one
        moment = ctx.now().replace(microsecond=0)
        if self.history:
            latest = max(parse_timestamp(key) for key in self.history)
            if moment <= latest:
                moment = latest + timedelta(seconds=1)
        return format_timestamp(moment)

    def _prune_after(self, timestamp: str) -> None:
        cutoff = parse_timestamp(timestamp)
        for key in [k for k in self.history if parse_timestamp(k) > cutoff]:
            del self.history[key]

    def __repr__(self) -> str:
        return f"PhotoRecord({self.identity!r}, current_name={self.current_name!r}, tags={sorted(self.tags)!r})"
