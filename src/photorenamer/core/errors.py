"""Exception types raised by the tagging core."""


class PhotoRenamerError(Exception):
    """Base class for every error raised by photorenamer."""


class NotFoundError(PhotoRenamerError, LookupError):
    """Raised when a tag, photo or snapshot is not known."""


class InvalidTagError(PhotoRenamerError, ValueError):
    """Raised when a tag name cannot be encoded into a filename."""


class UnsupportedMediaError(PhotoRenamerError, ValueError):
    """Raised when a selected file is not an image or video."""


class RenameError(PhotoRenamerError, OSError):
    """Raised when the physical rename of a photo fails.

    The change that triggered the rename has already been rolled back by the
    time this reaches the caller.
    """


class PersistenceError(PhotoRenamerError, OSError):
    """Raised when an index cannot be written to or read from its store.

    A photo mutation that hits this puts its record, the tag index and the
    file name back as they were before re-raising.
    """


class ConsistencyError(PhotoRenamerError, RuntimeError):
    """Raised when tag and photo memberships disagree.

    This indicates a programming error; callers should not try to recover.
    """
