from sqlalchemy.orm import declarative_base

Base = declarative_base()

from .tag import TagEntry, TagMember  # noqa: F401
from .photo import PhotoEntry  # noqa: F401
from .phototag import PhotoTag  # noqa: F401
from .snapshot import SnapshotEntry  # noqa: F401

# Each index lives in its own store; create_all is scoped to these lists.
TAG_STORE_TABLES = [TagEntry.__table__, TagMember.__table__]
PHOTO_STORE_TABLES = [PhotoEntry.__table__, PhotoTag.__table__, SnapshotEntry.__table__]
