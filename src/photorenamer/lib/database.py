from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
import os


def get_engine(url: str | None = None):
    """Create a SQLAlchemy engine. Defaults to in-memory SQLite when url is None."""
    url = url or "sqlite:///:memory:"
    url = normalize_db_url(url)
    engine = create_engine(url, echo=False, future=True, pool_pre_ping=True)
    return engine


def normalize_db_url(value: str) -> str:
    """Normalize a store location into a SQLAlchemy URL.

    - If value already looks like a URL (contains '://'), return as-is.
    - Otherwise treat it as a filesystem path and convert to a sqlite URL,
      resolving relative paths against the current working directory.

    Examples:
        >>> normalize_db_url("sqlite:///:memory:")
        'sqlite:///:memory:'
        >>> normalize_db_url("/var/lib/photos.db")
        'sqlite:////var/lib/photos.db'
    """
    if not value:
        return value

    if "://" in value:
        return value

    # normalize backslashes for sqlite URL
    v = os.path.abspath(value).replace("\\", "/")
    return f"sqlite:///{v}"


def get_sessionmaker(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine, tables=None):
    """Create the given tables (all model tables when None) if missing."""
    # Import models lazily to avoid circular imports at package import time
    from photorenamer.models import Base

    Base.metadata.create_all(engine, tables=tables)


class InMemoryAdapter:
    """In-memory tag and photo stores for tests.

    Usage:
        adapter = InMemoryAdapter()
        repo = IndexRepository(adapter.tag_session(), adapter.photo_session())
    """

    def __init__(self):
        from photorenamer.models import TAG_STORE_TABLES, PHOTO_STORE_TABLES

        self.tag_engine = get_engine("sqlite:///:memory:")
        self.photo_engine = get_engine("sqlite:///:memory:")
        init_db(self.tag_engine, TAG_STORE_TABLES)
        init_db(self.photo_engine, PHOTO_STORE_TABLES)
        self.TagSession = get_sessionmaker(self.tag_engine)
        self.PhotoSession = get_sessionmaker(self.photo_engine)

    def tag_session(self):
        return self.TagSession()

    def photo_session(self):
        return self.PhotoSession()
