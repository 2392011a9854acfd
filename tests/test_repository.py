import logging
from datetime import datetime, timedelta

from photorenamer.core.context import TaggingContext
from photorenamer.core.photo import PhotoRecord
from photorenamer.core.tag import Tag, TagIndex
from photorenamer.lib.database import InMemoryAdapter, normalize_db_url
from photorenamer.services.repository import IndexRepository


def make_clock():
    current = [datetime(2024, 5, 1, 10, 0, 0)]

    def clock():
        current[0] += timedelta(minutes=1)
        return current[0]

    return clock


def open_stores(tmp_path):
    return IndexRepository.from_urls(str(tmp_path / "tags.db"), str(tmp_path / "photos.db"))


def test_empty_stores_load_empty_indices(tmp_path):
    repo = open_stores(tmp_path)
    tags, photos = repo.load()
    assert tags.all() == {}
    assert photos.all() == {}
    assert (tmp_path / "tags.db").exists()
    assert (tmp_path / "photos.db").exists()


def test_indices_survive_reload(tmp_path):
    pictures = tmp_path / "pictures"
    pictures.mkdir()
    (pictures / "a.jpg").write_bytes(b"a")
    (pictures / "b.jpg").write_bytes(b"b")

    repo = open_stores(tmp_path)
    ctx = TaggingContext.open(repo, clock=make_clock(), check_media=False)
    a = ctx.select(pictures / "a.jpg")
    b = ctx.select(pictures / "b.jpg")
    ctx.add_tags(a, "beach, sunset")
    ctx.add_tags(b, "beach")
    ctx.delete_tags(a, "sunset")
    repo.close()

    repo2 = open_stores(tmp_path)
    ctx2 = TaggingContext.open(repo2, clock=make_clock(), check_media=False)
    a2 = ctx2.photos.get("a.jpg")
    b2 = ctx2.photos.get("b.jpg")

    assert a2.current_name == "a@beach.jpg"
    assert a2.file_path == a.file_path
    assert a2.file_path.name == "a@beach.jpg"
    assert set(a2.tags) == {"beach"}
    assert a2.history == a.history
    assert a2.creation_timestamp == a.creation_timestamp
    assert a2.current_timestamp == a.current_timestamp
    assert b2.current_name == "b@beach.jpg"
    assert set(ctx2.tags.all()) == {"beach"}
    assert set(ctx2.tags.get("beach").photos) == {"a.jpg", "b.jpg"}
    assert ctx2.tags.get("beach").photos["a.jpg"] is a2

    # the reloaded record can still be reverted
    assert ctx2.revert(a2, a2.creation_timestamp)
    assert (pictures / "a.jpg").exists()
    assert set(ctx2.tags.get("beach").photos) == {"b.jpg"}


def test_stale_tag_memberships_are_dropped(tmp_path, caplog):
    repo = open_stores(tmp_path)
    ghost = Tag("ghost")
    ghost.add_photo(PhotoRecord("ghost.jpg", tmp_path / "ghost.jpg"))
    repo.store_tags(TagIndex([ghost]))

    with caplog.at_level(logging.WARNING):
        tags, photos = repo.load()

    assert "ghost" in tags
    assert tags.get("ghost").unused
    assert "stale membership" in caplog.text


def test_tags_missing_from_tag_store_are_restored(tmp_path):
    adapter = InMemoryAdapter()
    repo = IndexRepository(adapter.tag_session(), adapter.photo_session())
    ctx = TaggingContext.open(repo, clock=make_clock(), check_media=False)
    (tmp_path / "img.jpg").write_bytes(b"x")
    photo = ctx.select(tmp_path / "img.jpg")
    ctx.add_tags(photo, "beach")

    repo.store_tags(TagIndex())
    tags, photos = repo.load()
    assert set(tags.get("beach").photos) == {"img.jpg"}


def test_normalize_db_url():
    assert normalize_db_url("sqlite:///:memory:") == "sqlite:///:memory:"
    assert normalize_db_url("/var/lib/photos.db") == "sqlite:////var/lib/photos.db"
    assert normalize_db_url("photos.db").startswith("sqlite:///")
    assert normalize_db_url("photos.db").endswith("/photos.db")
