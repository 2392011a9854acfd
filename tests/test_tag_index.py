import pytest

from photorenamer.core.errors import InvalidTagError, NotFoundError
from photorenamer.core.photo import PhotoRecord
from photorenamer.core.tag import Tag, TagIndex
from photorenamer.lib.database import InMemoryAdapter
from photorenamer.services.repository import IndexRepository


def make_repo():
    adapter = InMemoryAdapter()
    return IndexRepository(adapter.tag_session(), adapter.photo_session())


def test_register_and_find():
    index = TagIndex()
    beach = Tag("beach")
    index.register(beach)

    assert index.find("beach") is beach
    assert index.get("beach") is beach
    assert index.find("sea") is None
    with pytest.raises(NotFoundError):
        index.get("sea")
    assert set(index.all()) == {"beach"}


def test_register_overwrites_by_name():
    index = TagIndex()
    first, second = Tag("beach"), Tag("beach")
    index.register(first)
    index.register(second)
    assert index.find("beach") is second
    assert len(index) == 1


def test_find_or_create_reuses_known_tags():
    index = TagIndex()
    beach = Tag("beach")
    index.register(beach)
    assert index.find_or_create(" beach ") is beach

    sea = index.find_or_create("sea")
    assert sea.name == "sea"
    # created but not registered
    assert "sea" not in index


def test_tag_rejects_bad_names():
    with pytest.raises(InvalidTagError):
        Tag("a@b")


def test_sweep_removes_only_unused_tags(tmp_path):
    index = TagIndex()
    used, unused = Tag("used"), Tag("unused")
    used.add_photo(PhotoRecord("img.jpg", tmp_path / "img.jpg"))
    index.register(used)
    index.register(unused)

    assert index.sweep_unused() == ["unused"]
    assert set(index.all()) == {"used"}
    assert index.sweep_unused() == []


def test_tag_photo_membership_is_by_identity(tmp_path):
    tag = Tag("beach")
    photo = PhotoRecord("img.jpg", tmp_path / "img.jpg")
    tag.add_photo(photo)
    tag.add_photo(photo)
    assert list(tag.photos) == ["img.jpg"]
    assert tag.has_photo(photo)

    tag.remove_photo(photo)
    tag.remove_photo(photo)
    assert tag.unused


def test_mutations_are_persisted():
    repo = make_repo()
    index = TagIndex(repository=repo)
    index.register(Tag("beach"))
    index.register(Tag("sea"))

    tags, _ = repo.load()
    assert set(tags.all()) == {"beach", "sea"}

    index.sweep_unused()
    tags, _ = repo.load()
    assert tags.all() == {}


def test_unpersisted_mutations_leave_store_alone():
    repo = make_repo()
    index = TagIndex(repository=repo)
    index.register(Tag("beach"))
    index.register(Tag("sea"), persist=False)

    tags, _ = repo.load()
    assert set(tags.all()) == {"beach"}

    assert sorted(index.sweep_unused(persist=False)) == ["beach", "sea"]
    tags, _ = repo.load()
    assert set(tags.all()) == {"beach"}
