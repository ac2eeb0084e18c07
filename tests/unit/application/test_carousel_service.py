"""Unit tests for CarouselService."""

import asyncio
import uuid

import pytest

from src.application.services.carousel import CarouselService
from src.commons.infrastructure.blob import BlobNotFoundError
from src.domain.exceptions import (
    CarouselItemNotFoundError,
    InvalidEntityError,
    InvalidEntityIdError,
    InvalidOrderError,
)

BASE = "https://shop.test/api/files"


@pytest.fixture
def service(document_db, coordinator):
    return CarouselService(document_db, coordinator, collection="carousel")


async def _positions(service) -> list[tuple[str, int]]:
    return [(item.caption, item.position) for item in await service.list_items()]


async def _seed(service, *captions):
    return [
        await service.append(f"{BASE}/{caption}.jpg", caption=caption)
        for caption in captions
    ]


async def _assert_dense(service) -> None:
    positions = sorted(item.position for item in await service.list_items())
    assert positions == list(range(len(positions)))


def _yield_on_every_call(document_db, monkeypatch) -> None:
    """Make each document DB call suspend, so concurrent tasks interleave."""
    for name in ("insert", "find_by_id", "find", "update", "delete", "count"):
        original = getattr(document_db, name)

        async def suspending(*args, _original=original, **kwargs):
            await asyncio.sleep(0)
            return await _original(*args, **kwargs)

        monkeypatch.setattr(document_db, name, suspending)


class TestAppend:
    """Tests for adding items."""

    async def test_positions_are_dense(self, service):
        await _seed(service, "a", "b", "c")
        assert await _positions(service) == [("a", 0), ("b", 1), ("c", 2)]

    async def test_texts_are_cleaned(self, service):
        item = await service.append(
            f"  {BASE}/a.jpg  ", full_image_url="  ", alt=" Alt ", caption=""
        )
        assert item.image_url == f"{BASE}/a.jpg"
        assert item.full_image_url is None
        assert item.alt == "Alt"
        assert item.caption is None

    @pytest.mark.parametrize("image_url", ["", "   "])
    async def test_image_required(self, service, image_url):
        with pytest.raises(InvalidEntityError):
            await service.append(image_url)

    async def test_concurrent_appends_stay_dense(self, service):
        await asyncio.gather(
            *(service.append(f"{BASE}/{i}.jpg", caption=str(i)) for i in range(10))
        )
        positions = sorted(item.position for item in await service.list_items())
        assert positions == list(range(10))


class TestListing:
    """Tests for reads."""

    async def test_page(self, service):
        await _seed(service, "a", "b", "c", "d")

        page = await service.list_page(limit=2, offset=1)

        assert page.total == 4
        assert [item.caption for item in page.items] == ["b", "c"]

    async def test_get_unknown(self, service):
        with pytest.raises(CarouselItemNotFoundError):
            await service.get(str(uuid.uuid4()))

    async def test_get_invalid_id(self, service):
        with pytest.raises(InvalidEntityIdError):
            await service.get("not-an-id")


class TestDelete:
    """Tests for removal and gap closing."""

    async def test_delete_middle_closes_gap(self, service, blob_storage, put_blob):
        await put_blob("b.jpg")
        _, middle, _ = await _seed(service, "a", "b", "c")

        removed = await service.delete(middle.id)

        assert removed.id == middle.id
        assert await _positions(service) == [("a", 0), ("c", 1)]
        with pytest.raises(BlobNotFoundError):
            await blob_storage.find_metadata("b.jpg")

    async def test_delete_last_rewrites_nothing(self, service, document_db):
        *_, last = await _seed(service, "a", "b", "c")
        document_db.update_calls.clear()

        await service.delete(last.id)

        assert document_db.update_calls == []
        assert await _positions(service) == [("a", 0), ("b", 1)]

    async def test_delete_releases_full_image(self, service, blob_storage, put_blob):
        await put_blob("thumb.jpg")
        await put_blob("full.jpg")
        item = await service.append(
            f"{BASE}/thumb.jpg", full_image_url=f"{BASE}/full.jpg"
        )

        await service.delete(item.id)

        assert await blob_storage.list_records() == []

    async def test_delete_unknown(self, service):
        with pytest.raises(CarouselItemNotFoundError):
            await service.delete(str(uuid.uuid4()))

    async def test_delete_invalid_id(self, service):
        with pytest.raises(InvalidEntityIdError):
            await service.delete("../etc")


class TestUpdate:
    """Tests for editing an item."""

    async def test_position_kept(self, service):
        _, b, _ = await _seed(service, "a", "b", "c")

        updated = await service.update(b.id, {"caption": "B", "alt": "bee"})

        assert updated.position == 1
        assert updated.caption == "B"
        assert (await service.get(b.id)).alt == "bee"

    async def test_replaced_image_released(self, service, blob_storage, put_blob):
        await put_blob("old.jpg")
        await put_blob("new.jpg")
        item = await service.append(f"{BASE}/old.jpg")

        await service.update(item.id, {"image_url": f"{BASE}/new.jpg"})

        names = [r.logical_name for r in await blob_storage.list_records()]
        assert names == ["new.jpg"]

    async def test_image_moved_to_full_is_kept(self, service, blob_storage, put_blob):
        await put_blob("old.jpg")
        await put_blob("new.jpg")
        item = await service.append(f"{BASE}/old.jpg")

        await service.update(
            item.id,
            {"image_url": f"{BASE}/new.jpg", "full_image_url": f"{BASE}/old.jpg"},
        )

        assert len(await blob_storage.list_records()) == 2

    async def test_unknown_field(self, service):
        (item,) = await _seed(service, "a")
        with pytest.raises(InvalidEntityError):
            await service.update(item.id, {"position": 5})

    async def test_empty_image(self, service):
        (item,) = await _seed(service, "a")
        with pytest.raises(InvalidEntityError):
            await service.update(item.id, {"image_url": " "})

    async def test_unknown_item(self, service):
        with pytest.raises(CarouselItemNotFoundError):
            await service.update(str(uuid.uuid4()), {"caption": "x"})


class TestReorder:
    """Tests for applying a new order."""

    async def test_reorder(self, service):
        a, b, c = await _seed(service, "a", "b", "c")

        items = await service.reorder([c.id, a.id, b.id])

        assert [(i.caption, i.position) for i in items] == [("c", 0), ("a", 1), ("b", 2)]

    async def test_reorder_is_idempotent(self, service, document_db):
        a, b, c = await _seed(service, "a", "b", "c")
        await service.reorder([b.id, c.id, a.id])
        document_db.update_calls.clear()

        await service.reorder([b.id, c.id, a.id])

        assert document_db.update_calls == []
        assert await _positions(service) == [("b", 0), ("c", 1), ("a", 2)]

    async def test_missing_id(self, service):
        a, b, _ = await _seed(service, "a", "b", "c")
        with pytest.raises(InvalidOrderError) as exc_info:
            await service.reorder([a.id, b.id])
        assert len(exc_info.value.missing) == 1

    async def test_duplicate_id(self, service):
        a, b, c = await _seed(service, "a", "b", "c")
        with pytest.raises(InvalidOrderError) as exc_info:
            await service.reorder([a.id, a.id, b.id, c.id])
        assert exc_info.value.duplicates == [a.id]

    async def test_unknown_id(self, service):
        a, b, c = await _seed(service, "a", "b", "c")
        stranger = str(uuid.uuid4())
        with pytest.raises(InvalidOrderError) as exc_info:
            await service.reorder([a.id, b.id, c.id, stranger])
        assert exc_info.value.unknown == [stranger]

    async def test_rejected_order_changes_nothing(self, service):
        a, b, _ = await _seed(service, "a", "b", "c")
        with pytest.raises(InvalidOrderError):
            await service.reorder([b.id, a.id])
        assert await _positions(service) == [("a", 0), ("b", 1), ("c", 2)]

    async def test_empty_carousel(self, service):
        assert await service.reorder([]) == []


class TestDenseOrdering:
    """Positions cover 0..n-1 after every mutation."""

    async def test_mixed_sequence(self, service):
        a, b, c = await _seed(service, "a", "b", "c")
        await _assert_dense(service)

        await service.delete(a.id)
        await _assert_dense(service)

        d = await service.append(f"{BASE}/d.jpg", caption="d")
        assert d.position == 2
        await _assert_dense(service)

        await service.reorder([d.id, c.id, b.id])
        await _assert_dense(service)

        await service.delete(c.id)
        await _assert_dense(service)

        await service.append(f"{BASE}/e.jpg", caption="e")
        await _assert_dense(service)

        assert await _positions(service) == [("d", 0), ("b", 1), ("e", 2)]

    async def test_concurrent_delete_and_reorder(
        self, service, document_db, monkeypatch
    ):
        _yield_on_every_call(document_db, monkeypatch)
        a, b, c, d, e = await _seed(service, "a", "b", "c", "d", "e")

        results = await asyncio.gather(
            service.delete(b.id),
            service.reorder([e.id, d.id, c.id, a.id]),
            service.delete(d.id),
            return_exceptions=True,
        )

        assert not [r for r in results if isinstance(r, Exception)]
        await _assert_dense(service)
        assert await _positions(service) == [("e", 0), ("c", 1), ("a", 2)]

    async def test_concurrent_deletes(self, service, document_db, monkeypatch):
        _yield_on_every_call(document_db, monkeypatch)
        items = await _seed(service, *"abcdef")

        await asyncio.gather(*(service.delete(item.id) for item in items[::2]))

        await _assert_dense(service)
        assert await _positions(service) == [("b", 0), ("d", 1), ("f", 2)]
