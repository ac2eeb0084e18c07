"""Unit tests for ProductService."""

import asyncio
import uuid
from unittest.mock import AsyncMock

import pytest

from src.application.services.products import ProductService
from src.commons.infrastructure.blob import BlobNotFoundError
from src.domain.exceptions import (
    InvalidEntityError,
    InvalidEntityIdError,
    ProductNotFoundError,
)

BASE = "https://shop.test/api/files"


@pytest.fixture
def service(document_db, coordinator):
    return ProductService(document_db, coordinator, collection="products")


async def _create(service, name="Lamp", image="lamp.jpg", **kw):
    return await service.create(
        name=name,
        description=f"{name} description",
        image_url=f"{BASE}/{image}",
        **kw,
    )


class TestCreate:
    """Tests for product creation."""

    async def test_create(self, service, document_db):
        product = await _create(service, price=19.9, is_new_release=True)

        assert product.price == "19.9"
        assert product.is_new_release is True
        stored = document_db.collections["products"][product.id]
        assert stored["name"] == "Lamp"
        assert stored["image_url"] == f"{BASE}/lamp.jpg"

    async def test_price_optional(self, service):
        product = await _create(service)
        assert product.price == ""

    @pytest.mark.parametrize("field", ["name", "description", "image_url"])
    async def test_required_fields(self, service, field):
        values = {"name": "Lamp", "description": "A lamp", "image_url": f"{BASE}/a.jpg"}
        values[field] = "  "
        with pytest.raises(InvalidEntityError) as exc_info:
            await service.create(**values)
        assert exc_info.value.field == field


class TestQueries:
    """Tests for listing and fetching."""

    async def test_newest_first(self, service):
        first = await _create(service, name="First")
        await asyncio.sleep(0.001)
        second = await _create(service, name="Second")

        products = await service.list_products()

        assert [p.id for p in products] == [second.id, first.id]

    async def test_new_releases(self, service):
        await _create(service, name="Old")
        fresh = await _create(service, name="Fresh", is_new_release=True)

        assert [p.id for p in await service.list_new_releases()] == [fresh.id]
        assert len(await service.list_products(is_new_release=False)) == 1

    async def test_get(self, service):
        product = await _create(service)
        assert (await service.get(product.id)).name == "Lamp"

    async def test_get_unknown(self, service):
        with pytest.raises(ProductNotFoundError):
            await service.get(str(uuid.uuid4()))

    async def test_get_invalid_id(self, service):
        with pytest.raises(InvalidEntityIdError):
            await service.get("xyz")


class TestImageLifecycle:
    """Replaced and deleted product images are released."""

    async def test_image_replaced(self, service, blob_storage, put_blob):
        await put_blob("old.jpg")
        await put_blob("new.jpg")
        product = await _create(service, image="old.jpg")

        updated = await service.update(
            product.id,
            name="Lamp",
            description="Brighter",
            image_url=f"{BASE}/new.jpg",
        )

        assert updated.image_url == f"{BASE}/new.jpg"
        assert updated.updated_at >= product.updated_at
        with pytest.raises(BlobNotFoundError):
            await blob_storage.find_metadata("old.jpg")
        assert await blob_storage.find_metadata("new.jpg")

    async def test_image_kept_when_unchanged(self, service, blob_storage, put_blob):
        await put_blob("lamp.jpg")
        product = await _create(service)

        await service.update(
            product.id,
            name="Lamp v2",
            description="Same picture",
            image_url=f"{BASE}/lamp.jpg",
        )

        assert await blob_storage.find_metadata("lamp.jpg")

    async def test_deleted_product_releases_image(
        self, service, blob_storage, put_blob
    ):
        await put_blob("lamp.jpg")
        await put_blob("chair.jpg")
        product = await _create(service)
        await _create(service, name="Chair", image="chair.jpg")

        removed = await service.delete(product.id)

        assert removed.id == product.id
        names = [r.logical_name for r in await blob_storage.list_records()]
        assert names == ["chair.jpg"]

    async def test_no_cleanup_when_update_fails(self, blob_storage, put_blob, document_db):
        coordinator = AsyncMock()
        service = ProductService(document_db, coordinator)
        await put_blob("old.jpg")

        with pytest.raises(ProductNotFoundError):
            await service.update(
                str(uuid.uuid4()),
                name="Lamp",
                description="Missing",
                image_url=f"{BASE}/new.jpg",
            )

        coordinator.on_reference_replaced.assert_not_awaited()
        assert await blob_storage.find_metadata("old.jpg")

    async def test_invalid_update_keeps_image(self, service, blob_storage, put_blob):
        await put_blob("lamp.jpg")
        product = await _create(service)

        with pytest.raises(InvalidEntityError):
            await service.update(
                product.id, name="", description="x", image_url=f"{BASE}/new.jpg"
            )

        assert await blob_storage.find_metadata("lamp.jpg")
        assert (await service.get(product.id)).image_url == f"{BASE}/lamp.jpg"

    async def test_cleanup_failure_does_not_block_delete(self, document_db):
        coordinator = AsyncMock()
        coordinator.on_entity_deleted = AsyncMock(return_value=False)
        service = ProductService(document_db, coordinator)
        product = await _create(service)

        await service.delete(product.id)

        coordinator.on_entity_deleted.assert_awaited_once_with(f"{BASE}/lamp.jpg")
        with pytest.raises(ProductNotFoundError):
            await service.get(product.id)

    async def test_delete_unknown(self, service):
        with pytest.raises(ProductNotFoundError):
            await service.delete(str(uuid.uuid4()))
