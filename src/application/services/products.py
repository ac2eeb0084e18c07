"""Product catalog service."""

from typing import Any

from src.application.services.lifecycle import AssetLifecycleCoordinator
from src.commons.infrastructure.documentdb.base import (
    DocumentDBBase,
    is_valid_document_id,
)
from src.commons.telemetry import get_logger
from src.domain.exceptions import (
    InvalidEntityError,
    InvalidEntityIdError,
    ProductNotFoundError,
)
from src.domain.models.product import Product


def _required(field: str, value: str | None) -> str:
    text = (value or "").strip()
    if not text:
        raise InvalidEntityError(field, "must not be empty")
    return text


def _price_text(price: Any) -> str:
    """Prices are free-form text; numbers are kept as typed."""
    if price is None:
        return ""
    return str(price).strip()


class ProductService:
    """Creates, lists, updates and deletes catalog products.

    Image changes and deletions hand the old image URL to the
    ``AssetLifecycleCoordinator`` after the record has been written.
    """

    def __init__(
        self,
        document_db: DocumentDBBase,
        coordinator: AssetLifecycleCoordinator,
        collection: str = "products",
    ) -> None:
        self._db = document_db
        self._coordinator = coordinator
        self._collection = collection
        self._logger = get_logger(__name__)

    async def create(
        self,
        *,
        name: str,
        description: str,
        image_url: str,
        price: Any = None,
        is_new_release: bool = False,
    ) -> Product:
        """Create a product.

        Raises:
            InvalidEntityError: A required field is empty.
        """
        product = Product(
            name=_required("name", name),
            description=_required("description", description),
            image_url=_required("image_url", image_url),
            price=_price_text(price),
            is_new_release=is_new_release,
        )
        await self._db.insert(self._collection, product.model_dump())
        self._logger.info(
            "Product created",
            extra={"product_id": product.id, "is_new_release": is_new_release},
        )
        return product

    async def list_products(
        self, is_new_release: bool | None = None
    ) -> list[Product]:
        """List products, newest first, optionally filtered by release flag."""
        filters: dict[str, Any] = {}
        if is_new_release is not None:
            filters["is_new_release"] = is_new_release
        docs = await self._db.find(
            self._collection,
            filters,
            sort=[("created_at", -1)],
        )
        return [Product.model_validate(doc) for doc in docs]

    async def list_new_releases(self) -> list[Product]:
        """Products flagged as new releases, newest first."""
        return await self.list_products(is_new_release=True)

    async def get(self, product_id: str) -> Product:
        """Fetch a product.

        Raises:
            InvalidEntityIdError: Malformed id.
            ProductNotFoundError: No product with this id.
        """
        if not is_valid_document_id(product_id):
            raise InvalidEntityIdError(product_id)
        doc = await self._db.find_by_id(self._collection, product_id)
        if doc is None:
            raise ProductNotFoundError(product_id)
        return Product.model_validate(doc)

    async def update(
        self,
        product_id: str,
        *,
        name: str,
        description: str,
        image_url: str,
        price: Any = None,
        is_new_release: bool = False,
    ) -> Product:
        """Replace the editable fields of a product.

        When the image URL changes, the previous image is released once the
        record has been saved.
        """
        current = await self.get(product_id)
        updated = current.with_changes(
            name=_required("name", name),
            description=_required("description", description),
            price=_price_text(price),
            image_url=_required("image_url", image_url),
            is_new_release=is_new_release,
        )

        changes = updated.model_dump(exclude={"id", "created_at"})
        if not await self._db.update(self._collection, product_id, changes):
            raise ProductNotFoundError(product_id)

        self._logger.info("Product updated", extra={"product_id": product_id})

        await self._coordinator.on_reference_replaced(
            current.image_url, updated.image_url
        )
        return updated

    async def delete(self, product_id: str) -> Product:
        """Delete a product and release its image.

        Raises:
            InvalidEntityIdError: Malformed id.
            ProductNotFoundError: No product with this id.
        """
        if not is_valid_document_id(product_id):
            raise InvalidEntityIdError(product_id)
        doc = await self._db.delete(self._collection, product_id)
        if doc is None:
            raise ProductNotFoundError(product_id)

        product = Product.model_validate(doc)
        self._logger.info("Product deleted", extra={"product_id": product_id})
        await self._coordinator.on_entity_deleted(product.image_url)
        return product
