"""Carousel management with dense, gap-free positions."""

import asyncio
from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from src.application.services.lifecycle import AssetLifecycleCoordinator
from src.commons.infrastructure.documentdb.base import (
    DocumentDBBase,
    is_valid_document_id,
)
from src.commons.telemetry import get_logger
from src.domain.exceptions import (
    CarouselItemNotFoundError,
    InvalidEntityError,
    InvalidEntityIdError,
    InvalidOrderError,
)
from src.domain.models.carousel import CarouselItem

_POSITION_SORT = [("position", 1), ("created_at", 1)]

_EDITABLE_FIELDS = frozenset({"image_url", "full_image_url", "alt", "caption"})


@dataclass(frozen=True)
class CarouselPage:
    """One page of carousel items plus the collection size."""

    total: int
    limit: int
    offset: int
    items: list[CarouselItem]


def _clean(value: Any) -> str | None:
    """Strip optional text, mapping blanks to None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class CarouselService:
    """Manages the ordered carousel collection.

    Between operations the stored positions are exactly ``0..n-1``. Every
    mutation runs under one lock, so concurrent requests queue instead of
    interleaving their position rewrites.
    """

    def __init__(
        self,
        document_db: DocumentDBBase,
        coordinator: AssetLifecycleCoordinator,
        collection: str = "carousel",
    ) -> None:
        self._db = document_db
        self._coordinator = coordinator
        self._collection = collection
        self._lock = asyncio.Lock()
        self._logger = get_logger(__name__)

    # =========================================================================
    # Queries
    # =========================================================================

    async def list_items(self) -> list[CarouselItem]:
        """All items, ordered by position."""
        docs = await self._db.find(self._collection, {}, sort=_POSITION_SORT)
        return [CarouselItem.model_validate(doc) for doc in docs]

    async def list_page(self, limit: int, offset: int = 0) -> CarouselPage:
        """A slice of the ordered items with the total count."""
        limit = max(0, limit)
        offset = max(0, offset)
        docs = await self._db.find(
            self._collection,
            {},
            skip=offset,
            limit=limit,
            sort=_POSITION_SORT,
        )
        total = await self._db.count(self._collection)
        return CarouselPage(
            total=total,
            limit=limit,
            offset=offset,
            items=[CarouselItem.model_validate(doc) for doc in docs],
        )

    async def get(self, item_id: str) -> CarouselItem:
        """Fetch one item.

        Raises:
            InvalidEntityIdError: Malformed id.
            CarouselItemNotFoundError: No item with this id.
        """
        if not is_valid_document_id(item_id):
            raise InvalidEntityIdError(item_id)
        doc = await self._db.find_by_id(self._collection, item_id)
        if doc is None:
            raise CarouselItemNotFoundError(item_id)
        return CarouselItem.model_validate(doc)

    # =========================================================================
    # Mutations
    # =========================================================================

    async def append(
        self,
        image_url: str,
        full_image_url: str | None = None,
        alt: str | None = None,
        caption: str | None = None,
    ) -> CarouselItem:
        """Add an item at the end of the carousel."""
        url = _clean(image_url)
        if url is None:
            raise InvalidEntityError("image_url", "must not be empty")

        async with self._lock:
            position = await self._db.count(self._collection)
            item = CarouselItem(
                image_url=url,
                full_image_url=_clean(full_image_url),
                alt=_clean(alt),
                caption=_clean(caption),
                position=position,
            )
            await self._db.insert(self._collection, item.model_dump())

        self._logger.info(
            "Carousel item added",
            extra={"item_id": item.id, "position": position},
        )
        return item

    async def update(self, item_id: str, changes: Mapping[str, Any]) -> CarouselItem:
        """Change the image or texts of an item. Its position is kept.

        Args:
            item_id: Item to change.
            changes: Subset of image_url, full_image_url, alt and caption.
                An empty value clears an optional field.

        Raises:
            InvalidEntityError: Unknown field or empty image_url.
            CarouselItemNotFoundError: No item with this id.
        """
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise InvalidEntityError(", ".join(sorted(unknown)), "cannot be changed")

        updates = {key: _clean(value) for key, value in changes.items()}
        if "image_url" in updates and updates["image_url"] is None:
            raise InvalidEntityError("image_url", "must not be empty")

        async with self._lock:
            current = await self.get(item_id)
            if updates:
                await self._db.update(self._collection, item_id, updates)
            updated = current.model_copy(update=updates)

        still_used = {updated.image_url, updated.full_image_url}
        for old_url in {current.image_url, current.full_image_url} - still_used:
            await self._coordinator.on_reference_replaced(old_url, updated.image_url)
        return updated

    async def delete(self, item_id: str) -> CarouselItem:
        """Remove an item, close the gap it leaves and release its image.

        Raises:
            InvalidEntityIdError: Malformed id.
            CarouselItemNotFoundError: No item with this id.
        """
        if not is_valid_document_id(item_id):
            raise InvalidEntityIdError(item_id)

        async with self._lock:
            doc = await self._db.delete(self._collection, item_id)
            if doc is None:
                raise CarouselItemNotFoundError(item_id)
            removed = CarouselItem.model_validate(doc)
            survivors = await self.list_items()
            rewritten = await self._reindex([item.id for item in survivors], survivors)

        self._logger.info(
            "Carousel item deleted",
            extra={"item_id": item_id, "positions_rewritten": rewritten},
        )

        await self._coordinator.on_entity_deleted(removed.image_url)
        if removed.full_image_url and removed.full_image_url != removed.image_url:
            await self._coordinator.on_entity_deleted(removed.full_image_url)
        return removed

    async def reorder(self, order: list[str]) -> list[CarouselItem]:
        """Apply a new order given as the full list of item ids.

        The list must contain every current id exactly once.

        Raises:
            InvalidOrderError: Duplicates, unknown ids or omissions.
        """
        async with self._lock:
            current = await self.list_items()
            self._check_permutation(order, [item.id for item in current])
            rewritten = await self._reindex(order, current)
            items = await self.list_items()

        self._logger.info(
            "Carousel reordered",
            extra={"items": len(order), "positions_rewritten": rewritten},
        )
        return items

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _check_permutation(order: list[str], current_ids: list[str]) -> None:
        duplicates = sorted(i for i, n in Counter(order).items() if n > 1)
        known = set(current_ids)
        requested = set(order)
        unknown = sorted(requested - known)
        missing = sorted(known - requested)

        if duplicates or unknown or missing:
            problems = []
            if duplicates:
                problems.append("duplicate ids")
            if unknown:
                problems.append("unknown ids")
            if missing:
                problems.append("missing ids")
            raise InvalidOrderError(
                " and ".join(problems),
                missing=missing,
                unknown=unknown,
                duplicates=duplicates,
            )

    async def _reindex(
        self,
        ordered_ids: list[str],
        items: list[CarouselItem] | None = None,
    ) -> int:
        """Set position = index for each id, writing only what changed.

        Returns:
            Number of items whose position was rewritten.
        """
        if items is None:
            items = await self.list_items()
        stored = {item.id: item.position for item in items}

        rewritten = 0
        for index, item_id in enumerate(ordered_ids):
            if stored.get(item_id) != index:
                await self._db.update(self._collection, item_id, {"position": index})
                rewritten += 1
        return rewritten
