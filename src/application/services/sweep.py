"""Recovery sweep for blobs no entity references."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from src.commons.infrastructure.blob.base import BlobRecord, BlobStoreBase
from src.commons.infrastructure.documentdb.base import DocumentDBBase
from src.commons.telemetry import LogContext, get_logger, timed
from src.domain.value_objects.asset_name import extract_logical_name

# Entity fields that may hold an image URL
_IMAGE_FIELDS = ("image_url", "full_image_url")


@dataclass
class SweepReport:
    """Outcome of one orphan sweep."""

    scanned: int = 0
    referenced: int = 0
    orphans: list[BlobRecord] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    skipped_recent: int = 0
    errors: list[str] = field(default_factory=list)


def select_orphans(
    records: Iterable[BlobRecord],
    referenced_names: set[str],
    min_age: timedelta,
    now: datetime | None = None,
) -> tuple[list[BlobRecord], int]:
    """Pick unreferenced blobs older than ``min_age``.

    Fresh uploads are not attached to an entity yet, so young blobs are
    left alone.

    Returns:
        The orphans and the number of unreferenced blobs skipped as too new.
    """
    now = now or datetime.now(UTC)
    orphans: list[BlobRecord] = []
    too_new = 0
    for record in records:
        if record.logical_name in referenced_names:
            continue
        created = record.created_at
        if created.tzinfo is None:
            created = created.replace(tzinfo=UTC)
        if now - created < min_age:
            too_new += 1
            continue
        orphans.append(record)
    return orphans, too_new


class OrphanBlobSweeper:
    """Deletes blobs whose logical name no product or carousel item uses."""

    def __init__(
        self,
        blob_storage: BlobStoreBase,
        document_db: DocumentDBBase,
        collections: Iterable[str],
        proxy_route: str = "/image-proxy",
    ) -> None:
        self._blob = blob_storage
        self._db = document_db
        self._collections = list(collections)
        self._proxy_route = proxy_route
        self._logger = get_logger(__name__)

    async def referenced_names(self) -> set[str]:
        """Logical names used by any entity image field."""
        names: set[str] = set()
        for collection in self._collections:
            docs = await self._db.find(
                collection, {}, projection=list(_IMAGE_FIELDS)
            )
            for doc in docs:
                for image_field in _IMAGE_FIELDS:
                    name = extract_logical_name(doc.get(image_field), self._proxy_route)
                    if name:
                        names.add(name)
        return names

    @timed(level=logging.INFO)
    async def sweep(
        self,
        *,
        min_age: timedelta = timedelta(hours=1),
        dry_run: bool = True,
    ) -> SweepReport:
        """Find, and unless ``dry_run``, delete orphaned blobs."""
        with LogContext(sweep_dry_run=dry_run):
            return await self._sweep(min_age, dry_run)

    async def _sweep(self, min_age: timedelta, dry_run: bool) -> SweepReport:
        records = await self._blob.list_records()
        referenced = await self.referenced_names()
        orphans, too_new = select_orphans(records, referenced, min_age)

        report = SweepReport(
            scanned=len(records),
            referenced=len(referenced),
            orphans=orphans,
            skipped_recent=too_new,
        )

        if dry_run:
            self._logger.info(
                "Orphan sweep dry run",
                extra={"scanned": report.scanned, "orphans": len(orphans)},
            )
            return report

        for record in orphans:
            try:
                if await self._blob.delete(record.id):
                    report.deleted.append(record.logical_name)
            except Exception as e:
                report.errors.append(f"{record.logical_name}: {e}")
                self._logger.warning(
                    "Failed to delete orphan blob",
                    exc_info=True,
                    extra={"logical_name": record.logical_name},
                )

        self._logger.info(
            "Orphan sweep completed",
            extra={
                "scanned": report.scanned,
                "deleted": len(report.deleted),
                "errors": len(report.errors),
            },
        )
        return report
