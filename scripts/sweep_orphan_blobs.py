#!/usr/bin/env python3
"""
Delete stored images that no product or carousel item references.

Normal operation releases images as soon as an entity drops them; this
script collects whatever slipped through (crashes, failed deletes).

Usage:
    python scripts/sweep_orphan_blobs.py [--dry-run] [--yes] [--min-age-minutes N]

Options:
    --dry-run           List orphans without deleting them
    -y, --yes           Skip confirmation prompt
    --min-age-minutes   Ignore blobs younger than this (default 60), so fresh
                        uploads not yet attached to an entity survive
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from src.application.services.sweep import OrphanBlobSweeper, SweepReport
from src.commons.settings import get_settings
from src.commons.telemetry import configure_logging, log_exceptions
from src.infrastructure.factory import InfrastructureFactory


@dataclass
class SweepArgs:
    """Parsed command line arguments."""

    dry_run: bool
    skip_confirm: bool
    min_age: timedelta
    config_dir: Path | None


def parse_args() -> SweepArgs:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Delete blobs no entity references",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be deleted without actually deleting",
    )
    parser.add_argument(
        "-y", "--yes", action="store_true", help="Skip confirmation prompt"
    )
    parser.add_argument(
        "--min-age-minutes",
        type=int,
        default=60,
        help="Only delete orphans older than this many minutes",
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help="Directory holding appsettings*.json (default: ./config)",
    )

    args = parser.parse_args()
    if args.min_age_minutes < 0:
        parser.error("--min-age-minutes must not be negative")

    return SweepArgs(
        dry_run=args.dry_run,
        skip_confirm=args.yes,
        min_age=timedelta(minutes=args.min_age_minutes),
        config_dir=args.config_dir,
    )


@log_exceptions(message="Orphan sweep failed")
async def run_sweep(args: SweepArgs, *, dry_run: bool) -> SweepReport:
    """Connect to storage and run one sweep pass."""
    settings = get_settings(config_dir=args.config_dir)
    factory = InfrastructureFactory(settings)
    blob_storage = factory.get_blob_storage()
    try:
        await blob_storage.connect()
        collections = settings.document_db.collections
        sweeper = OrphanBlobSweeper(
            blob_storage=blob_storage,
            document_db=factory.get_document_db(),
            collections=[collections.products, collections.carousel],
            proxy_route=settings.proxy.route,
        )
        return await sweeper.sweep(min_age=args.min_age, dry_run=dry_run)
    finally:
        await factory.close_all()


def print_report(report: SweepReport, *, dry_run: bool) -> None:
    """Print a sweep summary."""
    print(f"\nBlobs scanned:        {report.scanned}")
    print(f"Referenced names:     {report.referenced}")
    print(f"Skipped (too recent): {report.skipped_recent}")
    print(f"Orphans:              {len(report.orphans)}")
    for record in report.orphans:
        print(f"  - {record.logical_name} ({record.size_bytes} bytes)")
    if not dry_run:
        print(f"Deleted:              {len(report.deleted)}")


def main() -> None:
    """Main entry point."""
    args = parse_args()
    configure_logging(level="INFO", format_type="text", logger_name="src")

    print("=" * 50)
    print("  ORPHAN BLOB SWEEP")
    print("=" * 50)
    print(f"Mode: {'DRY-RUN' if args.dry_run else 'DESTRUCTIVE'}")

    report = asyncio.run(run_sweep(args, dry_run=True))
    print_report(report, dry_run=True)

    if args.dry_run or not report.orphans:
        return

    if not args.skip_confirm:
        response = input(f"\nDelete {len(report.orphans)} blob(s)? [y/N]: ")
        if response.lower() not in ("y", "yes"):
            print("Aborted.")
            sys.exit(0)

    report = asyncio.run(run_sweep(args, dry_run=False))
    print_report(report, dry_run=False)

    if report.errors:
        print(f"\nCompleted with {len(report.errors)} error(s):")
        for error in report.errors:
            print(f"  - {error}")
        sys.exit(1)
    print("\nSweep completed successfully!")


if __name__ == "__main__":
    main()
