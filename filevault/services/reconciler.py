"""
@file: reconciler.py
@description:
Sweeps up what interrupted uploads and deletes leave behind:
- pending catalog rows older than the grace period (and their blobs, if any)
- blobs with no catalog row at all, once older than the grace period

The grace period keeps the sweep away from uploads that are still in flight.

@dependencies:
- pytz: UTC cutoffs
- filevault.db.catalog / filevault.storage.blob_store: The two stores being reconciled
- filevault.core.logger: For component-specific logging
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

import pytz

from filevault.core.exceptions import StorageUnavailable
from filevault.core.logger import setup_logger
from filevault.storage.blob_store import BlobNotFound

logger = setup_logger("filevault.services.reconciler")


@dataclass
class ReconcileReport:
    """Outcome of a single sweep."""
    pending_rows_removed: List[str] = field(default_factory=list)
    orphan_blobs_removed: List[str] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.pending_rows_removed or self.orphan_blobs_removed)


class Reconciler:
    """
    Brings the catalog and the blob store back in line.

    Args:
        catalog: The catalog
        blob_store: The blob store
        grace_seconds: Minimum age before a pending row or orphan blob is touched
    """

    def __init__(self, catalog, blob_store, grace_seconds: int):
        self.catalog = catalog
        self.blob_store = blob_store
        self.grace = timedelta(seconds=grace_seconds)

    def sweep(self, now: Optional[datetime] = None) -> ReconcileReport:
        """
        Run one reconciliation pass.

        Args:
            now: Reference time; defaults to the current UTC time

        Returns:
            ReconcileReport: Which rows and blobs were removed

        Raises:
            StorageUnavailable: If either store cannot be listed
        """
        cutoff = (now or datetime.now(pytz.UTC)) - self.grace
        report = ReconcileReport()

        for record in self.catalog.list_stale_pending_files(cutoff):
            try:
                self._remove_blob(record.id)
                if self.catalog.delete_file_by_id(record.id):
                    report.pending_rows_removed.append(record.id)
            except StorageUnavailable as e:
                logger.error(f"Could not clean up pending file {record.id}: {e.detail}")
                report.failures.append(record.id)

        known_ids = set(self.catalog.list_all_file_ids())
        for blob_id in self.blob_store.list_ids():
            if blob_id in known_ids:
                continue
            try:
                if self.blob_store.modified_at(blob_id) >= cutoff:
                    continue
                self.blob_store.delete(blob_id)
                report.orphan_blobs_removed.append(blob_id)
            except BlobNotFound:
                continue
            except StorageUnavailable as e:
                logger.error(f"Could not remove orphan blob {blob_id}: {e.detail}")
                report.failures.append(blob_id)

        if report.changed:
            logger.info(
                f"Reconciled storage: removed {len(report.pending_rows_removed)} pending rows "
                f"and {len(report.orphan_blobs_removed)} orphan blobs"
            )
        else:
            logger.debug("Reconciled storage: nothing to do")
        return report

    def _remove_blob(self, file_id: str) -> None:
        try:
            self.blob_store.delete(file_id)
        except BlobNotFound:
            pass

    async def run_periodically(self, interval_seconds: int) -> None:
        """
        Sweep every interval_seconds until cancelled.

        Sweeps run in a worker thread; a failed sweep is logged and the loop
        carries on.
        """
        logger.info(f"Starting storage reconciliation every {interval_seconds}s")
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                await asyncio.to_thread(self.sweep)
            except StorageUnavailable as e:
                logger.error(f"Storage reconciliation failed: {e.detail}")
