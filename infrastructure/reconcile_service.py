"""Drift detection between the photo store and the external asset library."""

from __future__ import annotations

from loguru import logger

from core.services.interfaces import AssetRegistry, ReconcileReport
from infrastructure.sqlite_repository import SqlitePhotoStore


class ReconcileService:
    """Compare linked asset ids in the store with the assets that still exist."""

    def __init__(self, store: SqlitePhotoStore, assets: AssetRegistry) -> None:
        self._store = store
        self._assets = assets

    def scan(self) -> ReconcileReport:
        """Report orphaned assets and dangling records without changing anything."""
        library_ids = self._assets.list_asset_ids()
        linked_ids = self._store.list_asset_ids()

        report = ReconcileReport(orphaned_assets=sorted(library_ids - linked_ids))
        for record in self._store.list_all():
            if record.has_external_asset and record.external_asset_id not in library_ids:
                report.dangling_records.append(record)

        logger.info(
            "Reconcile scan: {} orphaned asset(s), {} dangling record(s)",
            len(report.orphaned_assets),
            len(report.dangling_records),
        )
        return report

    def prune_dangling(self) -> ReconcileReport:
        """Delete records whose asset is gone. Orphaned assets are only reported."""
        report = self.scan()
        for record in report.dangling_records:
            if self._store.delete_record(record.id):
                report.pruned_ids.append(record.id)
        if report.pruned_ids:
            logger.warning(
                "Pruned {} dangling record(s): {}", len(report.pruned_ids), report.pruned_ids
            )
        return report
