"""Deletion of photos and plate folders across both stores.

The external asset is always removed first and the metadata second, so a
crash in between leaves a record pointing at a missing file rather than an
unreferenced asset. When the asset library refuses a delete, the matching
records are kept. Every execution writes an audit CSV log.
"""

from __future__ import annotations

from collections.abc import Iterable
import csv
from datetime import datetime
import os
from pathlib import Path

from loguru import logger

from core.errors import ExternalAssetError
from core.models import PhotoRecord
from core.services.interfaces import AssetRegistry, DeleteResult
from infrastructure.logging import get_delete_log_directory
from infrastructure.sqlite_repository import SqlitePhotoStore


def _log_row(record: PhotoRecord | None, record_id: int, success: bool, reason: str) -> list:
    plate = record.plate_text if record else ""
    asset_id = record.external_asset_id if record else ""
    return [plate, record_id, asset_id, 1 if success else 0, reason]


class DeleteService:
    """Coordinates ordered deletes and audit logging."""

    def __init__(
        self,
        store: SqlitePhotoStore,
        assets: AssetRegistry,
        log_dir: str | Path | None = None,
    ) -> None:
        self._store = store
        self._assets = assets
        self._log_dir = log_dir

    def delete_photo(self, record_id: int, log_dir: str | Path | None = None) -> DeleteResult:
        """Delete one photo: its external asset first, then its record."""
        record = self._store.get_record(record_id)
        if record is None:
            logger.info("Delete photo skipped, record {} not found", record_id)
            return DeleteResult(deleted_ids=[], failed=[])

        if record.has_external_asset:
            try:
                self._assets.delete_assets([record.external_asset_id])
            except ExternalAssetError as ex:
                logger.error("Asset delete failed for record {}: {}", record.id, ex)
                result = DeleteResult(deleted_ids=[], failed=[(record.id, str(ex))])
                return self._write_log([record], result, log_dir)

        self._store.delete_record(record.id)
        result = DeleteResult(deleted_ids=[record.id], failed=[])
        return self._write_log([record], result, log_dir)

    def delete_folder(self, plate: str, log_dir: str | Path | None = None) -> DeleteResult:
        """Delete the photos of `plate`: all assets in one call, then those records."""
        records = self._store.list_by_plate(plate)
        if not records:
            logger.info("Delete folder skipped, no records for {}", plate)
            return DeleteResult(deleted_ids=[], failed=[])

        asset_ids = [r.external_asset_id for r in records if r.has_external_asset]
        if asset_ids:
            try:
                self._assets.delete_assets(asset_ids)
            except ExternalAssetError as ex:
                logger.error("Asset delete failed for folder {}: {}", plate, ex)
                result = DeleteResult(deleted_ids=[], failed=[(r.id, str(ex)) for r in records])
                return self._write_log(records, result, log_dir)

        # Only the records read above; photos filed meanwhile keep their asset and record
        self._store.delete_records([r.id for r in records])
        result = DeleteResult(deleted_ids=[r.id for r in records], failed=[])
        return self._write_log(records, result, log_dir)

    def _write_log(
        self,
        records: Iterable[PhotoRecord],
        result: DeleteResult,
        log_dir: str | Path | None,
    ) -> DeleteResult:
        """Write the audit CSV for `result`; a logging failure never fails the delete."""
        try:
            base_dir = log_dir or self._log_dir or get_delete_log_directory()
            base_dir = Path(os.path.expandvars(str(base_dir)))
            base_dir.mkdir(parents=True, exist_ok=True)
            ts = datetime.now().strftime("%Y%m%d_%H%M%S")
            log_path = base_dir / f"delete_{ts}.csv"
            # Same-second runs append to one file
            write_header = not log_path.exists()
            by_id = {r.id: r for r in records}
            with open(log_path, "a", encoding="utf-8", newline="") as f:
                writer = csv.writer(f)
                if write_header:
                    writer.writerow(["Plate", "RecordId", "AssetId", "Success", "Reason"])
                for rid in result.deleted_ids:
                    writer.writerow(_log_row(by_id.get(rid), rid, True, ""))
                for rid, reason in result.failed:
                    writer.writerow(_log_row(by_id.get(rid), rid, False, reason))
            result.log_path = str(log_path)
            logger.info(
                "Delete log written: {} ({} success, {} failed)",
                log_path,
                len(result.deleted_ids),
                len(result.failed),
            )
        except (OSError, ValueError) as ex:
            logger.error("Write delete log failed: {}", ex)
        return result
