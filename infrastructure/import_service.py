"""Batch import of photos into a plate folder.

Each photo is registered with the external asset library, filed into the
plate's album when possible, and then recorded in the photo store. One
photo failing at the asset step does not stop the rest of the batch.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from loguru import logger

from core.errors import ExternalAssetError, ValidationError
from core.models import PhotoCategory
from core.services.interfaces import AssetHandle, AssetRegistry, ImportResult
from infrastructure.sqlite_repository import SqlitePhotoStore

MIN_PLATE_LENGTH = 3


def normalize_plate_input(plate: str | None) -> str:
    """Upper-case and trim a plate typed or confirmed by the user."""
    return (plate or "").upper().strip()


class ImportService:
    """Coordinates asset creation, album filing and record inserts."""

    def __init__(self, store: SqlitePhotoStore, assets: AssetRegistry) -> None:
        self._store = store
        self._assets = assets

    def _file_into_album(self, plate: str, asset: AssetHandle) -> None:
        """Best-effort: a failing album call never blocks the insert."""
        try:
            album = self._assets.get_album(plate)
            if album is None:
                self._assets.create_album(plate, asset)
            else:
                self._assets.add_assets_to_album([asset], album)
        except ExternalAssetError as ex:
            logger.warning("Album update failed for {} ({}): {}", plate, asset.id, ex)

    def save_photos(
        self, image_paths: Sequence[str | Path], plate: str, is_main_plate: bool = False
    ) -> ImportResult:
        """Save `image_paths` under `plate` and report what was persisted.

        Only a single photo saved as the main plate gets the primary category;
        batches are always filed as detail shots.

        Raises:
            ValidationError: The plate is shorter than three characters.
            PersistenceError: The photo store could not be written.
        """
        clean_plate = normalize_plate_input(plate)
        if len(clean_plate) < MIN_PLATE_LENGTH:
            raise ValidationError(f"Plate must have at least {MIN_PLATE_LENGTH} characters")

        result = ImportResult(plate=clean_plate)
        if not image_paths:
            return result

        category = (
            PhotoCategory.PRIMARY_PLATE
            if len(image_paths) == 1 and is_main_plate
            else PhotoCategory.DETAIL_SHOT
        )

        for path in image_paths:
            try:
                asset = self._assets.create_asset(path)
            except ExternalAssetError as ex:
                logger.error("Asset creation failed for {}: {}", path, ex)
                result.failed.append((str(path), str(ex)))
                continue

            self._file_into_album(clean_plate, asset)
            record = self._store.insert(asset.uri, asset.id, category, clean_plate)
            result.saved.append(record)

        logger.info(
            "Import into {}: {} saved, {} failed",
            clean_plate,
            result.saved_count,
            len(result.failed),
        )
        return result
