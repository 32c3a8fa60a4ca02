"""ViewModel orchestrating plate detection, imports, folders and deletes."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from loguru import logger

from app.viewmodels.folder_vm import FolderVM
from app.viewmodels.photo_vm import PhotoVM
from core.models import FolderPreview, PhotoRecord
from core.services.interfaces import DeleteResult, ImportResult
from core.services.plate_extractor import PlateExtractor
from infrastructure.delete_service import DeleteService
from infrastructure.import_service import ImportService
from infrastructure.sqlite_repository import SqlitePhotoStore


class MainVM:
    """Main application view-model.

    Holds the folder list and the currently open folder, and refreshes both
    from the photo store after every mutation.
    """

    def __init__(
        self,
        store: SqlitePhotoStore,
        extractor: PlateExtractor,
        importer: ImportService,
        deleter: DeleteService,
    ) -> None:
        """Create a MainVM.

        Args:
            store: Photo store used for every read.
            extractor: Plate extractor wired to a recognizer.
            importer: Service saving captured or imported photos.
            deleter: Service running ordered deletes.
        """
        self._store = store
        self._extractor = extractor
        self._importer = importer
        self._deleter = deleter
        self.folders: list[FolderPreview] = []
        self.current_folder: FolderVM | None = None
        self.search_results: list[PhotoRecord] = []

    def refresh_folders(self) -> list[FolderPreview]:
        """Reload the folder list from the store."""
        self.folders = self._store.list_folders()
        return self.folders

    def search(self, query: str) -> list[PhotoRecord]:
        """Search photos by plate or category."""
        self.search_results = self._store.search(query.strip()) if query else []
        return self.search_results

    def filter_folders(self, query: str) -> list[FolderPreview]:
        """Listed folders whose plate contains `query`, ignoring case."""
        needle = (query or "").strip().lower()
        if not needle:
            return list(self.folders)
        return [f for f in self.folders if needle in f.plate.lower()]

    def open_folder(self, plate: str) -> FolderVM:
        """Load `plate`'s photos, newest first, as the current folder."""
        records = self._store.list_by_plate(plate)
        self.current_folder = FolderVM(plate=plate, photos=[PhotoVM(r) for r in records])
        return self.current_folder

    def detect_plate(self, image_paths: Sequence[str | Path]) -> str:
        """Suggest a plate for the selected photos; empty when there is no suggestion.

        Recognition only runs for a single photo; several photos are expected
        to be labelled by hand.
        """
        if len(image_paths) != 1:
            return ""
        return self._extractor.read_plate(image_paths[0]) or ""

    def save_photos(
        self, image_paths: Sequence[str | Path], plate: str, is_main_plate: bool = False
    ) -> ImportResult:
        """Save photos under `plate` and refresh the folder list."""
        result = self._importer.save_photos(image_paths, plate, is_main_plate)
        self.refresh_folders()
        if self.current_folder and self.current_folder.plate == result.plate:
            self.open_folder(result.plate)
        return result

    def delete_photo(self, record_id: int) -> DeleteResult:
        """Delete one photo; close the current folder when it becomes empty."""
        result = self._deleter.delete_photo(record_id)
        if self.current_folder is not None:
            folder = self.open_folder(self.current_folder.plate)
            if folder.is_empty:
                self.current_folder = None
        self.refresh_folders()
        return result

    def delete_folder(self, plate: str) -> DeleteResult:
        """Delete a whole plate folder."""
        result = self._deleter.delete_folder(plate)
        if not result.ok:
            logger.warning("Folder {} kept: {} record(s) not deleted", plate, len(result.failed))
        if self.current_folder is not None and self.current_folder.plate == plate and result.ok:
            self.current_folder = None
        self.refresh_folders()
        return result

    @property
    def folder_count(self) -> int:
        """Number of folders currently listed."""
        return len(self.folders)
