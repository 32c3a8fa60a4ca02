from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import sys

from loguru import logger

from app.viewmodels.main_vm import MainVM
from core.errors import PlateFoldersError
from core.services.plate_extractor import PlateExtractor
from infrastructure.asset_library import LocalAssetLibrary
from infrastructure.delete_service import DeleteService
from infrastructure.import_service import ImportService
from infrastructure.logging import init_logging
from infrastructure.recognizer import TesseractRecognizer
from infrastructure.reconcile_service import ReconcileService
from infrastructure.settings import JsonSettings
from infrastructure.sqlite_repository import SqlitePhotoStore

BASE_DIR = Path(__file__).parent


@dataclass
class Services:
    """Everything a host UI needs, built once at startup."""

    settings: JsonSettings
    store: SqlitePhotoStore
    assets: LocalAssetLibrary
    extractor: PlateExtractor
    reconciler: ReconcileService
    vm: MainVM


def build_services(settings: JsonSettings) -> Services:
    """Construct and wire the store, collaborators and view-model."""
    store = SqlitePhotoStore(
        settings.get_path("storage.database_path"),
        busy_timeout_sec=settings.get_float("storage.busy_timeout_sec", 20.0),
    )
    store.init_schema()

    assets = LocalAssetLibrary(settings.get_path("storage.asset_library_dir"))
    recognizer = TesseractRecognizer(
        tesseract_cmd=settings.get("ocr.tesseract_cmd"),
        lang=settings.get("ocr.lang", "eng"),
        config=settings.get("ocr.config", ""),
    )
    extractor = PlateExtractor(recognizer)
    importer = ImportService(store, assets)
    deleter = DeleteService(store, assets, log_dir=settings.get_path("delete.log_directory"))
    vm = MainVM(store, extractor, importer, deleter)
    return Services(
        settings=settings,
        store=store,
        assets=assets,
        extractor=extractor,
        reconciler=ReconcileService(store, assets),
        vm=vm,
    )


def main() -> int:
    settings = JsonSettings(BASE_DIR / "settings.json")
    init_logging(settings.get_path("logging.directory"))

    try:
        services = build_services(settings)
        folders = services.vm.refresh_folders()
        logger.info("Loaded {} plate folder(s)", len(folders))

        report = services.reconciler.scan()
        if not report.is_consistent:
            logger.warning(
                "Library drift: {} orphaned asset(s), {} dangling record(s)",
                len(report.orphaned_assets),
                len(report.dangling_records),
            )
    except PlateFoldersError as ex:
        logger.exception("Startup failed: {}", ex)
        print(f"Startup failed: {ex}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
