"""Filesystem-backed external asset library.

Imported photos are copied under `<root>/assets` with a generated id as the
file stem. Albums are kept in `<root>/albums.json` as name -> asset ids.
Deleted assets go to the recycle bin rather than being unlinked.
"""

from __future__ import annotations

from collections.abc import Sequence
import json
import os
from pathlib import Path
import shutil
import threading
import uuid

from PIL import Image, UnidentifiedImageError
from loguru import logger
from send2trash import send2trash

from core.errors import ExternalAssetError
from core.services.interfaces import Album, AssetHandle
from infrastructure.utils import PIL_HEIF_AVAILABLE


def _ensure_dir(p: Path) -> None:
    """Create directory `p` if missing (including parents)."""
    p.mkdir(parents=True, exist_ok=True)


def _verify_image(path: Path) -> None:
    """Raise `ExternalAssetError` unless Pillow can identify `path` as an image."""
    try:
        with Image.open(path) as im:
            im.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as ex:
        raise ExternalAssetError(f"Not a readable image: {path} ({ex})") from ex


class LocalAssetLibrary:
    """Asset registry that stores photos in a local directory tree."""

    def __init__(self, root_dir: str | Path, verify_images: bool = True) -> None:
        self._root = Path(root_dir)
        self._assets_dir = self._root / "assets"
        self._albums_path = self._root / "albums.json"
        self._verify = verify_images
        self._lock = threading.RLock()
        try:
            _ensure_dir(self._assets_dir)
        except OSError as ex:
            raise ExternalAssetError(f"Cannot create asset library at {self._root}: {ex}") from ex
        logger.debug("Asset library at {} (HEIF support: {})", self._root, PIL_HEIF_AVAILABLE)

    @property
    def root(self) -> Path:
        return self._root

    def _asset_path(self, asset_id: str) -> Path | None:
        for p in self._assets_dir.iterdir():
            if p.is_file() and p.stem == asset_id:
                return p
        return None

    def _load_albums(self) -> dict[str, list[str]]:
        if not self._albums_path.exists():
            return {}
        try:
            with self._albums_path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as ex:
            raise ExternalAssetError(f"Album index unreadable: {ex}") from ex
        if not isinstance(data, dict):
            raise ExternalAssetError("Album index is not an object")
        return {str(k): [str(i) for i in v] for k, v in data.items() if isinstance(v, list)}

    def _save_albums(self, albums: dict[str, list[str]]) -> None:
        tmp = self._albums_path.with_suffix(".json.tmp")
        try:
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(albums, f, ensure_ascii=False, indent=2)
            os.replace(tmp, self._albums_path)
        except OSError as ex:
            raise ExternalAssetError(f"Album index write failed: {ex}") from ex

    def create_asset(self, file_path: str | Path) -> AssetHandle:
        """Copy `file_path` into the library and return its handle."""
        src = Path(file_path)
        if not src.is_file():
            raise ExternalAssetError(f"File does not exist: {src}")
        if self._verify:
            _verify_image(src)

        asset_id = uuid.uuid4().hex
        dest = self._assets_dir / f"{asset_id}{src.suffix.lower()}"
        try:
            shutil.copy2(src, dest)
        except OSError as ex:
            raise ExternalAssetError(f"Copy into library failed for {src}: {ex}") from ex
        logger.info("Asset created: {} -> {}", src, dest)
        return AssetHandle(id=asset_id, uri=str(dest))

    def delete_assets(self, asset_ids: Sequence[str]) -> None:
        """Send the assets to the recycle bin and drop them from every album.

        Ids that are already gone are skipped. Raises `ExternalAssetError`
        listing every asset that could not be removed.
        """
        failed: list[tuple[str, str]] = []
        removed: set[str] = set()
        with self._lock:
            for asset_id in asset_ids:
                if not asset_id:
                    continue
                path = self._asset_path(asset_id)
                if path is None:
                    logger.warning("Asset {} already missing from library", asset_id)
                    removed.add(asset_id)
                    continue
                try:
                    send2trash(os.path.normpath(path))
                    removed.add(asset_id)
                except OSError as ex:
                    logger.error("Send to recycle bin failed for {}: {}", path, ex)
                    failed.append((asset_id, str(ex)))

            if removed:
                albums = self._load_albums()
                changed = False
                for name, ids in albums.items():
                    kept = [i for i in ids if i not in removed]
                    if len(kept) != len(ids):
                        albums[name] = kept
                        changed = True
                if changed:
                    self._save_albums(albums)

        if failed:
            detail = ", ".join(f"{i}: {reason}" for i, reason in failed)
            raise ExternalAssetError(f"Failed to delete {len(failed)} asset(s): {detail}")
        logger.info("Deleted {} asset(s)", len(removed))

    def get_album(self, name: str) -> Album | None:
        with self._lock:
            ids = self._load_albums().get(name)
        return Album(name=name, asset_ids=tuple(ids)) if ids is not None else None

    def create_album(self, name: str, asset: AssetHandle) -> Album:
        if not name:
            raise ExternalAssetError("Album name must not be empty")
        with self._lock:
            albums = self._load_albums()
            if name in albums:
                raise ExternalAssetError(f"Album already exists: {name}")
            albums[name] = [asset.id]
            self._save_albums(albums)
        logger.info("Album created: {}", name)
        return Album(name=name, asset_ids=(asset.id,))

    def add_assets_to_album(self, assets: Sequence[AssetHandle], album: Album) -> None:
        with self._lock:
            albums = self._load_albums()
            if album.name not in albums:
                raise ExternalAssetError(f"Album does not exist: {album.name}")
            ids = albums[album.name]
            for asset in assets:
                if asset.id not in ids:
                    ids.append(asset.id)
            self._save_albums(albums)

    def list_asset_ids(self) -> set[str]:
        try:
            return {p.stem for p in self._assets_dir.iterdir() if p.is_file()}
        except OSError as ex:
            raise ExternalAssetError(f"Cannot list asset library: {ex}") from ex
