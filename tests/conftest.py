"""Shared fixtures: a temporary photo store and in-memory collaborators."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from core.errors import ExternalAssetError
from core.services.interfaces import Album, AssetHandle, RecognitionResult, TextBlock
from infrastructure.sqlite_repository import SqlitePhotoStore


class FakeAssetRegistry:
    """In-memory asset library that can be told to fail."""

    def __init__(self) -> None:
        self.assets: dict[str, str] = {}
        self.albums: dict[str, list[str]] = {}
        self.calls: list[tuple[str, object]] = []
        self.fail_create_for: set[str] = set()
        self.fail_delete = False
        self.fail_albums = False
        self.on_delete: Callable[[Sequence[str]], None] | None = None
        self._next = 0

    def create_asset(self, file_path: str | Path) -> AssetHandle:
        self.calls.append(("create_asset", str(file_path)))
        if str(file_path) in self.fail_create_for:
            raise ExternalAssetError(f"cannot import {file_path}")
        self._next += 1
        asset_id = f"asset-{self._next}"
        uri = f"library://{asset_id}/{Path(file_path).name}"
        self.assets[asset_id] = uri
        return AssetHandle(id=asset_id, uri=uri)

    def delete_assets(self, asset_ids: Sequence[str]) -> None:
        self.calls.append(("delete_assets", list(asset_ids)))
        if self.on_delete is not None:
            self.on_delete(asset_ids)
        if self.fail_delete:
            raise ExternalAssetError("library refused delete")
        for asset_id in asset_ids:
            self.assets.pop(asset_id, None)

    def get_album(self, name: str) -> Album | None:
        if self.fail_albums:
            raise ExternalAssetError("albums unavailable")
        ids = self.albums.get(name)
        return Album(name=name, asset_ids=tuple(ids)) if ids is not None else None

    def create_album(self, name: str, asset: AssetHandle) -> Album:
        self.albums[name] = [asset.id]
        return Album(name=name, asset_ids=(asset.id,))

    def add_assets_to_album(self, assets: Sequence[AssetHandle], album: Album) -> None:
        self.albums[album.name].extend(a.id for a in assets)

    def list_asset_ids(self) -> set[str]:
        return set(self.assets)


class FakeRecognizer:
    """Returns a canned result, or raises when `error` is set."""

    def __init__(self, text: str = "", blocks: Sequence[str] = (), error: Exception | None = None):
        self.result = RecognitionResult(text=text, blocks=[TextBlock(b) for b in blocks])
        self.error = error
        self.seen: list[str] = []

    def recognize(self, image_path: str | Path) -> RecognitionResult:
        self.seen.append(str(image_path))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def store(tmp_path: Path) -> SqlitePhotoStore:
    s = SqlitePhotoStore(tmp_path / "db" / "photos.db")
    s.init_schema()
    return s


@pytest.fixture
def registry() -> FakeAssetRegistry:
    return FakeAssetRegistry()


@pytest.fixture
def make_recognizer() -> Callable[..., FakeRecognizer]:
    return FakeRecognizer
