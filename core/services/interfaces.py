"""Core service interfaces and shared data structures.

This module defines the collaborator protocols (text recognition and the
external asset library) together with the result dataclasses exchanged
between the infrastructure services and the view-models.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from core.models import PhotoRecord


@dataclass(frozen=True)
class TextBlock:
    """A line or segment of recognized text."""

    text: str


@dataclass(frozen=True)
class RecognitionResult:
    """Everything the recognizer found in one image.

    Attributes:
        text: Full recognized text in original casing.
        blocks: Segments in the recognizer's layout order (top to bottom).
    """

    text: str
    blocks: list[TextBlock] = field(default_factory=list)


@dataclass(frozen=True)
class AssetHandle:
    """Reference to an asset owned by the external library."""

    id: str
    uri: str


@dataclass(frozen=True)
class Album:
    """Named collection of assets inside the external library."""

    name: str
    asset_ids: tuple[str, ...] = ()


class Recognizer(Protocol):
    """Black-box text recognition engine."""

    def recognize(self, image_path: str | Path) -> RecognitionResult:
        """Return recognized text for `image_path`; may raise on failure."""
        ...


class AssetRegistry(Protocol):
    """Device-level asset library that owns the image bytes.

    Every method raises `ExternalAssetError` when the library call fails.
    """

    def create_asset(self, file_path: str | Path) -> AssetHandle:
        """Register `file_path` as a new asset and return its handle."""
        ...

    def delete_assets(self, asset_ids: Sequence[str]) -> None:
        """Delete the given assets."""
        ...

    def get_album(self, name: str) -> Album | None:
        """Return the album called `name`, or None when it does not exist."""
        ...

    def create_album(self, name: str, asset: AssetHandle) -> Album:
        """Create album `name` seeded with `asset`."""
        ...

    def add_assets_to_album(self, assets: Sequence[AssetHandle], album: Album) -> None:
        """Append `assets` to an existing album."""
        ...

    def list_asset_ids(self) -> set[str]:
        """Return the ids of every asset currently in the library."""
        ...


@dataclass
class ImportResult:
    """Outcome of a batch photo import.

    Attributes:
        plate: Normalized plate the photos were filed under.
        saved: Records persisted, in input order.
        failed: Tuples of (path, reason) for items that were skipped.
    """

    plate: str
    saved: list[PhotoRecord] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)

    @property
    def saved_count(self) -> int:
        return len(self.saved)


@dataclass
class DeleteResult:
    """Outcome of a delete operation.

    Attributes:
        deleted_ids: Record ids removed from the store.
        failed: Tuples of (record_id, reason) for records left in place.
        log_path: Optional path to the audit CSV log.
    """

    deleted_ids: list[int]
    failed: list[tuple[int, str]]
    log_path: str | None = None

    @property
    def ok(self) -> bool:
        return not self.failed


@dataclass
class ReconcileReport:
    """Drift between the photo store and the external asset library.

    Attributes:
        orphaned_assets: Asset ids present in the library that no record links.
        dangling_records: Records whose linked asset no longer exists.
        pruned_ids: Record ids removed by a prune pass.
    """

    orphaned_assets: list[str] = field(default_factory=list)
    dangling_records: list[PhotoRecord] = field(default_factory=list)
    pruned_ids: list[int] = field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return not self.orphaned_assets and not self.dangling_records
