"""Core domain models for plate photo records and folder previews."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

UNKNOWN_PLATE = "Unknown"


class PhotoCategory(str, Enum):
    """Role of a photo inside its plate folder."""

    PRIMARY_PLATE = "PrimaryPlate"
    DETAIL_SHOT = "DetailShot"


@dataclass(frozen=True)
class PhotoRecord:
    """A single persisted photo row."""

    id: int
    image_uri: str
    # Empty string when the photo has no linked external asset
    external_asset_id: str
    category: PhotoCategory
    plate_text: str
    created_at: datetime

    @property
    def is_primary(self) -> bool:
        return self.category is PhotoCategory.PRIMARY_PLATE

    @property
    def has_external_asset(self) -> bool:
        return bool(self.external_asset_id)


@dataclass(frozen=True)
class FolderPreview:
    """Derived view of one plate folder and its cover image."""

    plate: str
    cover_image_uri: str
