"""Lightweight view model wrapper around `PhotoRecord`."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from core.models import PhotoRecord


@dataclass
class PhotoVM:
    """Expose convenient properties for bindings/templates."""

    record: PhotoRecord

    @property
    def id(self) -> int:
        return self.record.id

    @property
    def file_name(self) -> str:
        """Base name of the image locator."""
        return Path(self.record.image_uri).name

    @property
    def image_uri(self) -> str:
        return self.record.image_uri

    @property
    def is_primary(self) -> bool:
        """True if the photo is the main plate shot of its folder."""
        return self.record.is_primary

    @property
    def date_label(self) -> str:
        """Local capture date formatted for display."""
        return self.record.created_at.astimezone().strftime("%Y-%m-%d %H:%M")
