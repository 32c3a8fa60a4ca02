from __future__ import annotations

from dataclasses import dataclass, field

from app.viewmodels.photo_vm import PhotoVM


@dataclass
class FolderVM:
    plate: str
    photos: list[PhotoVM] = field(default_factory=list)

    @property
    def header(self) -> PhotoVM | None:
        """First primary plate photo, else the newest photo."""
        for photo in self.photos:
            if photo.is_primary:
                return photo
        return self.photos[0] if self.photos else None

    @property
    def is_empty(self) -> bool:
        return not self.photos
