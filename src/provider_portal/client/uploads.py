"""Pending upload set for the profile-content step.

Three slots, each holding at most one selected file. Type checks happen at
selection time so a rejected file never reaches the commit workflow.
"""
from __future__ import annotations

import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from ..core.exceptions import FileValidationError

IMAGE_CONTENT_TYPES: frozenset[str] = frozenset({"image/jpeg", "image/png", "image/jpg"})
SPREADSHEET_CONTENT_TYPES: frozenset[str] = frozenset({
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel",
})


class UploadSlot(str, Enum):
    """The three files collected by the profile-content step."""

    HEADSHOT = "headshot"
    GALLERY = "gallery"
    REVIEWS = "reviews"


_SLOT_RULES: dict[UploadSlot, tuple[frozenset[str], str]] = {
    UploadSlot.HEADSHOT: (IMAGE_CONTENT_TYPES, "Only JPG/PNG image files are allowed for this field."),
    UploadSlot.GALLERY: (IMAGE_CONTENT_TYPES, "Only JPG/PNG image files are allowed for this field."),
    UploadSlot.REVIEWS: (SPREADSHEET_CONTENT_TYPES, "Only .xls/.xlsx files are allowed for Client Reviews."),
}


@dataclass(frozen=True)
class SelectedFile:
    """A file picked by the user: name, declared content type and bytes."""

    name: str
    content_type: str
    content: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path: str | Path, content_type: str | None = None) -> "SelectedFile":
        """Read a file from disk, guessing the content type from its extension."""
        path = Path(path)
        if content_type is None:
            guessed, _ = mimetypes.guess_type(path.name)
            content_type = guessed or "application/octet-stream"
        return cls(name=path.name, content_type=content_type, content=path.read_bytes())


class PendingUploads:
    """Mutable set of user selections; not written once a commit begins."""

    def __init__(self) -> None:
        self._files: dict[UploadSlot, SelectedFile | None] = {slot: None for slot in UploadSlot}

    def select(self, slot: UploadSlot | str, file: SelectedFile | None) -> None:
        """Place *file* in *slot*.

        Selecting nothing is a no-op. A file of the wrong type raises
        FileValidationError and leaves the slot as it was.
        """
        slot = UploadSlot(slot)
        if file is None:
            return
        allowed, message = _SLOT_RULES[slot]
        if file.content_type.lower() not in allowed:
            raise FileValidationError(message, filename=file.name, allowed_types=sorted(allowed))
        self._files[slot] = file

    def clear(self, slot: UploadSlot | str) -> None:
        self._files[UploadSlot(slot)] = None

    def get(self, slot: UploadSlot | str) -> SelectedFile | None:
        return self._files[UploadSlot(slot)]

    @property
    def headshot(self) -> SelectedFile | None:
        return self._files[UploadSlot.HEADSHOT]

    @property
    def gallery(self) -> SelectedFile | None:
        return self._files[UploadSlot.GALLERY]

    @property
    def reviews(self) -> SelectedFile | None:
        return self._files[UploadSlot.REVIEWS]

    def missing_slots(self) -> list[UploadSlot]:
        return [slot for slot, file in self._files.items() if file is None]

    @property
    def is_complete(self) -> bool:
        return not self.missing_slots()
