from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from datetime import timezone
from enum import Enum

from pydantic import BaseModel
from pydantic import Field


class RejectionReason(str, Enum):
    """Why a candidate file was not admitted into the staging list."""

    INVALID_TYPE = "invalid_type"
    TOO_LARGE = "too_large"
    TOO_MANY_FILES = "too_many_files"


@dataclass(frozen=True, eq=False)
class CandidateFile:
    """A raw file handed to the intake by a drop or picker event.

    Compared by identity: the intake keeps a reference to the handle it was
    given, never a copy of the payload.
    """

    name: str
    media_type: str
    size: int
    data: bytes = field(repr=False)

    @classmethod
    def from_bytes(cls, name: str, data: bytes, media_type: str = "") -> "CandidateFile":
        return cls(name=name, media_type=(media_type or "").lower(), size=len(data), data=data)

    @property
    def is_image(self) -> bool:
        return self.media_type.startswith("image/")


@dataclass(frozen=True)
class StagedFile:
    """One entry of the staging list. Replaced, never mutated, on every update."""

    file: CandidateFile
    id: str
    preview: str | None = None
    progress: int = 0

    @property
    def is_image(self) -> bool:
        return self.file.is_image

    @property
    def is_complete(self) -> bool:
        return self.progress >= 100

    @property
    def kind_label(self) -> str:
        if self.file.is_image:
            return "Image"
        if self.file.media_type == "application/pdf":
            return "PDF"
        return "File"

    @property
    def size_mb(self) -> str:
        return f"{self.file.size / 1024 / 1024:.2f}"

    @property
    def status_label(self) -> str:
        return "Complete" if self.is_complete else "Uploading..."


class StagedFileView(BaseModel):
    """Read-only projection of a StagedFile for rendering and the JSON API."""

    id: str
    name: str
    media_type: str
    size: int
    size_mb: str
    kind: str
    preview: str | None = None
    progress: int
    status: str
    removable: bool

    @classmethod
    def from_staged(cls, staged: StagedFile, removable: bool) -> "StagedFileView":
        return cls(
            id=staged.id,
            name=staged.file.name,
            media_type=staged.file.media_type,
            size=staged.file.size,
            size_mb=staged.size_mb,
            kind=staged.kind_label,
            preview=staged.preview,
            progress=staged.progress,
            status=staged.status_label,
            removable=removable,
        )


class Notice(BaseModel):
    """A user-facing diagnostic, shown as a toast by the page."""

    level: str  # error | success | info
    title: str
    description: str
    reason: RejectionReason | None = None
    file_names: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Rejection(BaseModel):
    file_name: str
    reason: RejectionReason


class SubmitResult(BaseModel):
    """Outcome of one admission call."""

    batch_id: str
    accepted: list[StagedFileView] = Field(default_factory=list)
    rejections: list[Rejection] = Field(default_factory=list)
    batch_rejected: bool = False
    notices: list[Notice] = Field(default_factory=list)


class IntakeSnapshot(BaseModel):
    """Consistent view of the controller state at one version."""

    version: int
    files: list[StagedFileView]
    max_files: int
    max_file_size_bytes: int
    max_file_size_mb: float
    drag_active: bool
    disabled: bool
