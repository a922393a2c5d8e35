"""Client review import schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ReviewImportWarning(BaseModel):
    """Advisory attached to an import that skipped some rows."""

    message: str
    skipped_rows: list[int] = Field(default_factory=list, description="Spreadsheet row numbers (1 = header)")


class ReviewImportResult(BaseModel):
    """Outcome of importing a client reviews spreadsheet."""

    reviews_added: int = Field(ge=0, description="Number of reviews stored")
    warnings: ReviewImportWarning | None = None
