"""
Client Review Import Service.

Parses the "Client Reviews" spreadsheet (.xls / .xlsx) uploaded in the
profile-content step and stores one ``ClientReview`` per usable row.

Expected columns (matched case-insensitively, surrounding whitespace ignored):
    Client Name | Review | Satisfaction Rating

Rows missing a client name or review text are skipped and reported back as
a warning; a rating outside 1..5 or not numeric is stored as empty.
"""
from __future__ import annotations

from io import BytesIO
from typing import Any

import pandas as pd
import structlog

from ..core.exceptions import FileValidationError, PayloadTooLargeError, ReviewImportError
from ..repositories.review_repository import ReviewRepository
from ..schemas.reviews import ReviewImportResult, ReviewImportWarning

log = structlog.get_logger(__name__)

_COLUMN_ALIASES: dict[str, str] = {
    "client name": "client_name",
    "review": "review",
    "satisfaction rating": "rating",
}
_REQUIRED_COLUMNS = {"client_name", "review"}


def _clean_text(value: Any) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value).strip()


def _clean_rating(value: Any) -> int | None:
    text = _clean_text(value)
    if not text:
        return None
    try:
        rating = float(text)
    except ValueError:
        return None
    if not rating.is_integer() or not 1 <= rating <= 5:
        return None
    return int(rating)


def parse_reviews_workbook(
    content: bytes,
    *,
    file_name: str,
    max_rows: int,
) -> tuple[list[dict[str, Any]], list[int]]:
    """Read the first sheet of a reviews workbook.

    Pure function: performs no DB access. The format (.xls or .xlsx) is
    detected from the bytes, so a mislabelled upload is still readable.

    Returns:
        (rows, skipped) where ``rows`` are dicts with ``client_name``,
        ``review`` and ``rating`` and ``skipped`` lists the spreadsheet row
        numbers (header = row 1) that lacked a name or review.

    Raises:
        ReviewImportError: unreadable workbook, missing columns, no usable rows
        PayloadTooLargeError: more than ``max_rows`` data rows
    """
    try:
        frame = pd.read_excel(
            BytesIO(content),
            sheet_name=0,
            dtype=object,
        )
    except Exception as exc:
        raise ReviewImportError(
            f"Could not read spreadsheet: {exc}",
            details={"filename": file_name},
        ) from exc

    frame = frame.rename(columns=lambda c: _COLUMN_ALIASES.get(str(c).strip().lower(), str(c)))
    missing = _REQUIRED_COLUMNS - set(frame.columns)
    if missing:
        readable = sorted(k.title() for k, v in _COLUMN_ALIASES.items() if v in missing)
        raise ReviewImportError(
            f"Spreadsheet is missing required column(s): {', '.join(readable)}",
            details={"filename": file_name, "missing_columns": readable},
        )

    frame = frame.dropna(how="all")
    if len(frame) > max_rows:
        raise PayloadTooLargeError(
            message=f"Too many rows: {len(frame)} (maximum allowed: {max_rows})",
            limit=max_rows,
        )

    rows: list[dict[str, Any]] = []
    skipped: list[int] = []
    for index, record in frame.iterrows():
        row_num = int(index) + 2  # row 1 = header
        client_name = _clean_text(record.get("client_name"))
        review = _clean_text(record.get("review"))
        if not client_name or not review:
            skipped.append(row_num)
            continue
        rows.append({
            "client_name": client_name[:200],
            "review": review,
            "rating": _clean_rating(record.get("rating")),
        })

    if not rows:
        raise ReviewImportError(
            "Spreadsheet contains no reviews with both a client name and review text",
            details={"filename": file_name, "skipped_rows": skipped},
        )
    return rows, skipped


class ReviewImportService:
    """Validates, parses and persists a provider's client reviews spreadsheet."""

    def __init__(
        self,
        repository: ReviewRepository,
        *,
        allowed_types: list[str],
        max_rows: int,
        max_file_size: int,
    ) -> None:
        self.repository = repository
        self.allowed_types = allowed_types
        self.max_rows = max_rows
        self.max_file_size = max_file_size

    def validate_file(self, file_name: str, content_type: str, size: int) -> None:
        if content_type.lower() not in self.allowed_types:
            raise FileValidationError(
                "Only .xls/.xlsx files are allowed for Client Reviews.",
                filename=file_name,
                allowed_types=self.allowed_types,
            )
        if size == 0:
            raise ReviewImportError("Spreadsheet is empty", details={"filename": file_name})
        if size > self.max_file_size:
            raise PayloadTooLargeError(
                message=f"File too large: {size} bytes",
                limit=self.max_file_size,
            )

    async def import_reviews(
        self,
        provider_id: int,
        *,
        content: bytes,
        file_name: str,
        content_type: str,
    ) -> ReviewImportResult:
        self.validate_file(file_name, content_type, len(content))
        rows, skipped = parse_reviews_workbook(
            content,
            file_name=file_name,
            max_rows=self.max_rows,
        )
        added = await self.repository.add_many(provider_id, rows)

        warnings = None
        if skipped:
            warnings = ReviewImportWarning(
                message=(
                    f"{len(skipped)} row(s) were skipped because the client name "
                    "or review was missing."
                ),
                skipped_rows=skipped,
            )

        log.info(
            "reviews_imported",
            provider_id=provider_id,
            reviews_added=added,
            skipped=len(skipped),
            filename=file_name,
        )
        return ReviewImportResult(reviews_added=added, warnings=warnings)
