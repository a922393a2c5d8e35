"""Client review repository.

Async data access helpers for the client_reviews table.
"""
from __future__ import annotations

from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.review import ClientReview


class ReviewRepository:
    """Repository providing bulk insert and lookup for client reviews."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add_many(self, provider_id: int, rows: Sequence[dict]) -> int:
        """Insert *rows* (client_name, review, rating) for a provider; returns the count."""
        reviews = [
            ClientReview(
                provider_id=provider_id,
                client_name=row["client_name"],
                review=row["review"],
                rating=row.get("rating"),
            )
            for row in rows
        ]
        self.session.add_all(reviews)
        await self.session.commit()
        return len(reviews)

    async def list_for_provider(self, provider_id: int) -> Sequence[ClientReview]:
        stmt = (
            select(ClientReview)
            .where(ClientReview.provider_id == provider_id)
            .order_by(ClientReview.id.asc())
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def count_for_provider(self, provider_id: int) -> int:
        stmt = select(func.count(ClientReview.id)).where(ClientReview.provider_id == provider_id)
        result = await self.session.execute(stmt)
        return result.scalar() or 0
