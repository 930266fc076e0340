"""
Order repository.

Data access layer for Order model.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from injapan_affiliate.models.order import Order
from injapan_affiliate.repositories.base import BaseRepository


class OrderRepository(BaseRepository[Order]):
    """Order repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize order repository."""
        super().__init__(Order, session)

    async def get_by_user(self, user_id: str) -> list[Order]:
        """Get orders of a user, newest first."""
        return await self.find_by(newest_first=True, user_id=user_id)
