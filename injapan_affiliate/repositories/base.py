"""
Base repository.

Generic CRUD operations and atomic counter updates for all repositories.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from injapan_affiliate.models.base import Base
from injapan_affiliate.utils.datetime_utils import utc_now

# Generic type for model
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository with generic CRUD operations.

    Provides async database operations for any SQLAlchemy model.

    Type Parameters:
        ModelType: SQLAlchemy model class

    Example:
        class OrderRepository(BaseRepository[Order]):
            def __init__(self, session: AsyncSession):
                super().__init__(Order, session)
    """

    def __init__(
        self, model: type[ModelType], session: AsyncSession
    ) -> None:
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            session: Async database session
        """
        self.model = model
        self.session = session

    async def get_by_id(
        self, id: int, for_update: bool = False
    ) -> ModelType | None:
        """
        Get entity by ID.

        Always re-reads the row: bulk updates bypass the identity map.

        Args:
            id: Entity ID
            for_update: Use SELECT FOR UPDATE to lock row

        Returns:
            Entity or None if not found
        """
        if not for_update:
            return await self.session.get(
                self.model, id, populate_existing=True
            )

        stmt = (
            select(self.model)
            .where(self.model.id == id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by(
        self, **filters: Any
    ) -> ModelType | None:
        """
        Get single entity by filters.

        Args:
            **filters: Column filters

        Returns:
            First matching entity or None
        """
        stmt = (
            select(self.model)
            .filter_by(**filters)
            .limit(1)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by(
        self,
        limit: int | None = None,
        offset: int | None = None,
        newest_first: bool = False,
        **filters: Any,
    ) -> list[ModelType]:
        """
        Find entities by filters.

        Args:
            limit: Max number of results
            offset: Number of results to skip
            newest_first: Order by created_at descending
            **filters: Column filters

        Returns:
            List of matching entities
        """
        stmt = (
            select(self.model)
            .filter_by(**filters)
            .execution_options(populate_existing=True)
        )

        if newest_first:
            stmt = stmt.order_by(
                self.model.created_at.desc(), self.model.id.desc()
            )
        else:
            stmt = stmt.order_by(self.model.id)
        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create(self, **data: Any) -> ModelType:
        """
        Create new entity.

        Args:
            **data: Entity data

        Returns:
            Created entity
        """
        entity = self.model(**data)
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def update(
        self, id: int, **data: Any
    ) -> ModelType | None:
        """
        Update entity by ID (targeted column update).

        Args:
            id: Entity ID
            **data: Updated data

        Returns:
            Updated entity or None if not found
        """
        entity = await self.get_by_id(id)
        if not entity:
            return None

        for key, value in data.items():
            setattr(entity, key, value)

        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def increment(self, id: int, **deltas: Any) -> bool:
        """
        Atomically add deltas to counter columns.

        Issues a single ``UPDATE ... SET col = col + :delta`` so concurrent
        increments never lose an update.

        Args:
            id: Entity ID
            **deltas: Column name -> delta (may be negative)

        Returns:
            True if the row exists and was updated
        """
        values: dict[str, Any] = {
            name: getattr(self.model, name) + delta
            for name, delta in deltas.items()
        }
        if hasattr(self.model, "updated_at"):
            values["updated_at"] = utc_now()

        stmt = (
            update(self.model)
            .where(self.model.id == id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def transition(
        self,
        id: int,
        from_statuses: tuple[str, ...],
        **values: Any,
    ) -> bool:
        """
        Conditionally update a row only while it is in one of from_statuses.

        Args:
            id: Entity ID
            from_statuses: Statuses the row must currently have
            **values: Columns to set (normally includes the new status)

        Returns:
            True if the row matched and was updated
        """
        if hasattr(self.model, "updated_at"):
            values.setdefault("updated_at", utc_now())

        stmt = (
            update(self.model)
            .where(
                self.model.id == id,
                self.model.status.in_([str(s) for s in from_statuses]),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def count(self, **filters: Any) -> int:
        """
        Count entities matching filters.

        Args:
            **filters: Column filters

        Returns:
            Count of matching entities
        """
        stmt = select(func.count()).select_from(self.model)

        if filters:
            stmt = stmt.filter_by(**filters)

        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def exists(self, **filters: Any) -> bool:
        """
        Check if entity exists.

        Args:
            **filters: Column filters

        Returns:
            True if exists, False otherwise
        """
        count = await self.count(**filters)
        return count > 0

    async def find_paginated(
        self,
        page: int = 1,
        per_page: int = 100,
        **filters: Any
    ) -> tuple[list[ModelType], int]:
        """
        Find entities with pagination, newest first.

        Args:
            page: Page number (1-indexed)
            per_page: Items per page
            **filters: Column filters

        Returns:
            Tuple of (items, total_count)
        """
        total = await self.count(**filters)
        items = await self.find_by(
            limit=per_page,
            offset=(page - 1) * per_page,
            newest_first=True,
            **filters,
        )
        return items, total
