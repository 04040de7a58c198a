"""
Base Data Access Object (DAO) class.

WHY: The DAO pattern separates database operations from business logic.
Each entity gets one typed DAO, so route handlers and services never build
ad hoc queries and every call site works with known field shapes.

HOW: DAOs only flush. The request-scoped session (``get_db``) or the
scheduler job owning the session decides when to commit.
"""

from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.models.base import Base


ModelType = TypeVar("ModelType", bound=Base)


class BaseDAO(Generic[ModelType]):
    """
    Shared create / fetch / update / delete for one model class.

    Entity DAOs subclass this and write out their list queries with
    tenant scoping and ordering.
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session

    async def create(self, **kwargs: Any) -> ModelType:
        """
        Insert a row and return it with generated fields populated.

        Raises:
            IntegrityError: On unique or foreign key violations (translated
                into API errors by the database exception handler)
        """
        instance = self.model(**kwargs)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def get_by_id(self, id: int) -> Optional[ModelType]:
        result = await self.session.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def update(self, instance: ModelType, **kwargs: Any) -> ModelType:
        """
        Apply field changes to a loaded instance.

        Returns:
            The refreshed instance (server-side ``updated_at`` included)
        """
        for field, value in kwargs.items():
            setattr(instance, field, value)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def delete(self, id: int) -> bool:
        """
        Delete by primary key with a Core statement.

        Returns:
            True if a row was deleted, False if it did not exist
        """
        result = await self.session.execute(delete(self.model).where(self.model.id == id))
        return result.rowcount > 0
