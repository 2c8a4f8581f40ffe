from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from say2me.core.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    def __init__(self, model: Type[ModelType]):
        self.model = model

    async def get(self, db: AsyncSession, id: Any) -> Optional[ModelType]:
        result = await db.execute(select(self.model).where(self.model.id == id))
        return result.scalars().first()

    async def exists(self, db: AsyncSession, id: Any) -> bool:
        result = await db.execute(select(self.model.id).where(self.model.id == id))
        return result.first() is not None

    async def add(self, db: AsyncSession, obj: ModelType) -> ModelType:
        """Stage and flush so server-generated columns are assigned; the caller commits."""
        db.add(obj)
        await db.flush()
        return obj
