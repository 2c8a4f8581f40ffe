from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from say2me.repository.base import BaseRepository
from say2me.models.user import User

class UserRepository(BaseRepository[User]):
    async def get_by_username(self, db: AsyncSession, *, username: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.username == username))
        return result.scalars().first()

    async def username_exists(self, db: AsyncSession, *, username: str) -> bool:
        result = await db.execute(select(User.id).where(User.username == username))
        return result.first() is not None

user_repo = UserRepository(User)
