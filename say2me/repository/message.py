from typing import List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func

from say2me.core import constants
from say2me.repository.base import BaseRepository
from say2me.models.message import Message

class MessageRepository(BaseRepository[Message]):
    @staticmethod
    def _feed_filter(user_id: Optional[UUID]):
        if user_id is None:
            return Message.user_id.is_(None)
        return Message.user_id == user_id

    async def create(self, db: AsyncSession, *, message_text: str, user_id: Optional[UUID] = None) -> Message:
        message = await self.add(db, Message(user_id=user_id, message_text=message_text))
        # server_default(timestamp) 값을 읽어오기 위해 refresh
        await db.refresh(message)
        return message

    async def list_feed(
        self, db: AsyncSession, *, user_id: Optional[UUID], limit: int, offset: int
    ) -> List[Message]:
        """최신순(timestamp DESC, id DESC) 페이지 조회. id가 동일 timestamp의 순서를 고정."""
        result = await db.execute(
            select(Message)
            .where(self._feed_filter(user_id))
            .order_by(Message.timestamp.desc(), Message.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def count_feed(self, db: AsyncSession, *, user_id: Optional[UUID] = None) -> int:
        result = await db.execute(
            select(func.count(Message.id)).where(self._feed_filter(user_id))
        )
        return result.scalar_one()

    async def lock_global_feed(self, db: AsyncSession) -> None:
        """
        글로벌 피드 정리를 트랜잭션 단위로 직렬화합니다 (PostgreSQL advisory lock).
        트랜잭션 종료 시 자동 해제. SQLite는 쓰기 트랜잭션이 이미 직렬화되어 no-op.
        """
        if db.get_bind().dialect.name != "postgresql":
            return
        await db.execute(select(func.pg_advisory_xact_lock(constants.GLOBAL_FEED_LOCK_KEY)))

    async def delete_oldest_global(self, db: AsyncSession, *, count: int) -> int:
        if count <= 0:
            return 0
        oldest = (
            select(Message.id)
            .where(Message.user_id.is_(None))
            .order_by(Message.timestamp.asc(), Message.id.asc())
            .limit(count)
        )
        result = await db.execute(
            delete(Message)
            .where(Message.id.in_(oldest))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

message_repo = MessageRepository(Message)
