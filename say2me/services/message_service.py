import logging
from typing import Any, List, Optional
from uuid import UUID

from prometheus_client import Counter
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from say2me.core import constants
from say2me.core.config import settings
from say2me.core.exceptions import UserNotFoundError
from say2me.models import Message
from say2me.repository.message import message_repo
from say2me.repository.user import user_repo
from say2me.services.common.validation import clean_message_text, parse_page

logger = logging.getLogger(__name__)

# --- Prometheus Metrics ---
MESSAGES_POSTED = Counter(
    "say2me_messages_posted_total",
    "Total number of messages stored",
    ["feed"],
)
MESSAGES_TRIMMED = Counter(
    "say2me_messages_trimmed_total",
    "Global feed messages removed by the retention ceiling",
)


def parse_user_id(raw: Any) -> Optional[UUID]:
    if isinstance(raw, UUID):
        return raw
    try:
        return UUID(str(raw))
    except ValueError:
        return None


async def enforce_global_retention(db: AsyncSession, limit: int) -> int:
    """
    글로벌 피드가 limit 개를 넘으면 가장 오래된 메시지부터 삭제합니다.
    호출한 쪽의 트랜잭션 안에서 실행되며 커밋은 호출자가 합니다.
    동시 게시가 서로의 삽입을 못 본 채 같은 행을 지우지 않도록 먼저 락을 잡고,
    락 이후의 count는 앞서 커밋된 삽입까지 반영합니다.
    """
    await message_repo.lock_global_feed(db)
    total = await message_repo.count_feed(db, user_id=None)
    excess = total - limit
    if excess <= 0:
        return 0

    deleted = await message_repo.delete_oldest_global(db, count=excess)
    MESSAGES_TRIMMED.inc(deleted)
    logger.info(f"Retention trim removed {deleted} global messages (limit {limit})")
    return deleted


async def post_message(
    db: AsyncSession,
    text: Any,
    user_id: Any = None,
    retention_limit: Optional[int] = None,
) -> Message:
    """
    메시지를 저장합니다.
    - user_id 지정: 해당 페이지로 전송 (존재하지 않으면 UserNotFoundError)
    - user_id 생략: 글로벌 피드에 저장 후 같은 트랜잭션에서 보관 한도 정리
    """
    # 검증은 저장소 접근 전에 끝냄
    message_text = clean_message_text(text)

    if user_id is not None:
        target_id = parse_user_id(user_id)
        if target_id is None or not await user_repo.exists(db, target_id):
            raise UserNotFoundError()

        try:
            message = await message_repo.create(db, message_text=message_text, user_id=target_id)
            await db.commit()
        except IntegrityError:
            # FK 제약이 사전 체크 이후의 경합을 막아줌
            await db.rollback()
            raise UserNotFoundError()
        feed = constants.FEED_PAGE
    else:
        limit = retention_limit if retention_limit is not None else settings.MESSAGE_RETENTION_LIMIT
        logger.info(f"Attempting to save message of length: {len(message_text)}")
        try:
            message = await message_repo.create(db, message_text=message_text)
            await enforce_global_retention(db, limit)
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            raise
        feed = constants.FEED_GLOBAL

    MESSAGES_POSTED.labels(feed=feed).inc()
    return message


async def list_messages(db: AsyncSession, user_id: Any = None, page: Any = 1) -> List[Message]:
    """
    최신순으로 한 페이지(20개)를 조회합니다. 범위를 벗어난 페이지는 빈 목록.
    user_id가 없으면 글로벌 피드.
    """
    page_no = parse_page(page)
    target_id = None
    if user_id is not None:
        target_id = parse_user_id(user_id)
        if target_id is None:
            return []

    offset = (page_no - 1) * constants.MESSAGE_PAGE_SIZE
    if offset > constants.MESSAGE_MAX_OFFSET:
        return []
    return await message_repo.list_feed(
        db, user_id=target_id, limit=constants.MESSAGE_PAGE_SIZE, offset=offset
    )
