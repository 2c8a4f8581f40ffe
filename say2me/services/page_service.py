import logging
import random
import uuid
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from say2me.core import constants
from say2me.core.exceptions import PageNotFoundError, UsernameTakenError
from say2me.models import User
from say2me.repository.user import user_repo
from say2me.schemas.page import PageCreated
from say2me.services.common.username import generate_unique_username
from say2me.services.common.validation import validate_username

logger = logging.getLogger(__name__)


def page_url(username: str) -> str:
    return f"{constants.PAGE_URL_PREFIX}{username}"


async def _insert_user(db: AsyncSession, username: str) -> User:
    user = User(id=uuid.uuid4(), username=username)
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # 동시 생성 경합: UNIQUE 제약이 최종 판정
        await db.rollback()
        raise
    return user


async def create_page(
    db: AsyncSession,
    username: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> PageCreated:
    """
    새 페이지(유저)를 생성합니다.
    - username 지정: 형식 검사 후 중복이면 UsernameTakenError
    - username 생략: 사용되지 않은 랜덤 닉네임 생성
    """
    if username is not None:
        username = validate_username(username)
        if await user_repo.username_exists(db, username=username):
            raise UsernameTakenError()
        try:
            user = await _insert_user(db, username)
        except IntegrityError:
            raise UsernameTakenError()
    else:
        while True:
            candidate = await generate_unique_username(db, rng)
            try:
                user = await _insert_user(db, candidate)
                break
            except IntegrityError:
                logger.info("Generated username was claimed concurrently, drawing again")

    logger.info(f"Page created: {user.username}")
    return PageCreated(user_id=user.id, username=user.username, url=page_url(user.username))


async def get_page(db: AsyncSession, username: str) -> User:
    """닉네임으로 페이지(유저)를 조회합니다."""
    user = await user_repo.get_by_username(db, username=username)
    if not user:
        raise PageNotFoundError()
    return user
