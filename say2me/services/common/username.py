import logging
import random
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from say2me.core import constants
from say2me.repository.user import user_repo

logger = logging.getLogger(__name__)


def random_username(rng: Optional[random.Random] = None) -> str:
    """adjective-noun-number 형식의 후보 (예: happy-panda-42)"""
    rng = rng or random
    adjective = rng.choice(constants.USERNAME_ADJECTIVES)
    noun = rng.choice(constants.USERNAME_NOUNS)
    number = rng.randint(0, constants.USERNAME_NUMBER_MAX)
    return f"{adjective}-{noun}-{number}"


async def generate_unique_username(db: AsyncSession, rng: Optional[random.Random] = None) -> str:
    """
    아직 사용되지 않은 랜덤 닉네임을 반환합니다.
    충돌하면 새로 뽑아 다시 시도합니다 (횟수 제한 없음).
    """
    attempts = 0
    while True:
        attempts += 1
        candidate = random_username(rng)
        if not await user_repo.username_exists(db, username=candidate):
            if attempts > 1:
                logger.debug(f"Generated username after {attempts} attempts")
            return candidate
