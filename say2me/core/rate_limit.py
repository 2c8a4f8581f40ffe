# fastapi-limiter 설정 및 Redis 연결
import math

import redis.asyncio as redis
from fastapi import Request, Response
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter
from redis.exceptions import NoScriptError

from say2me.core.config import settings
from say2me.core.exceptions import RateLimitError

RATE_LIMIT_PREFIX = "say2me-limiter"


async def client_identifier(request: Request) -> str:
    # 식별 헤더(X-Forwarded-For 등)는 이미 제거된 상태이므로 전송 계층 주소만 사용
    return request.client.host if request.client else "unknown"


async def rate_limit_exceeded(request: Request, response: Response, pexpire: int):
    raise RateLimitError(retry_after=math.ceil(pexpire / 1000))


async def init_rate_limiter(redis_client=None):
    if redis_client is None:
        redis_client = redis.Redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            decode_responses=True,
        )
    await FastAPILimiter.init(
        redis_client,
        prefix=RATE_LIMIT_PREFIX,
        identifier=client_identifier,
        http_callback=rate_limit_exceeded,
    )


class ClientRateLimiter(RateLimiter):
    """Fixed-window limiter with one bucket per client address for the whole API.

    The stock ``RateLimiter`` keys its window per route; here every route
    shares the client's counter.
    """

    async def __call__(self, request: Request, response: Response):
        # 비활성화 시 no-op (테스트/로컬 환경)
        if not settings.RATE_LIMIT_ENABLED:
            return None
        if not FastAPILimiter.redis:
            raise RuntimeError("init_rate_limiter() must run before serving requests")

        identifier = self.identifier or FastAPILimiter.identifier
        callback = self.callback or FastAPILimiter.http_callback
        key = f"{FastAPILimiter.prefix}:{await identifier(request)}"
        try:
            pexpire = await self._check(key)
        except NoScriptError:
            FastAPILimiter.lua_sha = await FastAPILimiter.redis.script_load(FastAPILimiter.lua_script)
            pexpire = await self._check(key)
        if pexpire != 0:
            return await callback(request, response, pexpire)
        return None


client_rate_limiter = ClientRateLimiter(
    times=settings.RATE_LIMIT_TIMES,
    seconds=settings.RATE_LIMIT_SECONDS,
)
