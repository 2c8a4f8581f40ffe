import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from say2me.app.exception_handlers import (
    general_exception_handler,
    http_exception_handler,
    say2me_exception_handler,
    storage_exception_handler,
    validation_exception_handler,
)
from say2me.app.middleware import (
    BodySizeLimitMiddleware,
    StripIdentifyingHeadersMiddleware,
    make_security_headers_middleware,
    request_logging_middleware,
)
from say2me.app.routers import messages, pages
from say2me.core.config import Settings, settings as default_settings
from say2me.core.database import Database
from say2me.core.exceptions import Say2meError
from say2me.core.logging import setup_logging
from say2me.core.rate_limit import client_rate_limiter, init_rate_limiter

logger = logging.getLogger(__name__)

# API Docs 태그 순서 정의
tags_metadata = [
    {"name": "pages", "description": "Page (user) creation & lookup"},
    {"name": "messages", "description": "Anonymous messages: global feed & per-page feeds"},
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    app_settings: Settings = app.state.settings
    database: Database = app.state.db

    # 1. DB 연결 대기 및 테이블 생성
    await database.wait_until_ready()
    if app_settings.AUTO_CREATE_TABLES:
        await database.create_all()
        logger.info("Database tables ensured")

    # 2. fastapi-limiter 초기화 (Redis)
    if app_settings.RATE_LIMIT_ENABLED:
        await init_rate_limiter()
        logger.info("Rate limiter initialised")

    yield

    await database.dispose()
    logger.info("Shutdown complete")


def create_app(app_settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    app_settings = app_settings or default_settings

    app = FastAPI(
        title="say2me API",
        description="Anonymous message board: named pages receiving anonymous messages",
        version="0.1.0",
        lifespan=lifespan,
        openapi_tags=tags_metadata,
        docs_url="/docs" if app_settings.ENVIRONMENT != "production" else None,
        redoc_url=None,
    )
    # 저장소 핸들은 시작 시 한 번 만들어 주입 (테스트는 get_db override)
    app.state.settings = app_settings
    app.state.db = database or Database.from_settings(app_settings)

    # Prometheus Metrics (Expose /metrics)
    Instrumentator().instrument(app).expose(app)

    # 미들웨어: 나중에 추가한 것이 바깥쪽
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=3600,
    )
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=app_settings.MAX_BODY_BYTES)
    app.middleware("http")(request_logging_middleware)
    app.middleware("http")(make_security_headers_middleware(app_settings.BACKEND_CORS_ORIGINS))
    # 식별성 헤더 제거는 가장 바깥에서 모든 라우트에 동일하게 적용
    app.add_middleware(StripIdentifyingHeadersMiddleware)

    app.add_exception_handler(Say2meError, say2me_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, storage_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    @app.get("/", tags=["health"])
    async def read_root():
        return {
            "status": "active",
            "env": app_settings.ENVIRONMENT,
        }

    # 모든 API 라우트에 클라이언트 단위 rate limit 적용
    api_dependencies = [Depends(client_rate_limiter)]
    app.include_router(pages.router, prefix="/api", dependencies=api_dependencies)
    app.include_router(messages.router, prefix="/api", dependencies=api_dependencies)

    return app


setup_logging()
app = create_app()
