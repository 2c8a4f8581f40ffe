# say2me/core/database.py
import asyncio
import logging
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from say2me.core.config import Settings

logger = logging.getLogger(__name__)

# 모델들이 상속받을 기본 클래스
Base = declarative_base()


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """SQLite는 연결마다 FK 검사를 켜줘야 messages.user_id 제약이 동작합니다."""

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, _):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(settings: Settings) -> AsyncEngine:
    if settings.IS_SQLITE:
        engine = create_async_engine(
            settings.ASYNC_DATABASE_URL,
            echo=settings.DB_ECHO,
            connect_args={"check_same_thread": False},
        )
        enable_sqlite_foreign_keys(engine)
        return engine

    # 풀이 가득 차면 pool_timeout 동안 대기 (즉시 실패하지 않음)
    return create_async_engine(
        settings.ASYNC_DATABASE_URL,
        echo=settings.DB_ECHO,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=0,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_pre_ping=True,  # 연결 끊김 자동 감지
    )


class Database:
    """Process-wide storage handle: one engine (connection pool) plus its session factory.

    Built once at startup and handed to the app; tests swap it or override
    ``get_db`` instead of touching module globals.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        # expire_on_commit=False: 커밋 후에도 객체 속성에 접근 가능 (비동기에서 중요)
        self.session_factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            autoflush=False,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(build_engine(settings))

    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        async with self.session_factory() as session:
            yield session

    async def create_all(self) -> None:
        # 모델 등록을 위해 import
        import say2me.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def wait_until_ready(self, retries: int = 30, delay: float = 2) -> None:
        """데이터베이스가 준비될 때까지 대기합니다."""
        logger.info(f"Waiting for database... (Max retries: {retries})")

        for i in range(retries):
            try:
                async with self.engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
                logger.info("Database is ready")
                return
            except Exception as e:
                if i == retries - 1:
                    logger.error(f"Database connection failed after {retries} attempts: {e}")
                    raise

                logger.warning(f"Database not ready yet. Retrying in {delay}s... ({i + 1}/{retries})")
                await asyncio.sleep(delay)

    async def dispose(self) -> None:
        await self.engine.dispose()


# 의존성 주입용 함수 (FastAPI에서 사용)
async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    database: Database = request.app.state.db
    async with database.session_factory() as session:
        yield session
