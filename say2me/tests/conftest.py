import sys
import os
from pathlib import Path

# Ensure project root is on sys.path so `import say2me` works
ROOT = str(Path(__file__).resolve().parents[2])
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

# 앱 import 전에 테스트 환경 설정 (rate limit/Redis 비활성화)
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("NTFY_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import uuid
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool, NullPool
from httpx import AsyncClient, ASGITransport

from say2me.core.database import Base, get_db, enable_sqlite_foreign_keys
from say2me.app.main import app
from say2me.models import User


# 1. 테스트용 DB URL 결정
#  - TEST_DATABASE_URL 이 있으면 그걸 사용 (예: postgresql://...)
#  - 기본은 SQLite 메모리
RAW_DB_URL = os.getenv("TEST_DATABASE_URL")

if RAW_DB_URL:
    url = RAW_DB_URL.replace("postgres://", "postgresql://")
    SQLALCHEMY_DATABASE_URL = url.replace("postgresql://", "postgresql+asyncpg://", 1)
else:
    SQLALCHEMY_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

if SQLALCHEMY_DATABASE_URL.startswith("sqlite+aiosqlite"):
    engine = create_async_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
else:
    engine = create_async_engine(SQLALCHEMY_DATABASE_URL, poolclass=NullPool)

TestingSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False,
)


# 2. DB Fixture (Async)
@pytest_asyncio.fixture(scope="function")
async def db_session():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestingSessionLocal() as session:
        yield session

    # 정리 (cleanup)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(scope="function")
def session_factory():
    return TestingSessionLocal


# 3. 테스트 데이터 Fixture
@pytest_asyncio.fixture(scope="function")
async def test_user(db_session: AsyncSession):
    user_id = uuid.UUID("3fa85f64-5717-4562-b3fc-2c963f66afa6")
    user = User(id=user_id, username="tester")
    db_session.add(user)
    await db_session.commit()
    return user_id


# 4. Client Fixture (AsyncClient)
@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession):
    """
    httpx.AsyncClient를 사용하여 비동기 API 테스트
    """
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
