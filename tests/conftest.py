"""테스트 인프라 — 임시 SQLite DB, 세션 팩토리, httpx 클라이언트 픽스처.

Test infrastructure — Temporary SQLite DB, session factory, and httpx
client fixtures. Each test gets its own database file under tmp_path, so
no cleanup between tests is needed.
"""

import os

# 설정 로드 전에 테스트 환경 변수 지정 — must be set before auth_core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("TOKEN_SWEEP_ENABLED", "false")
os.environ.setdefault("DB_AUTO_CREATE_SCHEMA", "false")

from collections.abc import AsyncGenerator  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from auth_core.database import Base, get_session_factory  # noqa: E402
from auth_core.main import app  # noqa: E402
from auth_core.models import *  # noqa: F401,F403,E402 — register all models with metadata
from auth_core.models.token import RefreshToken  # noqa: E402
from auth_core.models.user import User  # noqa: E402
from auth_core.repositories.token_repository import refresh_token_repository  # noqa: E402
from auth_core.repositories.user_repository import user_repository  # noqa: E402
from auth_core.utils.jwt import hash_refresh_secret  # noqa: E402
from auth_core.utils.password import hash_password  # noqa: E402

USER_EMAIL = "ann@example.com"
USER_PASSWORD = "longpassword1"


# ---------------------------------------------------------------------------
# Function-scoped: 엔진, 세션, 클라이언트
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """테스트용 async 엔진. 테스트마다 새 DB 파일에 스키마를 생성합니다."""
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'auth_core_test.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """각 테스트에 격리된 DB 세션을 제공합니다."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncClient, None]:
    """FastAPI 테스트 클라이언트 — 세션 팩토리를 오버라이드합니다."""
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# 헬퍼 픽스처: 테스트용 데이터 생성
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def user(db: AsyncSession) -> User:
    """테스트 사용자를 생성합니다."""
    u = await user_repository.create(
        db,
        email=USER_EMAIL,
        password_hash=hash_password(USER_PASSWORD),
        full_name="Ann Example",
        timezone="UTC",
    )
    await db.commit()
    return u


async def make_refresh_record(
    db: AsyncSession,
    user_id,
    raw_secret: str,
    expires_in: timedelta = timedelta(days=30),
    revoked: bool = False,
) -> RefreshToken:
    """원하는 상태의 리프레시 토큰 레코드를 직접 생성합니다."""
    now = datetime.now(timezone.utc)
    record = await refresh_token_repository.create(
        db,
        user_id=user_id,
        token_hash=hash_refresh_secret(raw_secret),
        expires_at=now + expires_in,
    )
    if revoked:
        await refresh_token_repository.revoke(db, record, now)
    await db.commit()
    return record


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
