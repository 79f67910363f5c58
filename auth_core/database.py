"""데이터베이스 엔진 및 세션 설정 모듈.

Database engine and session configuration module.
Sets up the async SQLAlchemy engine, session factory, and ORM base class,
plus the unit-of-work runner every request-path operation goes through.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, AsyncEngine, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from auth_core.config import settings
from auth_core.utils.exceptions import TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# 호출자가 사라진 진행 중 작업 — strong refs to units whose caller was cancelled
_orphaned_units: set[asyncio.Task[Any]] = set()

# 일시 장애로 간주하는 예외 — Errors surfaced to callers as 503 (retry with backoff)
_TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    OperationalError,
    InterfaceError,
    PoolTimeoutError,
    TimeoutError,
    ConnectionError,
)


def _engine_options(database_url: str) -> dict[str, Any]:
    """드라이버별 엔진 옵션을 구성합니다.

    Build driver-specific engine options. PostgreSQL gets a bounded pool
    and a server-side statement timeout so no store call hangs forever.
    """
    if not database_url.startswith("postgresql"):
        return {}
    return {
        "pool_size": 5,
        "max_overflow": 10,
        "pool_timeout": settings.DB_POOL_TIMEOUT_SECONDS,
        "connect_args": {
            # Supavisor(트랜잭션 모드 풀러)에서 prepared statement 비활성화
            # Disable prepared statement caches for transaction-mode pooling
            "statement_cache_size": 0,
            "timeout": settings.DB_POOL_TIMEOUT_SECONDS,
            "server_settings": {"statement_timeout": str(settings.DB_STATEMENT_TIMEOUT_MS)},
        },
    }


# 비동기 데이터베이스 엔진 — Async database engine
# pool_pre_ping=True: 커넥션 풀에서 꺼낸 연결의 유효성을 사전 확인 (Validates connections before use)
engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
    **_engine_options(settings.DATABASE_URL),
)

# 비동기 세션 팩토리 — Async session factory
# expire_on_commit=False: 커밋 후에도 객체 속성 접근 가능 (Allows attribute access after commit without refresh)
async_session: async_sessionmaker[AsyncSession] = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """SQLAlchemy 선언적 베이스 클래스.

    Declarative base class for all ORM models.
    """

    pass


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """요청 처리에 사용할 세션 팩토리를 반환합니다.

    FastAPI dependency returning the session factory. Tests override it
    to point at an isolated database.
    """
    return async_session


async def run_in_transaction(
    session_factory: async_sessionmaker[AsyncSession],
    operation: Callable[[AsyncSession], Awaitable[T]],
) -> T:
    """하나의 작업 단위를 독립 세션에서 실행하고 커밋합니다.

    Run one unit of work in its own session and commit it.

    The unit runs inside ``asyncio.shield``: if the caller disconnects
    mid-request, the in-flight revoke/create still completes and commits
    instead of being rolled back halfway, and its outcome is logged once
    it ends. Connectivity and timeout
    failures are translated to TransientStoreError; nothing is retried.

    Args:
        session_factory: 세션 팩토리 (Session factory)
        operation: 세션을 받아 실행할 코루틴 함수 (Coroutine function taking a session)

    Returns:
        T: 작업 결과 (Result of the operation)

    Raises:
        TransientStoreError: DB 타임아웃 또는 연결 장애 (Store timeout or outage)
    """

    async def _unit_of_work() -> T:
        async with session_factory() as session:
            try:
                result: T = await operation(session)
                await session.commit()
            except _TRANSIENT_ERRORS as exc:
                logger.warning("Token store unavailable: %s", type(exc).__name__)
                raise TransientStoreError() from exc
            return result

    task: asyncio.Task[T] = asyncio.ensure_future(_unit_of_work())
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        # 호출자 취소 후에도 작업은 계속됨 — the unit keeps running; report how it ends
        _orphaned_units.add(task)
        task.add_done_callback(_orphaned_units.discard)
        task.add_done_callback(_log_orphaned_outcome)
        raise


def _log_orphaned_outcome(task: asyncio.Task[Any]) -> None:
    """호출자가 취소된 작업 단위의 결과를 기록합니다 (Log how an orphaned unit of work ended)."""
    if task.cancelled():
        logger.warning("Unit of work cancelled after its caller went away")
        return
    exc: BaseException | None = task.exception()
    if exc is not None:
        logger.error(
            "Unit of work failed after its caller went away: %s",
            type(exc).__name__,
            exc_info=exc,
        )
    else:
        logger.info("Unit of work committed after its caller went away")
