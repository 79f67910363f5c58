"""리프레시 토큰 정리 작업 — 만료/폐기 레코드를 주기적으로 삭제.

Refresh token retention sweeper — Periodically hard-deletes expired and
revoked records. Runs as a background asyncio task started by the app
lifespan; it is never on the request path. A failed cycle is logged and
simply retried on the next tick.
"""

import asyncio
import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from auth_core.repositories.token_repository import refresh_token_repository

logger = logging.getLogger(__name__)


class TokenSweeper:
    """만료/폐기 토큰 정리기.

    Background purger for dead refresh token records.

    Args:
        session_factory: 정리 작업용 세션 팩토리 (Session factory, one session per cycle)
        interval_seconds: 실행 주기(초) (Seconds between cycles)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        interval_seconds: float,
    ) -> None:
        self._session_factory = session_factory
        self._interval: float = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self, now: datetime | None = None) -> int:
        """정리 작업을 한 번 실행합니다.

        Purge once and commit.

        Returns:
            int: 삭제된 레코드 수 (Number of records deleted)
        """
        cutoff: datetime = now or datetime.now(timezone.utc)
        async with self._session_factory() as db:
            deleted: int = await refresh_token_repository.purge_expired_and_revoked(db, cutoff)
            await db.commit()
        logger.info("Refresh token sweep removed %d record(s)", deleted)
        return deleted

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_once()
            except Exception:
                # 다음 주기에 재시도 — retried on the next tick
                logger.exception("Refresh token sweep failed")
            await asyncio.sleep(self._interval)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="refresh-token-sweeper")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
