"""리프레시 토큰 레포지토리 — 토큰 레코드 생성, 조회, 폐기, 정리.

Refresh Token Repository — Creates, finds, revokes and purges refresh
token records.

Concurrency contract:
    Every mutation is a single conditional statement, never a
    read-then-write loop. ``revoke`` only touches a row whose revoked_at
    is still NULL, so when two requests rotate the same token concurrently
    the database lets exactly one UPDATE affect the row; the other sees
    zero affected rows and must treat the token as already revoked.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Select, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from auth_core.models.token import RefreshToken


class RefreshTokenRepository:
    """리프레시 토큰 레코드의 데이터베이스 작업을 담당하는 레포지토리.

    Repository handling refresh token record persistence.
    Records are never mutated except to set revoked_at, and are only
    deleted by the retention sweeper.
    """

    async def create(
        self,
        db: AsyncSession,
        user_id: UUID,
        token_hash: str,
        expires_at: datetime,
        device_info: str | None = None,
        ip_address: str | None = None,
    ) -> RefreshToken:
        """새 리프레시 토큰 레코드를 생성합니다.

        Create a new Active refresh token record.
        A token_hash collision raises IntegrityError, which is left to
        surface as an internal error.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            user_id: 토큰 소유자 사용자 ID (Token owner user UUID)
            token_hash: 원문 시크릿의 SHA-256 해시 (SHA-256 digest of the raw secret)
            expires_at: 토큰 만료 일시 (Token expiration timestamp)
            device_info: 발급 기기 정보 (User-Agent, optional)
            ip_address: 발급 요청 IP (Client address, optional)

        Returns:
            RefreshToken: 생성된 리프레시 토큰 레코드 (Created refresh token record)
        """
        db_token: RefreshToken = RefreshToken(
            user_id=user_id,
            token_hash=token_hash,
            expires_at=expires_at,
            device_info=device_info[:512] if device_info else None,
            ip_address=ip_address[:45] if ip_address else None,
        )
        db.add(db_token)
        await db.flush()
        await db.refresh(db_token)
        return db_token

    async def get_by_token_hash(
        self,
        db: AsyncSession,
        token_hash: str,
    ) -> RefreshToken | None:
        """토큰 해시로 토큰 레코드를 조회합니다.

        Retrieve a refresh token record by the digest of its secret.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            token_hash: 조회할 SHA-256 해시 (Digest to look up)

        Returns:
            RefreshToken | None: 조회된 토큰 레코드 또는 None (Found record or None)
        """
        query: Select = select(RefreshToken).where(RefreshToken.token_hash == token_hash)
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def revoke(
        self,
        db: AsyncSession,
        record: RefreshToken,
        now: datetime,
    ) -> bool:
        """단일 토큰 레코드를 조건부로 폐기합니다.

        Conditionally revoke one record: set revoked_at only where it is
        still NULL. Revoking an already-revoked record is a no-op.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            record: 폐기할 토큰 레코드 (Record to revoke)
            now: 폐기 시각 (Revocation instant)

        Returns:
            bool: 이번 호출로 폐기되었으면 True, 이미 폐기된 상태였으면 False
                  (True if this call revoked it; False if it was already revoked)
        """
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.id == record.id, RefreshToken.revoked_at.is_(None))
            .values(revoked_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        if result.rowcount == 1:
            record.revoked_at = now
            return True
        return False

    async def revoke_all_for_user(
        self,
        db: AsyncSession,
        user_id: UUID,
        now: datetime,
    ) -> int:
        """특정 사용자의 미폐기 토큰을 한 번에 모두 폐기합니다.

        Revoke every unrevoked record of a user with one bulk UPDATE
        (logout from all devices, replay containment).

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            user_id: 대상 사용자 ID (Target user UUID)
            now: 폐기 시각 (Revocation instant)

        Returns:
            int: 폐기된 레코드 수 (Number of records revoked)
        """
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.revoked_at.is_(None))
            .values(revoked_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount

    async def purge_expired_and_revoked(
        self,
        db: AsyncSession,
        now: datetime,
    ) -> int:
        """만료되었거나 폐기된 토큰 레코드를 영구 삭제합니다.

        Hard-delete records where expires_at < now or revoked_at is set.
        Active records are untouched.

        Returns:
            int: 삭제된 레코드 수 (Number of records deleted)
        """
        stmt = (
            delete(RefreshToken)
            .where(or_(RefreshToken.expires_at < now, RefreshToken.revoked_at.is_not(None)))
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount

    async def count_active_for_user(
        self,
        db: AsyncSession,
        user_id: UUID,
        now: datetime,
    ) -> int:
        query: Select = (
            select(func.count())
            .select_from(RefreshToken)
            .where(
                RefreshToken.user_id == user_id,
                RefreshToken.revoked_at.is_(None),
                RefreshToken.expires_at > now,
            )
        )
        return (await db.execute(query)).scalar() or 0


# 싱글턴 인스턴스 — Singleton instance
refresh_token_repository: RefreshTokenRepository = RefreshTokenRepository()
