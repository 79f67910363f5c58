"""사용자 레포지토리 — 이메일/ID 기반 사용자 조회 및 생성.

User Repository — Looks up users by email or id and inserts new accounts.
"""

from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from auth_core.models.user import User


class UserRepository:
    """사용자 관련 데이터베이스 쿼리를 담당하는 레포지토리.

    Repository handling user account queries for the authentication flows.
    Emails are expected to be normalized (trimmed, lower-cased) by the caller.
    """

    async def get_by_email(
        self,
        db: AsyncSession,
        email: str,
    ) -> User | None:
        """이메일로 사용자를 조회합니다.

        Retrieve a user by normalized email.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            email: 조회할 이메일 (Normalized email to look up)

        Returns:
            User | None: 조회된 사용자 또는 None (Found user or None)
        """
        query: Select = select(User).where(User.email == email)
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_id(
        self,
        db: AsyncSession,
        user_id: UUID,
    ) -> User | None:
        """ID로 사용자를 조회합니다 (Retrieve a user by UUID)."""
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def exists_by_email(self, db: AsyncSession, email: str) -> bool:
        result = await db.execute(select(User.id).where(User.email == email))
        return result.first() is not None

    async def create(
        self,
        db: AsyncSession,
        email: str,
        password_hash: str,
        full_name: str,
        timezone: str,
    ) -> User:
        """새 사용자를 생성합니다.

        Insert a new user account. Email uniqueness is enforced by the
        database; an IntegrityError propagates to the caller.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            email: 정규화된 이메일 (Normalized email)
            password_hash: bcrypt 해시 (bcrypt hash, never plaintext)
            full_name: 실명 (Full display name)
            timezone: 시간대 (IANA timezone name)

        Returns:
            User: 생성된 사용자 (Created user)
        """
        user: User = User(
            email=email,
            password_hash=password_hash,
            full_name=full_name,
            timezone=timezone,
        )
        db.add(user)
        await db.flush()
        await db.refresh(user)
        return user


# 싱글턴 인스턴스 — Singleton instance
user_repository: UserRepository = UserRepository()
