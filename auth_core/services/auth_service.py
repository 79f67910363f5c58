"""인증 서비스 — 회원가입, 로그인, 토큰 회전, 로그아웃 비즈니스 로직.

Auth Service — Business logic for registration, login, refresh token
rotation, logout and current-user lookup.

Refresh token lifecycle:
    Every login and every successful refresh creates exactly one new
    Active record. A refresh consumes the presented record (Active →
    Revoked) and mints a replacement. Presenting a record that is not
    Active is treated as a replay: all of the user's sessions are revoked
    and the caller gets the same opaque InvalidTokenError as for an
    unknown token.
"""

import logging
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from auth_core.config import settings
from auth_core.models.token import RefreshToken
from auth_core.models.user import User
from auth_core.repositories.token_repository import refresh_token_repository
from auth_core.repositories.user_repository import user_repository
from auth_core.schemas.auth import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from auth_core.utils.exceptions import (
    ConflictError,
    InvalidCredentialsError,
    InvalidTokenError,
    NotFoundError,
)
from auth_core.utils.jwt import create_access_token, generate_refresh_secret, hash_refresh_secret
from auth_core.utils.logging_config import get_security_logger
from auth_core.utils.password import hash_password_async, verify_password_async

logger = logging.getLogger(__name__)
security_logger = get_security_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    """이메일 정규화 — 앞뒤 공백 제거 및 소문자 변환 (Trim and lower-case)."""
    return email.strip().lower()


class AuthService:
    """인증 관련 비즈니스 로직을 처리하는 서비스.

    Service handling authentication business logic.
    Writes are never committed here on the success path; the caller's unit
    of work (see ``run_in_transaction``) commits once the whole operation
    is done. Two exceptions: register and login end their read transaction
    before bcrypt runs so no connection is held during hashing, and the
    replay path commits its mass revocation before the error is raised so
    the containment survives the rollback.
    """

    def to_user_response(self, user: User) -> UserResponse:
        """사용자 모델을 응답 스키마로 변환합니다 — 비밀번호 해시 제외.

        Map a User row to the sanitized view (no password hash).
        """
        return UserResponse(
            id=str(user.id),
            email=user.email,
            full_name=user.full_name,
            account_type=user.account_type.value,
            subscription_tier=user.subscription_tier.value,
            timezone=user.timezone,
            avatar_url=user.avatar_url,
            email_verified=user.email_verified,
        )

    async def _issue_refresh_token(
        self,
        db: AsyncSession,
        user_id: UUID,
        now: datetime,
        device_info: str | None,
        ip_address: str | None,
    ) -> str:
        """새 리프레시 시크릿을 생성하고 해시를 저장합니다.

        Mint a fresh refresh secret and persist its digest as a new Active
        record. Only the raw secret is returned; it is never stored.

        Returns:
            str: 원문 리프레시 시크릿 (Raw refresh secret for the client)
        """
        raw_secret: str = generate_refresh_secret()
        expires_at: datetime = now + timedelta(days=settings.JWT_REFRESH_TOKEN_EXPIRE_DAYS)
        await refresh_token_repository.create(
            db,
            user_id=user_id,
            token_hash=hash_refresh_secret(raw_secret),
            expires_at=expires_at,
            device_info=device_info,
            ip_address=ip_address,
        )
        return raw_secret

    async def _create_auth_response(
        self,
        db: AsyncSession,
        user: User,
        device_info: str | None,
        ip_address: str | None,
    ) -> AuthResponse:
        """액세스 토큰과 리프레시 토큰을 생성합니다.

        Generate the access/refresh token pair plus the sanitized user view.
        """
        refresh_token: str = await self._issue_refresh_token(
            db, user.id, _utcnow(), device_info, ip_address
        )
        return AuthResponse(
            access_token=create_access_token(user.id, user.email),
            refresh_token=refresh_token,
            user=self.to_user_response(user),
        )

    async def _contain_replay(
        self,
        db: AsyncSession,
        record: RefreshToken,
        now: datetime,
        reason: str,
    ) -> None:
        """재사용 탐지 시 사용자의 모든 세션을 폐기하고 즉시 커밋합니다.

        Replay containment: revoke every session of the token's owner and
        commit right away, since the request itself ends in an error.
        """
        revoked: int = await refresh_token_repository.revoke_all_for_user(db, record.user_id, now)
        await db.commit()
        security_logger.warning(
            "Refresh token reuse detected (%s): record=%s user=%s sessions_revoked=%d",
            reason, record.id, record.user_id, revoked,
        )

    async def register(
        self,
        db: AsyncSession,
        data: RegisterRequest,
        device_info: str | None = None,
        ip_address: str | None = None,
    ) -> AuthResponse:
        """회원가입을 처리합니다.

        Register a new account, then log it in.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            data: 회원가입 요청 데이터 (Registration request data)
            device_info: 요청 기기 정보 (User-Agent, optional)
            ip_address: 요청 IP (Client address, optional)

        Returns:
            AuthResponse: 토큰 쌍과 사용자 정보 (Token pair and user view)

        Raises:
            ConflictError: 같은 이메일이 이미 존재할 때 (When the email already exists)
        """
        email: str = normalize_email(data.email)

        # 이메일 중복 확인 — Check email uniqueness
        if await user_repository.exists_by_email(db, email):
            raise ConflictError()
        # 해싱 중 커넥션 반납 — no pooled connection is held while bcrypt runs
        await db.commit()

        # 해싱은 DB 쓰기 전에 워커 스레드에서 — Hash off the event loop, before any write
        password_hash: str = await hash_password_async(data.password)
        try:
            user: User = await user_repository.create(
                db,
                email=email,
                password_hash=password_hash,
                full_name=data.full_name,
                timezone=data.timezone or "UTC",
            )
        except IntegrityError:
            # 동시 가입 경쟁 — lost a concurrent registration race on the unique email
            raise ConflictError()

        logger.info("User registered: %s", user.id)
        return await self._create_auth_response(db, user, device_info, ip_address)

    async def login(
        self,
        db: AsyncSession,
        data: LoginRequest,
        device_info: str | None = None,
        ip_address: str | None = None,
    ) -> AuthResponse:
        """로그인을 처리합니다.

        Process login. An unknown email and a wrong password produce the
        same error, and both pay for one bcrypt verification.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            data: 로그인 요청 데이터 (Login request data)
            device_info: 요청 기기 정보 (User-Agent, optional)
            ip_address: 요청 IP (Client address, optional)

        Returns:
            AuthResponse: 토큰 쌍과 사용자 정보 (Token pair and user view)

        Raises:
            InvalidCredentialsError: 잘못된 인증 정보일 때 (Invalid credentials)
        """
        user: User | None = await user_repository.get_by_email(db, normalize_email(data.email))
        # 검증 전에 읽기 트랜잭션 종료 — release the connection before bcrypt
        await db.commit()
        matched: bool = await verify_password_async(
            data.password, user.password_hash if user is not None else None
        )
        if user is None or not matched:
            raise InvalidCredentialsError()

        logger.info("User logged in: %s", user.id)
        return await self._create_auth_response(db, user, device_info, ip_address)

    async def refresh_token(
        self,
        db: AsyncSession,
        raw_refresh_token: str,
        device_info: str | None = None,
        ip_address: str | None = None,
    ) -> TokenResponse:
        """리프레시 토큰을 회전하여 새 토큰 쌍을 발급합니다.

        Rotate a refresh token: consume the presented record and issue a
        new access token plus a new refresh secret.

        The consume step is a conditional revoke. If a concurrent request
        consumed the same record first, the conditional revoke affects no
        row and this request takes the replay path.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            raw_refresh_token: 클라이언트가 제시한 원문 시크릿 (Raw refresh secret)
            device_info: 요청 기기 정보 (User-Agent, optional)
            ip_address: 요청 IP (Client address, optional)

        Returns:
            TokenResponse: 새 토큰 쌍 (New token pair)

        Raises:
            InvalidTokenError: 없거나, 만료/폐기되었거나, 재사용된 토큰일 때
                               (Unknown, expired, revoked or replayed token)
        """
        now: datetime = _utcnow()
        record: RefreshToken | None = await refresh_token_repository.get_by_token_hash(
            db, hash_refresh_secret(raw_refresh_token)
        )
        if record is None:
            raise InvalidTokenError()

        if not record.is_valid(now):
            reason = "revoked" if record.is_revoked() else "expired"
            await self._contain_replay(db, record, now, reason)
            raise InvalidTokenError()

        if not await refresh_token_repository.revoke(db, record, now):
            await self._contain_replay(db, record, now, "concurrent rotation")
            raise InvalidTokenError()

        user: User | None = await user_repository.get_by_id(db, record.user_id)
        if user is None:
            raise InvalidTokenError()

        new_refresh_token: str = await self._issue_refresh_token(
            db, user.id, now, device_info, ip_address
        )
        logger.debug("Tokens refreshed for user: %s", user.id)
        return TokenResponse(
            access_token=create_access_token(user.id, user.email),
            refresh_token=new_refresh_token,
        )

    async def logout(
        self,
        db: AsyncSession,
        user_id: UUID,
    ) -> None:
        """로그아웃 처리 — 사용자의 모든 리프레시 토큰을 폐기합니다.

        Revoke every refresh token of the user. Idempotent: succeeds even
        when the user has no active session left.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            user_id: 대상 사용자 ID (Target user UUID)
        """
        revoked: int = await refresh_token_repository.revoke_all_for_user(db, user_id, _utcnow())
        logger.info("User logged out: %s (sessions_revoked=%d)", user_id, revoked)

    async def get_current_user(
        self,
        db: AsyncSession,
        user_id: UUID,
    ) -> UserResponse:
        """현재 로그인한 사용자 프로필을 반환합니다.

        Return the sanitized profile of the authenticated user.

        Raises:
            NotFoundError: 토큰 발급 후 사용자가 삭제된 경우 (User deleted since issuance)
        """
        user: User | None = await user_repository.get_by_id(db, user_id)
        if user is None:
            raise NotFoundError()
        return self.to_user_response(user)


# 싱글턴 인스턴스 — Singleton instance
auth_service: AuthService = AuthService()
