"""사용자 계정 SQLAlchemy ORM 모델 정의.

User account SQLAlchemy ORM model definition.
The identity table is owned by the account collaborator; the session core
only reads it (lookup by email/id) and inserts on registration.

Tables:
    - users: 사용자 계정 (User accounts, email is globally unique)
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Enum, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from auth_core.database import Base


class AccountType(str, enum.Enum):
    """계정 유형 (Account type)."""

    INDIVIDUAL = "INDIVIDUAL"
    FAMILY_ADULT = "FAMILY_ADULT"
    FAMILY_CHILD = "FAMILY_CHILD"
    CORPORATE = "CORPORATE"


class SubscriptionTier(str, enum.Enum):
    """구독 등급 (Subscription tier)."""

    FREE = "FREE"
    PRO = "PRO"
    FAMILY = "FAMILY"
    CORPORATE = "CORPORATE"
    ENTERPRISE = "ENTERPRISE"


class User(Base):
    """사용자 모델 — 시스템 사용자 계정 정보.

    User model — System user account information.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        email: 이메일 (Login email, lower-cased, globally unique)
        password_hash: bcrypt 해시된 비밀번호 (bcrypt-hashed password)
        full_name: 실명 (Full display name)
        timezone: 사용자 시간대 (IANA timezone name, default "UTC")
        account_type: 계정 유형 (Account type)
        subscription_tier: 구독 등급 (Subscription tier)
        avatar_url: 프로필 이미지 URL (Avatar URL, optional)
        email_verified: 이메일 인증 여부 (Email verification status)
        created_at: 생성 일시 UTC (Creation timestamp)
        updated_at: 수정 일시 UTC (Last update timestamp)

    Relationships:
        refresh_tokens: 리프레시 토큰 목록 (Refresh token records, cascade delete)
    """

    __tablename__ = "users"

    # 사용자 고유 식별자 — User unique identifier (UUID v4, auto-generated)
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # 이메일 — Login email (전역 고유, globally unique)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    # 비밀번호 해시 — bcrypt hashed password (평문 저장 금지, never store plaintext)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    # 실명 — User's full display name
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")
    account_type: Mapped[AccountType] = mapped_column(
        Enum(AccountType, native_enum=False, length=20),
        nullable=False,
        default=AccountType.INDIVIDUAL,
    )
    subscription_tier: Mapped[SubscriptionTier] = mapped_column(
        Enum(SubscriptionTier, native_enum=False, length=20),
        nullable=False,
        default=SubscriptionTier.FREE,
    )
    avatar_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    # 이메일 인증 여부 — Whether email has been verified
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # 생성 일시 — Record creation timestamp (UTC)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    # 수정 일시 — Last modification timestamp (UTC, auto-updated)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # 관계 — Relationships
    refresh_tokens = relationship("RefreshToken", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
