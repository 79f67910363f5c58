"""리프레시 토큰 모델 — 회전형 리프레시 토큰 레코드 저장.

Refresh Token model — Stores rotating refresh token records.
Only a SHA-256 digest of the raw secret is persisted; the raw secret is
handed to the client once and never stored.

State of a record at instant ``now``:
    Active  — revoked_at is None and now < expires_at
    Expired — revoked_at is None and now >= expires_at
    Revoked — revoked_at is not None (permanent)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from auth_core.database import Base


def _as_utc(value: datetime) -> datetime:
    # SQLite는 tz 정보 없이 저장함 — SQLite round-trips naive datetimes; they are UTC
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class RefreshToken(Base):
    """리프레시 토큰 테이블.

    Refresh token table for managing long-lived authentication sessions.

    Attributes:
        id: 고유 식별자 (Primary key UUID)
        user_id: 소유 사용자 ID (Owner user UUID)
        token_hash: 원문 시크릿의 SHA-256 해시 (SHA-256 digest of the raw secret, unique)
        device_info: 발급 기기 정보 (User-Agent at issuance, informational)
        ip_address: 발급 요청 IP (Client address at issuance, informational)
        expires_at: 만료 일시 (Expiration timestamp)
        revoked_at: 폐기 일시, None이면 미폐기 (Revocation timestamp, None while unrevoked)
        created_at: 생성 일시 (Creation timestamp)
    """

    __tablename__ = "refresh_tokens"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    device_info: Mapped[str | None] = mapped_column(String(512), nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    user = relationship("User", back_populates="refresh_tokens")

    def is_expired(self, now: datetime) -> bool:
        return now >= _as_utc(self.expires_at)

    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    def is_valid(self, now: datetime) -> bool:
        """사용 시점 기준 유효성 — Active iff unrevoked and not yet expired at ``now``."""
        return not self.is_revoked() and not self.is_expired(now)
