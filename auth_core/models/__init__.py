"""SQLAlchemy ORM 모델 패키지 — 모든 도메인 모델의 중앙 임포트 지점.

SQLAlchemy ORM models package — Central import point for all domain models.
Importing from this package ensures all models are registered with the
SQLAlchemy metadata, which is required for create_all and relationship
resolution.

Modules:
    user: 사용자 계정 (User accounts)
    token: 리프레시 토큰 (Refresh token records)
"""

from auth_core.models.user import AccountType, SubscriptionTier, User
from auth_core.models.token import RefreshToken

__all__ = [
    "AccountType", "SubscriptionTier", "User",
    "RefreshToken",
]
