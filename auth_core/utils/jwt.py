"""토큰 코덱 — 액세스 JWT 생성/검증 및 리프레시 시크릿 발급.

Token codec — Access JWT creation/verification and refresh secret issuance.

Access tokens are short-lived signed JWTs verified without any store
lookup. Refresh tokens are NOT JWTs: they are opaque random secrets whose
SHA-256 digest is the lookup key in the refresh_tokens table.

Access Token Payload Structure:
    {
        "sub": "user_uuid",          # 사용자 ID (User identifier)
        "email": "a@x.com",          # 이메일 (User email)
        "type": "access",            # 토큰 유형 (Token type discriminator)
        "jti": "uuid4",              # 토큰 고유 ID (Token identifier)
        "iss": "auth-core",          # 발급자 (Issuer)
        "aud": "auth-core-clients",  # 대상 (Audience)
        "iat": 1234567000,           # 발급 시간 (Issued at)
        "exp": 1234567890            # 만료 시간 UNIX timestamp (Expiration)
    }
"""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID, uuid4

import jwt

from auth_core.config import settings
from auth_core.utils.exceptions import InvalidTokenError


def create_access_token(user_id: UUID, email: str) -> str:
    """JWT 액세스 토큰을 생성합니다.

    Generate a signed JWT access token for a user.
    Token expires after JWT_ACCESS_TOKEN_EXPIRE_MINUTES (default: 15 min).

    Args:
        user_id: 사용자 ID (Subject user UUID)
        email: 사용자 이메일 (User email, carried as a convenience claim)

    Returns:
        str: 인코딩된 JWT 문자열 (Encoded JWT token string)
    """
    now: datetime = datetime.now(timezone.utc)
    # 만료 시간 설정 — 현재 UTC 시간 + 설정된 분 수 (Set expiration from current UTC + configured minutes)
    expire: datetime = now + timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "email": email,
        "type": "access",
        "jti": str(uuid4()),
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    """JWT 토큰을 디코딩하고 서명/만료/발급자/대상을 검증합니다.

    Decode and verify a JWT string (signature, expiry, issuer, audience).

    Raises:
        jwt.ExpiredSignatureError: 토큰 만료 시 (When token has expired)
        jwt.InvalidTokenError: 유효하지 않은 토큰 (When token is invalid)
    """
    return jwt.decode(
        token,
        settings.JWT_SECRET_KEY,
        algorithms=[settings.JWT_ALGORITHM],
        audience=settings.JWT_AUDIENCE,
        issuer=settings.JWT_ISSUER,
        options={"require": ["sub", "exp", "iat"]},
    )


def verify_access_token(token: str) -> UUID:
    """액세스 토큰을 검증하고 사용자 ID를 반환합니다.

    Verify an access token statelessly and return its subject.

    Args:
        token: JWT 액세스 토큰 문자열 (Encoded access token)

    Returns:
        UUID: 토큰 주체 사용자 ID (Subject user UUID)

    Raises:
        InvalidTokenError: 서명/만료/유형/주체가 유효하지 않을 때
                           (Bad signature, expired, wrong type or bad subject)
    """
    try:
        payload: dict[str, Any] = decode_token(token)
    except jwt.PyJWTError:
        raise InvalidTokenError()

    # 토큰 타입 검증 — Reject anything that is not an access token
    if payload.get("type") != "access":
        raise InvalidTokenError("Invalid token type")
    try:
        return UUID(str(payload["sub"]))
    except (KeyError, ValueError):
        raise InvalidTokenError()


def generate_refresh_secret() -> str:
    """리프레시 시크릿을 생성합니다.

    Generate an opaque refresh secret from the OS CSPRNG
    (REFRESH_TOKEN_BYTES bytes, 256 bits by default), URL-safe encoded.
    """
    return secrets.token_urlsafe(settings.REFRESH_TOKEN_BYTES)


def hash_refresh_secret(raw_secret: str) -> str:
    """리프레시 시크릿의 조회용 SHA-256 해시를 계산합니다.

    Compute the SHA-256 hex digest used as the store lookup key.
    Refresh secrets are already high-entropy, so a fast deterministic hash
    is enough and allows equality lookup (unlike bcrypt).
    """
    return hashlib.sha256(raw_secret.encode("utf-8")).hexdigest()
