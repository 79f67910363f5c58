"""비밀번호 해싱 및 검증 유틸리티 모듈.

Password hashing and verification utility module.
Uses bcrypt directly for secure password storage.
Passwords are never stored or logged in plain text — always hashed with bcrypt.

bcrypt is deliberately CPU-expensive, so the async wrappers run it on a
worker thread bounded by a capacity limiter instead of on the event loop.
"""

from functools import lru_cache

import anyio
import bcrypt
from anyio import to_thread

from auth_core.config import settings

# bcrypt가 읽는 최대 입력 길이 — bcrypt only consumes the first 72 bytes
BCRYPT_MAX_PASSWORD_BYTES: int = 72

_limiter: anyio.CapacityLimiter | None = None


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    # 존재하지 않는 사용자 로그인 시 비교용 더미 해시 — same work factor as real hashes
    return hash_password("auth-core-dummy-password")


def _get_limiter() -> anyio.CapacityLimiter:
    # 이벤트 루프 안에서 지연 생성 — created lazily inside the running event loop
    global _limiter
    if _limiter is None:
        _limiter = anyio.CapacityLimiter(settings.PASSWORD_HASH_WORKERS)
    return _limiter


def hash_password(password: str) -> str:
    """평문 비밀번호를 bcrypt 해시로 변환합니다.

    Hash a plain text password using bcrypt.
    The resulting hash includes a random salt, making each hash unique
    even for identical passwords.

    Args:
        password: 평문 비밀번호 (Plain text password to hash)

    Returns:
        str: bcrypt 해시 문자열 (Bcrypt hash string, ~60 chars)

    Example:
        hashed = hash_password("my-secret-password")
        # "$2b$12$LJ3m4ys3..."
    """
    salt: bytes = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """평문 비밀번호와 bcrypt 해시를 비교 검증합니다.

    Verify a plain text password against a bcrypt hash.
    Uses constant-time comparison to prevent timing attacks.
    A missing or malformed hash, or a password containing NUL, yields
    False instead of raising, so callers treat it exactly like a wrong
    password.

    Args:
        plain_password: 검증할 평문 비밀번호 (Plain text password to verify)
        hashed_password: 저장된 bcrypt 해시 (Stored bcrypt hash; None means unknown user)

    Returns:
        bool: 일치하면 True, 불일치하면 False (True if password matches hash)
    """
    if hashed_password is None or "\x00" in plain_password:
        # 사용자 없음 또는 NUL 포함 — never matches; still pay for one bcrypt round
        hashed_password, expected = _dummy_hash(), False
    else:
        expected = True
    try:
        matched: bool = bcrypt.checkpw(
            plain_password.encode("utf-8"), hashed_password.encode("utf-8")
        )
    except ValueError:
        return False
    return matched and expected


async def hash_password_async(password: str) -> str:
    """워커 스레드에서 비밀번호를 해싱합니다 (Hash on a bounded worker thread)."""
    return await to_thread.run_sync(hash_password, password, limiter=_get_limiter())


async def verify_password_async(plain_password: str, hashed_password: str | None) -> bool:
    """워커 스레드에서 비밀번호를 검증합니다 (Verify on a bounded worker thread)."""
    return await to_thread.run_sync(
        verify_password, plain_password, hashed_password, limiter=_get_limiter()
    )
