"""인증 관련 Pydantic 요청/응답 스키마 정의.

Authentication-related Pydantic request/response schema definitions.
Covers registration, login, token issuance/refresh, and current user info.
JSON keys are camelCase on the wire; snake_case is also accepted on input.
"""

from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, EmailStr, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

from auth_core.utils.password import BCRYPT_MAX_PASSWORD_BYTES


class CamelModel(BaseModel):
    """camelCase 직렬화 베이스 (Base model serializing to camelCase keys)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _strip_email(value: object) -> object:
    return value.strip() if isinstance(value, str) else value


# 앞뒤 공백 제거 후 이메일 형식 검증 — Trim surrounding whitespace before format check
Email = Annotated[EmailStr, BeforeValidator(_strip_email)]


class RegisterRequest(CamelModel):
    """회원가입 요청 스키마.

    Self-registration request schema.

    Attributes:
        email: 이메일 (Login email, unique)
        password: 비밀번호 (Plain text, 8–100 chars and at most 72 UTF-8 bytes)
        full_name: 실명 (Full display name, 2–255 chars after trimming)
        timezone: 시간대 (IANA timezone name, defaults to "UTC")
    """

    email: Email
    password: str = Field(min_length=8, max_length=100)
    full_name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=255)]
    timezone: str | None = Field(default=None, max_length=64)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        # bcrypt는 72바이트 이후를 무시함 — reject instead of silently truncating
        if len(value.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes")
        # bcrypt는 NUL에서 입력을 끊음 — bcrypt stops reading at the first NUL byte
        if "\x00" in value:
            raise ValueError("Password must not contain NUL characters")
        return value


class LoginRequest(CamelModel):
    """로그인 요청 스키마.

    Login request schema.

    Attributes:
        email: 이메일 (Login email)
        password: 비밀번호 (Plain text password, verified against bcrypt hash)
    """

    email: Email
    password: str = Field(min_length=1)


class RefreshRequest(CamelModel):
    """토큰 갱신 요청 스키마.

    Token refresh request schema.
    Exchanges a valid refresh token for a new access/refresh token pair.
    """

    refresh_token: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class UserResponse(CamelModel):
    """사용자 정보 응답 스키마 — 비밀번호 해시는 절대 포함하지 않음.

    Sanitized user view. Never includes the password hash.
    """

    id: str
    email: str
    full_name: str
    account_type: str
    subscription_tier: str
    timezone: str
    avatar_url: str | None
    email_verified: bool


class TokenResponse(CamelModel):
    """JWT 토큰 발급 응답 스키마.

    Token issuance response schema, returned after a refresh.

    Attributes:
        access_token: JWT 액세스 토큰 (Short-lived access token)
        refresh_token: 리프레시 시크릿 (Opaque single-use refresh secret)
        token_type: 토큰 유형 (Always "bearer" for Authorization header)
    """

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AuthResponse(TokenResponse):
    """로그인/회원가입 응답 스키마 — 토큰 쌍과 사용자 정보.

    Login/registration response: the token pair plus the sanitized user.
    """

    user: UserResponse
