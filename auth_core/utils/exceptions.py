"""커스텀 HTTP 예외 클래스 모듈.

Custom HTTP exception classes module.
Provides pre-configured HTTPException subclasses for the authentication
error taxonomy. Each class pins its status code and a stable machine
readable ``code`` so services can raise without specifying either.

Usage:
    from auth_core.utils.exceptions import ConflictError, InvalidTokenError
    raise ConflictError()
    raise InvalidTokenError()
"""

from fastapi import HTTPException, status


class AuthError(HTTPException):
    """인증 코어 예외의 공통 부모 클래스.

    Common base for all authentication core errors.
    Subclasses set ``status_code``, ``code`` and ``default_detail``.

    Args:
        detail: 오류 메시지, None이면 기본 메시지 사용
                (Error message; falls back to default_detail)
        headers: 응답에 추가할 헤더 (Extra response headers)
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None, headers: dict[str, str] | None = None) -> None:
        super().__init__(
            status_code=self.status_code,
            detail=detail or self.default_detail,
            headers=headers,
        )


class ValidationError(AuthError):
    """400 Bad Request 예외 — 잘못된 입력 데이터.

    400 Bad Request exception.
    Raised for malformed input that pydantic validation did not catch.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"
    default_detail = "Invalid request data"


class ConflictError(AuthError):
    """409 Conflict 예외 — 이미 등록된 이메일.

    409 Conflict exception.
    Raised when registering an email that already belongs to an account.
    """

    status_code = status.HTTP_409_CONFLICT
    code = "EMAIL_EXISTS"
    default_detail = "Email already registered"


class InvalidCredentialsError(AuthError):
    """401 Unauthorized 예외 — 로그인 실패.

    401 Unauthorized exception for failed logins.
    The message never reveals whether the email or the password was wrong.
    """

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "INVALID_CREDENTIALS"
    default_detail = "Invalid email or password"


class InvalidTokenError(AuthError):
    """401 Unauthorized 예외 — 유효하지 않은 토큰.

    401 Unauthorized exception.
    Raised for absent, expired, revoked or replayed refresh tokens and for
    access tokens that fail verification. Always opaque to the caller.
    """

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "INVALID_TOKEN"
    default_detail = "Invalid or expired token"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class NotFoundError(AuthError):
    """404 Not Found 예외 — 사용자를 찾을 수 없을 때 사용.

    404 Not Found exception.
    Raised when the identity behind a valid access token no longer exists.
    """

    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_detail = "User not found"


class TransientStoreError(AuthError):
    """503 Service Unavailable 예외 — 저장소 일시 장애.

    503 Service Unavailable exception.
    Raised when the database times out or is unreachable. Safe to retry
    with backoff; the core itself never retries.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "STORE_UNAVAILABLE"
    default_detail = "Token store temporarily unavailable"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail, headers={"Retry-After": "1"})
