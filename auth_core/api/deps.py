"""FastAPI 의존성 주입 모듈 — 액세스 토큰 인증.

FastAPI dependency injection module — Access token authentication.

Authentication Flow:
    1. 클라이언트가 Authorization: Bearer <token> 헤더를 전송
       (Client sends Authorization: Bearer <token> header)
    2. HTTPBearer가 토큰을 추출 (HTTPBearer extracts the token)
    3. verify_access_token()이 서명/만료/유형을 검증하고 사용자 ID를 반환
       (verify_access_token checks signature, expiry and type, returns the subject)

The check is stateless: no database round-trip happens here. Endpoints
that need the user row load it themselves.
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from auth_core.utils.exceptions import InvalidTokenError
from auth_core.utils.jwt import verify_access_token

# HTTP Bearer 토큰 추출기 — 헤더 누락 시 403 대신 401을 내기 위해 auto_error=False
# (Extracts the bearer token; auto_error=False so a missing header maps to 401, not 403)
security: HTTPBearer = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> UUID:
    """Authorization 헤더의 액세스 토큰에서 사용자 ID를 추출합니다.

    Verify the bearer access token and return the authenticated user id.

    Args:
        credentials: HTTP Bearer 토큰 자격 증명 (Bearer token credentials from header)

    Returns:
        UUID: 인증된 사용자 ID (Authenticated user UUID)

    Raises:
        InvalidTokenError: 토큰 누락, 만료, 위조 (Missing, expired or forged token)
    """
    if credentials is None:
        raise InvalidTokenError("Authentication required")
    return verify_access_token(credentials.credentials)
