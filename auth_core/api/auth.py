"""인증 라우터 — 회원가입, 로그인, 토큰 갱신, 로그아웃, 프로필 조회.

Auth Router — Registration, login, token refresh, logout and profile
endpoints. Each handler runs its service call as one shielded unit of
work with its own session (see ``run_in_transaction``).
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from auth_core.api.deps import get_current_user_id
from auth_core.database import get_session_factory, run_in_transaction
from auth_core.schemas.auth import (
    AuthResponse,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from auth_core.services.auth_service import auth_service

router: APIRouter = APIRouter()

SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]


def _client_info(request: Request) -> tuple[str | None, str | None]:
    """요청 출처 정보 — (User-Agent, client IP), informational only."""
    device_info: str | None = request.headers.get("user-agent")
    ip_address: str | None = request.client.host if request.client else None
    return device_info, ip_address


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    data: RegisterRequest,
    request: Request,
    session_factory: SessionFactory,
) -> AuthResponse:
    """회원가입 — 계정 생성 후 바로 로그인.

    Register a new account and return its first token pair.
    """
    device_info, ip_address = _client_info(request)
    return await run_in_transaction(
        session_factory,
        lambda db: auth_service.register(db, data, device_info, ip_address),
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    data: LoginRequest,
    request: Request,
    session_factory: SessionFactory,
) -> AuthResponse:
    """로그인 — 이메일/비밀번호로 토큰 쌍 발급.

    Login with email and password.
    """
    device_info, ip_address = _client_info(request)
    return await run_in_transaction(
        session_factory,
        lambda db: auth_service.login(db, data, device_info, ip_address),
    )


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    data: RefreshRequest,
    request: Request,
    session_factory: SessionFactory,
) -> TokenResponse:
    """토큰 갱신 — 리프레시 토큰을 소모하고 새 토큰 쌍 발급.

    Rotate a refresh token into a new token pair.
    """
    device_info, ip_address = _client_info(request)
    return await run_in_transaction(
        session_factory,
        lambda db: auth_service.refresh_token(db, data.refresh_token, device_info, ip_address),
    )


@router.post("/logout", response_class=Response)
async def logout(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    session_factory: SessionFactory,
) -> Response:
    """로그아웃 — 사용자의 모든 리프레시 토큰 폐기.

    Logout from every device. Always 200 with an empty body.
    """
    await run_in_transaction(session_factory, lambda db: auth_service.logout(db, user_id))
    return Response(status_code=200)


@router.get("/me", response_model=UserResponse)
async def get_me(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    session_factory: SessionFactory,
) -> UserResponse:
    """현재 사용자 프로필 조회.

    Get the profile of the currently authenticated user.
    """
    return await run_in_transaction(
        session_factory,
        lambda db: auth_service.get_current_user(db, user_id),
    )
