"""FastAPI 애플리케이션 엔트리포인트 — 미들웨어, 예외 처리기, 라우터 등록.

FastAPI application entry point — Middleware, exception handlers and
router registration. The lifespan creates the schema (when enabled) and
runs the refresh token sweeper in the background.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from auth_core.api.auth import router as auth_router
from auth_core.config import settings
from auth_core.database import Base, async_session, engine
from auth_core.middleware.request_logging import RequestLoggingMiddleware
from auth_core.models import *  # noqa: F401,F403 — register all models with metadata
from auth_core.services.token_sweeper import TokenSweeper
from auth_core.utils.exceptions import AuthError, ValidationError
from auth_core.utils.logging_config import setup_logging

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    if settings.DB_AUTO_CREATE_SCHEMA:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    sweeper = TokenSweeper(async_session, settings.TOKEN_SWEEP_INTERVAL_SECONDS)
    app.state.token_sweeper = sweeper
    if settings.TOKEN_SWEEP_ENABLED:
        sweeper.start()
        logger.info("Refresh token sweeper started (every %ss)", settings.TOKEN_SWEEP_INTERVAL_SECONDS)
    try:
        yield
    finally:
        await sweeper.stop()
        await engine.dispose()


app: FastAPI = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# 요청 로깅 미들웨어 — CORS보다 먼저 등록하여 모든 요청을 캡처
# Request logging middleware, registered before CORS to capture all requests
app.add_middleware(RequestLoggingMiddleware)

# CORS 미들웨어 — Cross-Origin Resource Sharing middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AuthError)
async def handle_auth_error(request: Request, exc: AuthError) -> JSONResponse:
    """인증 오류 응답 — {"detail", "code"} 형식 (Error body with a stable code)."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    """요청 검증 실패를 422 대신 400으로 반환합니다.

    Map request validation failures to 400. Submitted values are left out
    of the body so passwords never echo back.
    """
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=ValidationError.status_code,
        content={"detail": errors, "code": ValidationError.code},
    )


@app.get("/health")
async def health_check() -> dict[str, str]:
    """서버 상태 확인 엔드포인트.

    Health check endpoint for load balancers and monitoring.
    """
    return {"status": "ok"}


app.include_router(auth_router, prefix="/api/v1/auth", tags=["Auth"])
