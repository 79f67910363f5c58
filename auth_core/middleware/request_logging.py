"""요청 로깅 미들웨어.

Request logging middleware.
Logs every auth API call (method, path, status, duration, masked body)
to the local logger and, when configured, ships the same event to Axiom.
Credentials in request bodies (password, tokens) are always masked.
"""

import json
import logging
import re
import time
from typing import Any

from axiom_py import Client as AxiomClient
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from auth_core.config import settings

logger = logging.getLogger(__name__)

# 마스킹 대상 필드 패턴 — Fields to mask in request bodies
_SENSITIVE_KEYS = re.compile(
    r"(password|passwd|secret|token|authorization|credential)",
    re.IGNORECASE,
)

# 로깅 제외 경로 — Paths excluded from logging
_SKIP_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}


def mask_sensitive(data: Any, depth: int = 0) -> Any:
    """민감 필드 자동 마스킹 — Recursively mask sensitive fields in dicts/lists."""
    if depth > 5:
        return "..."
    if isinstance(data, dict):
        return {
            k: "***" if _SENSITIVE_KEYS.search(str(k)) else mask_sensitive(v, depth + 1)
            for k, v in data.items()
        }
    if isinstance(data, list):
        return [mask_sensitive(item, depth + 1) for item in data[:20]]
    return data


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """모든 API 요청을 로깅하는 미들웨어.

    Middleware that logs all API requests locally and optionally to Axiom.
    Captures: method, path, masked request body, status code, duration.
    """

    def __init__(self, app: Any) -> None:
        super().__init__(app)
        self._client: AxiomClient | None = None
        self._dataset: str = settings.AXIOM_DATASET

        if settings.AXIOM_API_TOKEN and settings.AXIOM_DATASET:
            self._client = AxiomClient(token=settings.AXIOM_API_TOKEN)

    async def _read_body(self, request: Request) -> Any:
        if request.method not in ("POST", "PUT", "PATCH"):
            return None
        body_bytes = await request.body()
        if not body_bytes:
            return None
        try:
            return mask_sensitive(json.loads(body_bytes))
        except (json.JSONDecodeError, UnicodeDecodeError):
            return "(non-json body)"

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # 제외 경로 스킵 — Skip excluded paths
        if request.url.path in _SKIP_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        request_body = await self._read_body(request)
        status_code: int = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
            log_event: dict[str, Any] = {
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "duration_ms": duration_ms,
            }
            if request_body is not None:
                log_event["request_body"] = request_body

            logger.info(
                "%s %s -> %s (%.2f ms)",
                request.method, request.url.path, status_code, duration_ms,
            )
            self._ship(log_event)

    def _ship(self, log_event: dict[str, Any]) -> None:
        # Axiom 미설정시 로컬 로그만 — Local log only when Axiom is not configured
        if self._client is None:
            return
        try:
            self._client.ingest_events(self._dataset, [log_event])
        except Exception as exc:
            # 로깅 실패가 요청 처리에 영향주지 않도록 — Never break a request on log shipping failure
            logger.warning("Axiom ingest failed: %s", exc)
