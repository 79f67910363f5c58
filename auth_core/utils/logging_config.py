"""로깅 설정 모듈.

Logging configuration module.
Configures the root logger once at startup; modules use
``logging.getLogger(__name__)``. Security events go to the dedicated
``auth_core.security`` logger so they can be routed separately.
"""

import logging
import sys

SECURITY_LOGGER_NAME: str = "auth_core.security"


def setup_logging(level: str = "INFO") -> None:
    """루트 로거에 stdout 핸들러를 한 번만 등록합니다.

    Attach a single stdout handler to the root logger. Calling it again
    is a no-op (the app factory may run more than once in tests).
    """
    root = logging.getLogger()
    if root.handlers:
        return  # 중복 설정 방지
    root.setLevel(level.upper())
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s - %(message)s"
    ))
    root.addHandler(handler)


def get_security_logger() -> logging.Logger:
    return logging.getLogger(SECURITY_LOGGER_NAME)
