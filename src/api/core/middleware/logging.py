import time
import uuid

import structlog
from fastapi import Request

from src.utils.logger import get_client_ip, get_logger

logger = get_logger(__name__)

QUIET_PATHS = {"/health", "/health/liveness"}


async def logging_middleware(request: Request, call_next):
    if request.url.path in QUIET_PATHS:
        return await call_next(request)

    start_time = time.monotonic()

    structlog.contextvars.clear_contextvars()
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    structlog.contextvars.bind_contextvars(
        ip_address=get_client_ip(request),
        method=request.method,
        path=request.url.path,
        request_id=request_id,
    )

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id

    log = logger.warning if response.status_code >= 500 else logger.info
    log(
        "request",
        status_code=response.status_code,
        duration_ms=int((time.monotonic() - start_time) * 1000),
    )

    return response
