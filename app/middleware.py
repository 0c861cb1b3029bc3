"""
Middleware for request tracking and logging.
"""
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from structlog.contextvars import bind_contextvars, clear_contextvars

from app.logging_config import get_logger

logger = get_logger(__name__)


async def request_id_middleware(request: Request, call_next: Callable) -> Response:
    """
    Tag each request with an X-Request-ID and bind it to the structlog
    context so service-level events (order_created, order_paid, ...) can be
    correlated with the HTTP call that caused them.
    """
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex

    clear_contextvars()
    bind_contextvars(request_id=request_id, path=request.url.path)
    request.state.request_id = request_id

    logger.info("request_started", method=request.method)
    started = time.perf_counter()

    try:
        response = await call_next(request)
    except Exception as exc:
        logger.error(
            "request_failed",
            exc_info=exc,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        raise
    else:
        logger.info(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        response.headers["X-Request-ID"] = request_id
        return response
    finally:
        clear_contextvars()
