import logging
from collections.abc import Awaitable, Callable

from fastapi import Request, status
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


def error_envelope(reason: str, status_code: int, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "reason": reason},
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    # Domain exceptions carry an explicit ``reason``; plain HTTPExceptions
    # (404 on unknown routes, 405, ...) fall back to their detail text.
    reason = getattr(exc, "reason", None)
    if reason is None:
        reason = exc.detail if isinstance(exc.detail, str) else "HTTPError"
    return error_envelope(reason, exc.status_code, getattr(exc, "headers", None))


async def error_envelope_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    try:
        return await call_next(request)
    except Exception:
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return error_envelope("InternalError", status.HTTP_500_INTERNAL_SERVER_ERROR)
