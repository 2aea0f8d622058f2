# gymapp/errors.py
from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


def _detail_code(exc: StarletteHTTPException) -> str | None:
    detail = getattr(exc, "detail", None)
    if isinstance(detail, dict):
        code = detail.get("code")
        if isinstance(code, str):
            return code
    return None


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # Always JSON: {"detail": "..."} or {"detail": {"code": ..., "message": ...}}
    if exc.status_code >= 500:
        logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.detail)
    elif exc.status_code == 403:
        logger.info("%s %s forbidden (%s)", request.method, request.url.path, _detail_code(exc) or "-")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)
