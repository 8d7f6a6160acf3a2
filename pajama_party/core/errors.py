"""
Error rendering for the API.

Every error leaves the service as a flat JSON object so the client core
can surface `error` verbatim:

    {"error": "Validation failed", "message": "...", "details": [...], "timestamp": "..."}

Registered in main.py with app.add_exception_handler(), next to slowapi's
RateLimitExceeded handler.
"""

import logging
from datetime import datetime, timezone

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


def error_body(error: str, message: str | None = None, details=None) -> dict:
    body = {"error": error, "timestamp": datetime.now(timezone.utc).isoformat()}
    if message:
        body["message"] = message
    if details:
        body["details"] = details
    return body


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTPException as {error, message?, details?}."""
    detail = exc.detail
    if isinstance(detail, dict):
        body = error_body(
            detail.get("error", "Request failed"),
            detail.get("message"),
            detail.get("details"),
        )
    else:
        body = error_body(str(detail))
    return JSONResponse(body, status_code=exc.status_code, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render pydantic request validation failures with field-level details."""
    details = [
        {
            "field": ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query")),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    logger.debug("Request validation failed on %s: %s", request.url.path, details)
    return JSONResponse(
        error_body("Validation failed", "Please check your input and try again", details),
        status_code=422,
    )
