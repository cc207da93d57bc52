# ticketing/core/error_handlers.py
"""
Exception handlers that render every ticketing error in one envelope:

    {"error": {"code", "category", "message", "path", "timestamp", ...details}}
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ticketing.core.exceptions import ErrorCategory, TicketingError
from ticketing.core.time_utils import utcnow

logger = logging.getLogger(__name__)


def _envelope(request: Request, code: str, category: str, message: str, details: dict = None) -> dict:
    # Details never override the fixed keys.
    body = dict(details or {})
    body.update(
        code=code,
        category=category,
        message=message,
        path=request.url.path,
        timestamp=utcnow().isoformat(),
    )
    return {"error": body}


async def ticketing_error_handler(request: Request, error: TicketingError) -> JSONResponse:
    """Handle structured ticketing errors"""
    log = logger.error if error.status_code >= 500 else logger.warning
    log(
        f"{error.error_code} on {request.method} {request.url.path}: {error.message}",
        extra={"category": error.category, "details": error.details},
    )
    return JSONResponse(
        status_code=error.status_code,
        content=_envelope(
            request, error.error_code, error.category, error.message, error.details
        ),
    )


async def validation_error_handler(request: Request, error: RequestValidationError) -> JSONResponse:
    """Handle FastAPI request validation errors"""
    errors = []
    for err in error.errors():
        errors.append({
            "field": ".".join(str(loc) for loc in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        })

    logger.warning(f"Validation error on {request.url.path}", extra={"errors": errors})

    return JSONResponse(
        status_code=400,
        content=_envelope(
            request,
            "VALIDATION_ERROR",
            ErrorCategory.VALIDATION,
            "Request validation failed",
            {"validation_errors": errors},
        ),
    )
