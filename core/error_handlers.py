import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic_core import ValidationError as PydanticCoreValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.schemas import ProblemDetail
from core.utils import ensure_trace_id
from gst.core.exceptions import BaseError

logger = logging.getLogger(__name__)


def _respond(problem: ProblemDetail, trace_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=problem.status,
        content=problem.model_dump(mode="json", exclude_none=True),
        headers={"X-Trace-ID": trace_id},
    )


async def handle_validation_error(request: Request, exc: RequestValidationError):
    """Handler for FastAPI/Pydantic request validation errors."""
    trace_id = ensure_trace_id(request)

    first_error = exc.errors()[0] if exc.errors() else {}
    loc = first_error.get("loc", [])
    field = ".".join(str(loc_part) for loc_part in loc if loc_part not in ("body", "query"))
    msg = first_error.get("msg", "Validation failed")
    detail = f"{field}: {msg}" if field else msg

    logger.warning(
        f"Validation error: {detail}",
        extra={"trace_id": trace_id, "error_code": "VALIDATION_ERROR"},
    )

    problem = ProblemDetail(
        type="/errors/VALIDATION_ERROR",
        title="Request validation failed",
        status=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=detail,
        instance=request.url.path,
        code="VALIDATION_ERROR",
        category="client_error",
        retryable=False,
        trace_id=trace_id,
        error=detail,
        details={"field": field} if field else None,
    )
    return _respond(problem, trace_id)


async def handle_pydantic_error(request: Request, exc: PydanticCoreValidationError):
    """Handler for generic Pydantic errors outside request validation."""
    trace_id = ensure_trace_id(request)

    errors = exc.errors() if hasattr(exc, "errors") else []
    first_error = errors[0] if errors else {}
    msg = first_error.get("msg", "Validation failed")

    logger.warning(
        f"Pydantic validation failed on {request.url.path}: {msg}",
        extra={"trace_id": trace_id, "error_code": "VALIDATION_ERROR"},
    )

    problem = ProblemDetail(
        type="/errors/VALIDATION_ERROR",
        title="Request validation failed",
        status=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=msg,
        code="VALIDATION_ERROR",
        category="client_error",
        retryable=False,
        instance=request.url.path,
        trace_id=trace_id,
        error=msg,
    )
    return _respond(problem, trace_id)


async def handle_app_error(request: Request, exc: BaseError):
    """Handler for application-specific BaseErrors."""
    trace_id = ensure_trace_id(request)

    extra = {
        "trace_id": trace_id,
        "error_code": exc.error_code,
        "http_status": exc.http_status,
    }
    if exc.http_status >= 500:
        logger.error(f"Application error: {exc.message}", extra=extra, exc_info=True)
    else:
        logger.warning(f"Request rejected: {exc.message}", extra=extra)

    problem = ProblemDetail(
        **exc.to_dict(),
        instance=request.url.path,
        trace_id=trace_id,
    )
    return _respond(problem, trace_id)


async def handle_http_error(request: Request, exc: StarletteHTTPException):
    """Handler for standard HTTP exceptions (404, 405, 503, etc.)."""
    trace_id = ensure_trace_id(request)

    logger.warning(
        f"HTTP exception: {exc.detail}",
        extra={"trace_id": trace_id, "http_status": exc.status_code},
    )

    problem = ProblemDetail(
        type=f"/errors/HTTP_{exc.status_code}",
        title=str(exc.detail),
        status=exc.status_code,
        detail=str(exc.detail),
        code=f"HTTP_{exc.status_code}",
        category="server_error" if exc.status_code >= 500 else "client_error",
        retryable=False,
        instance=request.url.path,
        trace_id=trace_id,
        error=str(exc.detail),
    )
    return _respond(problem, trace_id)


async def handle_unknown_error(request: Request, exc: Exception):
    """Handler for unexpected 500 errors."""
    trace_id = ensure_trace_id(request)

    logger.exception(
        f"Unexpected error occurred: {type(exc).__name__}",
        extra={"trace_id": trace_id, "http_status": 500},
    )

    problem = ProblemDetail(
        type="/errors/INTERNAL_SERVER_ERROR",
        title="Internal server error",
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An unexpected error occurred. Please contact support with trace ID.",
        code="INTERNAL_SERVER_ERROR",
        category="server_error",
        retryable=False,
        instance=request.url.path,
        trace_id=trace_id,
        error="Internal server error",
    )
    return _respond(problem, trace_id)
