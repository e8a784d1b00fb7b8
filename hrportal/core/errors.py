"""
Error taxonomy and central error handling for the workflow service
"""
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class WorkflowError(Exception):
    """
    Base class for rejected workflow operations.

    Every subclass is a local policy violation: it is surfaced to the caller
    unchanged, never retried and never fatal to the process.
    """

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "workflow_error"

    def __init__(self, detail: str, **context: Any):
        super().__init__(detail)
        self.detail = detail
        self.context = context

    def to_dict(self) -> Dict[str, Any]:
        data = {"code": self.code, "detail": self.detail}
        data.update({k: v for k, v in self.context.items() if v is not None})
        return data


class NotFoundError(WorkflowError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class TerminalRequestError(WorkflowError):
    status_code = status.HTTP_409_CONFLICT
    code = "terminal_request"


class OutOfOrderActorError(WorkflowError):
    status_code = status.HTTP_409_CONFLICT
    code = "out_of_order_actor"

    @property
    def expected_role(self) -> Optional[str]:
        return self.context.get("expected_role")


class ReconciliationMismatchError(WorkflowError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "reconciliation_mismatch"


class NegativeUnitsError(WorkflowError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "negative_units"


class InvalidDecisionError(WorkflowError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "invalid_decision"


class RecordFrozenError(WorkflowError):
    status_code = status.HTTP_409_CONFLICT
    code = "record_frozen"


class ConcurrentUpdateError(WorkflowError):
    status_code = status.HTTP_409_CONFLICT
    code = "concurrent_update"


def _error_content(status_code: int, detail: Any, path: str, **extra: Any) -> Dict[str, Any]:
    content = {
        "error": True,
        "status_code": status_code,
        "detail": detail,
        "path": path,
    }
    content.update(extra)
    return content


async def workflow_exception_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    """
    Render a WorkflowError with the shared error envelope.

    The code and any context (e.g. expected_role) let the portal translate the
    failure into an actionable message.
    """
    body = exc.to_dict()
    detail = body.pop("detail")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(exc.status_code, detail, str(request.url.path), **body),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle HTTPException with consistent JSON response format

    Args:
        request: FastAPI request object
        exc: HTTPException instance

    Returns:
        JSONResponse with error details
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(exc.status_code, exc.detail, str(request.url.path)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle RequestValidationError with consistent JSON response format

    Does not leak internal validation details in production.
    """
    from hrportal.core.config import settings

    if settings.APP_ENV == "prod":
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_error_content(422, "Validation error: Invalid request data", str(request.url.path)),
        )

    # Sanitize ctx values (e.g. ValueError instances) so the payload stays JSON
    errors = []
    for e in exc.errors():
        err = dict(e)
        if "ctx" in err and isinstance(err["ctx"], dict):
            err["ctx"] = {
                k: (str(v) if not isinstance(v, (str, int, float, bool, type(None))) else v)
                for k, v in err["ctx"].items()
            }
        errors.append(err)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_content(422, "Validation error", str(request.url.path), errors=errors),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions with consistent JSON response format

    Does not leak internal error details in production.
    """
    from hrportal.core.config import settings
    import logging
    import traceback

    logger = logging.getLogger(__name__)
    logger.error("Unhandled exception: %s", exc, exc_info=True)

    if settings.APP_ENV == "prod":
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_content(500, "Internal server error", str(request.url.path)),
        )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_content(
            500,
            str(exc),
            str(request.url.path),
            traceback=traceback.format_exc() if settings.APP_ENV == "local" else None,
        ),
    )
