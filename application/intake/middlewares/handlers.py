from fastapi import FastAPI, Request, status
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.responses import JSONResponse
from typing import Any
from intake.config.sentry import capture_exception, add_breadcrumb
from intake.config.settings import IntakeConfigs
from intake.core.exceptions import IntakeError
from intake.logging.utils import get_app_logger
from intake.middlewares.request_context import request_context

logger = get_app_logger(__name__)
configs = IntakeConfigs()


async def _intake_exception_handler(request: Request, exc: IntakeError):
    """Render intake errors as {success: false, error, message, field?}."""
    request_context.module_name = 'middleware_handlers'
    if exc.status_code >= 500:
        logger.error(f"intake_error | method={request.method} url={str(request.url)} error={exc.error} message={exc.message}", exc_info=exc)
        add_breadcrumb(
            message=f"{exc.error} on {request.method} {request.url}",
            category="intake",
            level="error",
            data={"error": exc.error, "field": exc.field}
        )
    else:
        logger.warning(f"intake_error | method={request.method} url={str(request.url)} status_code={exc.status_code} error={exc.error} field={exc.field}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def _validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors with production-safe messages."""
    request_context.module_name = 'middleware_handlers'

    add_breadcrumb(
        message=f"Validation error on {request.method} {request.url}",
        category="validation",
        level="error",
        data={"errors": str(exc.errors())}
    )

    if not configs.DEBUG:
        # Generic message in production (DEBUG=false)
        payload = {"success": False, "error": "VALIDATION_ERROR", "message": "Invalid request data"}
    else:
        # Format errors in single readable line: "field_path: error_message"
        error_messages = []
        for err in exc.errors():
            field_path = " -> ".join(str(loc) for loc in err.get("loc", []))
            error_msg = err.get("msg", "Invalid input")
            error_messages.append(f"{field_path}: {error_msg}")

        payload = {"success": False, "error": "VALIDATION_ERROR"}
        if len(error_messages) == 1:
            payload["message"] = error_messages[0]
        else:
            payload["message"] = "Validation errors"
            payload["errors"] = error_messages

    logger.warning(f"validation_error | method={request.method} url={str(request.url)} errors={payload}")
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=payload)


async def _general_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions with production-safe messages."""
    request_context.module_name = 'middleware_handlers'
    logger.error(
        f"unhandled_exception | method={request.method} url={str(request.url)} exception_type={type(exc).__name__} exception_message={str(exc)}",
        exc_info=True,
    )

    add_breadcrumb(
        message=f"Unhandled exception on {request.method} {request.url}",
        category="exception",
        level="error",
        data={"exception_type": type(exc).__name__, "exception_message": str(exc)}
    )
    capture_exception(exc)

    if not configs.DEBUG:
        payload = {"success": False, "message": "Something went wrong"}
    else:
        payload = {"success": False, "message": f"Internal server error: {str(exc)}"}

    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=payload)


async def _http_exception_handler(request: Request, exc: Any):
    """Handle HTTP exceptions with production-safe messages."""
    request_context.module_name = 'middleware_handlers'
    status_code = getattr(exc, 'status_code', status.HTTP_500_INTERNAL_SERVER_ERROR)
    detail = getattr(exc, 'detail', str(exc))
    # Log 5xx as errors and 4xx as warnings
    if status_code >= 500:
        logger.error(f"http_exception | method={request.method} url={str(request.url)} status_code={status_code} detail={detail}", exc_info=True)
        add_breadcrumb(
            message=f"HTTP {status_code} error on {request.method} {request.url}",
            category="http",
            level="error",
            data={"status_code": status_code, "detail": detail}
        )
        capture_exception(exc)
    else:
        logger.warning(f"http_exception | method={request.method} url={str(request.url)} status_code={status_code} detail={detail}")

    if not configs.DEBUG:
        if status_code == 404:
            message = "Resource not found"
        elif status_code == 403:
            message = "Access denied"
        elif status_code == 401:
            message = "Authentication required"
        elif 400 <= status_code < 500:
            message = "Invalid request"
        else:
            message = "Something went wrong"
    else:
        message = detail

    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all custom exception handlers to the given FastAPI instance."""
    app.add_exception_handler(IntakeError, _intake_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(HTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _general_exception_handler)
