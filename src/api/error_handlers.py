"""Centralized error handlers.

Every error response is rendered from a ``ClassifiedError``; raw backend
exceptions and stack traces are never returned to clients.
"""

import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.services.errors import (
    APIError,
    ClassifiedError,
    ErrorType,
    PayloadValidationError,
    classify_error,
)

logger = logging.getLogger(__name__)


def error_response(classified: ClassifiedError) -> JSONResponse:
    """Build the JSON response for a classified error."""
    headers = {"WWW-Authenticate": "Bearer"} if classified.status_code == 401 else None
    return JSONResponse(
        status_code=classified.status_code,
        content=classified.to_payload(),
        headers=headers,
    )


def _log(request: Request, classified: ClassifiedError) -> None:
    msg = (
        f"{request.method} {request.url.path} -> {classified.status_code} "
        f"{classified.type}: {classified.message}"
    )
    if classified.status_code >= 500:
        logger.error(msg)
    else:
        logger.warning(msg)


def _validation_details(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg", "")}
        for error in exc.errors()
    ]


def _http_error_type(status_code: int) -> ErrorType:
    if status_code == 401:
        return ErrorType.AUTH
    if status_code == 404:
        return ErrorType.NOT_FOUND
    if status_code < 500:
        return ErrorType.VALIDATION
    return ErrorType.DATABASE


def classify_http_exception(exc: StarletteHTTPException) -> ClassifiedError:
    """Classify a framework-raised HTTP error (unknown route, wrong method)."""
    try:
        title = HTTPStatus(exc.status_code).phrase
    except ValueError:
        title = "HTTP error"
    return ClassifiedError(
        status_code=exc.status_code,
        error=title,
        message=str(exc.detail) if exc.detail else title,
        type=_http_error_type(exc.status_code),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register the error handlers on the application."""

    @app.exception_handler(APIError)
    async def handle_api_error(request: Request, exc: APIError) -> JSONResponse:
        _log(request, exc.classified)
        return error_response(exc.classified)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        classified = classify_http_exception(exc)
        _log(request, classified)
        response = error_response(classified)
        # Keep framework headers such as Allow on 405
        for name, value in (exc.headers or {}).items():
            response.headers[name] = value
        return response

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Report schema failures as 400 validation errors."""
        details = _validation_details(exc)
        missing = sorted(
            {d["loc"][-1] for d in details if d["msg"] == "Field required" and d["loc"]}
        )
        if missing:
            message = f"Missing required fields: {', '.join(missing)}"
        else:
            message = "Request payload failed validation"
        classified = PayloadValidationError(message, details=details).classified
        _log(request, classified)
        return error_response(classified)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unexpected error: {type(exc).__name__}")
        return error_response(classify_error(exc))
