"""
Exception handlers: every error leaves the API as ``{"status": int, "message": str}``.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException

from services.errors import AppError, InternalError, UpstreamProviderError

logger = logging.getLogger(__name__)


def _body(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": status_code, "message": message})


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, UpstreamProviderError):
        # Raw provider detail stays in the logs.
        logger.error("upstream_failure provider=%s detail=%s", exc.provider, exc.detail)
    elif exc.status_code >= 500:
        logger.error("app_error status=%s message=%s", exc.status_code, exc.message)
    return _body(exc.status_code, exc.message)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    response = _body(exc.status_code, message)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path"))
        text = str(error.get("msg", "Invalid value")).removeprefix("Value error, ")
        messages.append(f"{field}: {text}." if field else f"{text}.")
    return _body(400, " ".join(messages) or "Invalid request")


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return _body(429, "Too many requests, please try again later")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error path=%s", request.scope.get("path", ""))
    error = InternalError()
    return _body(error.status_code, error.message)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
