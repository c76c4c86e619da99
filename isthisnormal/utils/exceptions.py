import logging
from typing import Dict, Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from isthisnormal.middleware.cors import CORS_HEADERS

logger = logging.getLogger("isthisnormal")

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again."


class ServiceError(Exception):
    """Base for errors that map onto a caller-visible `{"error": ...}` body.

    `message` is shown to end users verbatim, so it must stay non-technical.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = GENERIC_ERROR_MESSAGE

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        if message is not None:
            self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    @property
    def headers(self) -> Dict[str, str]:
        return {}


class ClientValidationError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid request"


class RateLimitError(ServiceError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    message = "Too many requests. Please try again in a minute."

    def __init__(self, message: Optional[str] = None, retry_after: Optional[int] = None):
        super().__init__(message)
        self.retry_after = retry_after

    @property
    def headers(self) -> Dict[str, str]:
        if self.retry_after is None:
            return {}
        return {"Retry-After": str(max(1, int(self.retry_after)))}


class ProviderUnavailableError(ServiceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Unable to analyze symptom. Please try again."


class ConfigurationError(ServiceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Service temporarily unavailable"


class ResponseFormatError(ValueError):
    """Provider content did not match the analysis schema.

    Never rendered to the caller; the parser substitutes the fallback analysis.
    """


def error_body(message: str) -> Dict[str, str]:
    return {"error": message}


async def handle_service_error(request: Request, exc: ServiceError):
    try:
        logger.info({
            "function": "service_error",
            "path": str(request.url.path),
            "status": exc.status_code,
            "kind": type(exc).__name__,
        })
    except Exception:
        pass
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message), headers=exc.headers)


async def handle_http_exception(request: Request, exc: HTTPException):
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Request failed"
    return JSONResponse(status_code=exc.status_code, content=error_body(message), headers=exc.headers)


async def handle_unhandled_exception(request: Request, exc: Exception):
    # Runs outside the middleware stack, so CORS headers are attached here.
    logger.error(
        {
            "function": "handle_unhandled_exception",
            "path": request.url.path,
            "trace_id": getattr(request.state, "trace_id", ""),
            "error": type(exc).__name__,
        },
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(GENERIC_ERROR_MESSAGE),
        headers=dict(CORS_HEADERS),
    )


__all__ = [
    "ServiceError",
    "ClientValidationError",
    "RateLimitError",
    "ProviderUnavailableError",
    "ConfigurationError",
    "ResponseFormatError",
    "handle_service_error",
    "handle_http_exception",
    "handle_unhandled_exception",
]
