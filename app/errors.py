"""
API error type rendered as {"error": message}

Route handlers and services raise ApiError; the exception handler registered
in main.py turns it into a JSON response with the matching status code.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Error with an HTTP status code and a user-facing message"""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ServerConfigurationError(ApiError):
    """Raised when a required SaaS credential is missing"""

    def __init__(self, message: str = "Server configuration error"):
        super().__init__(500, message)


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})
