"""
Ошибки API. Каждая ошибка знает свой HTTP-статус,
обработчики в main превращают их в JSON {"message": ...}.
"""
import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ApiError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ApiError):
    status_code = 400


class AuthError(ApiError):
    status_code = 401


class Forbidden(ApiError):
    status_code = 403


class NotFound(ApiError):
    status_code = 404


class ConflictError(ApiError):
    # Нарушение бизнес-правила отдаём как 400
    status_code = 400


class InternalError(ApiError):
    status_code = 500


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Ошибки разбора тела и параметров отдаём как ValidationError: 400 {"message"}."""
    errors = exc.errors()
    parts = [
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', 'invalid')}"
        for err in errors
    ]
    message = "; ".join(parts) or "invalid request"
    logger.info("%s %s: invalid request: %s", request.method, request.url.path, message)
    return JSONResponse(status_code=ValidationError.status_code, content={"message": message})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("%s %s: unhandled error: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"message": str(exc) or "internal error"})
