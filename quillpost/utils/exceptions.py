import logging
from datetime import datetime, timezone

from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

'''
Вспомогательная функция _error_response()

Принимает параметры status_code, detail, code, request. Возвращает стандартный FastAPI-ответ с JSON-телом.

Собираем единый формат ошибки: success / message / error / meta.
'''
def _error_response(
    *,
    status_code: int,
    detail: str,
    code: str,
    request: Request,
    extra: dict | None = None,
    headers: dict | None = None,
) -> JSONResponse:
    meta = {
        "path": request.url.path,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if extra:
        meta.update(extra)
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "message": detail,
            "error": code,
            "meta": meta,
        },
        headers=headers,
    )

# Базовый класс AppError
class AppError(Exception):
    status_code = 400
    code = "app_error"
    detail = "Application error"

    def __init__(self, detail: str | None = None, code: str | None = None):
        if detail is not None:
            self.detail = detail
        if code is not None:
            self.code = code
        super().__init__(self.detail)


# ================
# Кастомные ошибки
# ================

class NotAuthenticated(AppError):
    status_code = 401
    code = "not_authenticated"
    detail = "You are not authorized"


class NotFound(AppError):
    status_code = 404
    code = "not_found"
    detail = "Resource not found"


class PermissionDeniedError(AppError):
    status_code = 403
    code = "permission_denied"
    detail = "You are not allowed to perform this action"


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, NotAuthenticated) else None
    return _error_response(
        status_code=exc.status_code,
        detail=exc.detail,
        code=exc.code,
        request=request,
        headers=headers,
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _error_response(
        status_code=exc.status_code,
        detail=detail,
        code="http_error",
        request=request,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    errors = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg")}
        for err in exc.errors()
    ]
    return _error_response(
        status_code=422,
        detail="Validation error",
        code="validation_error",
        request=request,
        extra={"errors": errors},
    )


# ======================
# Ошибки слоя хранилища
# ======================

async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    # Нарушение ограничений БД вызвано данными клиента
    logger.warning("Integrity error on %s: %s", request.url.path, exc.orig)
    return _error_response(
        status_code=400,
        detail="Database error",
        code="database_error",
        request=request,
    )


async def database_unavailable_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database unavailable on %s: %s", request.url.path, exc)
    return _error_response(
        status_code=503,
        detail="Database is unavailable",
        code="database_unavailable",
        request=request,
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s", request.url.path)
    return _error_response(
        status_code=500,
        detail="Database error",
        code="database_error",
        request=request,
    )


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return _error_response(
        status_code=429,
        detail=f"Rate limit exceeded: {exc.detail}",
        code="rate_limited",
        request=request,
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(
        status_code=500,
        detail="Internal server error",
        code="internal_server_error",
        request=request,
    )


def register_exception_handlers(app) -> None:
    """
    Подключаем глобальные обработчики ошибок.

    Порядок не важен: Starlette выбирает обработчик по MRO исключения.
    """
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(OperationalError, database_unavailable_handler)
    app.add_exception_handler(InterfaceError, database_unavailable_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
