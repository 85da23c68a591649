from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from kanban_access.core.exceptions import (
    AlreadyAccepted,
    BoardAccessError,
    Conflict,
    CrossGroupViolation,
    Forbidden,
    InvalidToken,
    InvitationExpired,
    LastOwnerViolation,
    NonEmptyColumn,
    NotFound,
    NotificationDeliveryError,
    SelfRemovalForbidden,
    SelfRoleChangeForbidden,
    StoreError,
    Unauthorized,
)
from kanban_access.logs import api_logger, debug_logger

# Порядок важен: подклассы раньше базовых классов
STATUS_CODES = (
    (Unauthorized, status.HTTP_401_UNAUTHORIZED),
    (Forbidden, status.HTTP_403_FORBIDDEN),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (AlreadyAccepted, status.HTTP_409_CONFLICT),
    (Conflict, status.HTTP_409_CONFLICT),
    (LastOwnerViolation, status.HTTP_400_BAD_REQUEST),
    (SelfRemovalForbidden, status.HTTP_400_BAD_REQUEST),
    (SelfRoleChangeForbidden, status.HTTP_400_BAD_REQUEST),
    (NonEmptyColumn, status.HTTP_400_BAD_REQUEST),
    (CrossGroupViolation, status.HTTP_400_BAD_REQUEST),
    (InvalidToken, status.HTTP_404_NOT_FOUND),
    (InvitationExpired, status.HTTP_410_GONE),
)

INTERNAL_ERROR_DETAIL = "Internal server error"


def status_code_for(exc: BoardAccessError) -> int:
    for error_class, code in STATUS_CODES:
        if isinstance(exc, error_class):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _internal_error() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": INTERNAL_ERROR_DETAIL, "error": "InternalError"},
    )


async def board_access_error_handler(request: Request, exc: BoardAccessError) -> JSONResponse:
    if isinstance(exc, (StoreError, NotificationDeliveryError)):
        debug_logger.log_exception(f"Внутренняя ошибка при обработке {request.method} {request.url.path}")
        api_logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.detail}")
        if isinstance(exc, NotificationDeliveryError):
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"detail": exc.detail, "error": exc.kind},
            )
        return _internal_error()

    code = status_code_for(exc)
    api_logger.warning(f"{exc.kind} on {request.method} {request.url.path}: {exc.detail}")
    return JSONResponse(status_code=code, content={"detail": exc.detail, "error": exc.kind})


async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    debug_logger.log_exception(f"Ошибка базы данных при обработке {request.method} {request.url.path}")
    api_logger.error(f"Database error on {request.method} {request.url.path}: {str(exc)}")
    return _internal_error()


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": str(exc), "error": "ValidationError"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BoardAccessError, board_access_error_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)
