import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from say2me.core import constants, exceptions
from say2me.core.notify import send_ntfy_notification

logger = logging.getLogger(__name__)


def error_body(error: str, message: str) -> dict:
    return {"error": error, "message": message}


async def say2me_exception_handler(request: Request, exc: exceptions.Say2meError):
    status_code = status.HTTP_400_BAD_REQUEST
    headers = None

    if isinstance(exc, exceptions.ValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"errors": exc.errors, "message": exc.message},
        )

    if isinstance(exc, exceptions.EntityNotFoundError):
        status_code = status.HTTP_404_NOT_FOUND

    elif isinstance(exc, exceptions.EntityAlreadyExistsError):
        status_code = status.HTTP_400_BAD_REQUEST

    elif isinstance(exc, exceptions.RateLimitError):
        status_code = status.HTTP_429_TOO_MANY_REQUESTS
        headers = {"Retry-After": str(exc.retry_after)}

    elif isinstance(exc, exceptions.InternalError):
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    return JSONResponse(
        status_code=status_code,
        content=error_body(exc.error, exc.message),
        headers=headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # 잘못된 JSON, 타입 불일치, 필수 필드 누락 -> 필드 단위 에러 목록
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({
            "field": ".".join(loc) or "body",
            "message": err.get("msg", "Invalid value"),
        })
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"errors": errors, "message": constants.MSG_VALIDATION_FAILED},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail), constants.MSG_TRY_AGAIN),
        headers=getattr(exc, "headers", None),
    )


async def storage_exception_handler(request: Request, exc: SQLAlchemyError):
    # 저장소 오류는 내부 정보를 노출하지 않고 InternalError로 변환
    logger.error(f"Storage error on {request.method} {request.url.path}", exc_info=True)
    await send_ntfy_notification(
        message=f"Storage error: {type(exc).__name__}\nPath: {request.url.path}",
        title="say2me storage error",
        priority="high",
    )
    internal = exceptions.InternalError()
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(internal.error, internal.message),
    )


async def general_exception_handler(request: Request, exc: Exception):
    # 예상치 못한 모든 에러 처리
    error_msg = f"Unhandled Exception: {exc!r}\nPath: {request.url.path}"
    logger.error(error_msg, exc_info=True)

    await send_ntfy_notification(
        message=error_msg,
        title="500 Internal Server Error",
        priority="max",
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(constants.MSG_INTERNAL_ERROR, constants.MSG_TRY_AGAIN),
    )
