"""Exception handlers: every failure leaves the API as a JSON body with a ``detail``."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from vca.errors import AppError

logger = structlog.get_logger()


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validation errors with the non-serialisable ``ctx`` values stringified."""
    errors = []
    for err in exc.errors():
        item = dict(err)
        if "ctx" in item:
            item["ctx"] = {k: str(v) for k, v in item["ctx"].items()}
        errors.append(item)
    return errors


async def _domain_error(request: Request, exc: AppError) -> JSONResponse:
    logger.info(
        "request_rejected",
        path=request.url.path,
        status_code=exc.status_code,
        error=type(exc).__name__,
        detail=exc.detail,
    )
    return JSONResponse(exc.payload(), status_code=exc.status_code)


async def _http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse({"detail": exc.detail}, status_code=exc.status_code, headers=exc.headers)


async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = jsonable_errors(exc)
    logger.info("request_invalid", path=request.url.path, error_count=len(errors))
    return JSONResponse({"detail": "Validation error", "errors": errors}, status_code=422)


async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=exc,
    )
    body = {"detail": "Internal server error"}
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        body["request_id"] = request_id
    return JSONResponse(body, status_code=500)


def setup_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, _domain_error)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _http_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _invalid_request)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unexpected)
