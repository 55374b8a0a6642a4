from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from common.logger import setup_logger
from common.middleware.request_trace import RequestTraceMiddleware

from .api.health import router as health_router
from .api.schemas.common import ErrorResponse
from .api.v1 import api_router
from .config import get_app_config
from .exceptions import AccountServiceError, InternalPersistenceError


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - framework hook
    yield


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    payload = ErrorResponse(code=code, message=message)
    return JSONResponse(status_code=status_code, content=payload.model_dump())


async def handle_account_error(request: Request, exc: AccountServiceError) -> JSONResponse:
    return _error_response(exc.status_code, exc.code, exc.message)


async def handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "invalid request"
    return _error_response(400, "validation_error", message)


async def handle_persistence_error(request: Request, exc: PyMongoError) -> JSONResponse:
    logger.exception(
        "unhandled persistence failure",
        extra={"method": request.method, "path": request.url.path},
    )
    fallback = InternalPersistenceError()
    return _error_response(fallback.status_code, fallback.code, fallback.message)


def create_app() -> FastAPI:
    setup_logger()
    app = FastAPI(
        title="Account Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    # 공통 Request/Span ID 로그 미들웨어
    app.add_middleware(RequestTraceMiddleware)

    app.add_exception_handler(AccountServiceError, handle_account_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(PyMongoError, handle_persistence_error)  # type: ignore[arg-type]

    app.include_router(health_router, tags=["health"])
    app.include_router(api_router, prefix="/api/v1")

    return app


app = create_app()


def main() -> None:
    import uvicorn

    config = get_app_config()
    uvicorn.run(
        "account_service.app.main:app",
        host="0.0.0.0",
        port=config.port,
        reload=False,
        access_log=False,
    )


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    main()
