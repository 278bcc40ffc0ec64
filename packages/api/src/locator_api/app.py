"""FastAPI application factory."""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from locator_shared.config import settings
from locator_shared.geocoding import UpstreamServiceError

from locator_api import __version__
from locator_api.middleware.logging import LoggingMiddleware
from locator_api.responses import error_response
from locator_api.routers.health import router as health_router
from locator_api.routers.v1 import v1_router
from locator_api.services import ServiceError

logger = structlog.get_logger()

_STATUS_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    422: "unprocessable",
}


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException) -> JSONResponse:
        code = _STATUS_CODES.get(exc.status_code, "error")
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(code, str(exc.detail)),
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content=error_response(
                "validation_error",
                "Request validation failed",
                details={"errors": jsonable_encoder(exc.errors())},
            ),
        )

    @app.exception_handler(ServiceError)
    async def service_error(request: Request, exc: ServiceError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(exc.code, exc.message),
        )

    @app.exception_handler(UpstreamServiceError)
    async def upstream_error(request: Request, exc: UpstreamServiceError) -> JSONResponse:
        logger.error("upstream_error", service=exc.service, error=exc.message, status_code=exc.status_code)
        return JSONResponse(
            status_code=502,
            content=error_response(
                "upstream_error",
                str(exc),
                details={"service": exc.service, "rate_limited": exc.is_rate_limited},
            ),
        )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Installer Locator API",
        description="Installer directory, territories and public locator",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(LoggingMiddleware)
    _register_exception_handlers(app)

    # Routers
    app.include_router(health_router)
    app.include_router(v1_router)

    logger.info("app_created", cors_origins=settings.cors_origins_list)
    return app


app = create_app()
