"""
FastAPI application entrypoint for the storefront backend.
"""

from __future__ import annotations

import logging
from http import HTTPStatus

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.api.routes import describe_validation_error, router as api_router
from storefront.core.config import get_settings
from storefront.core.errors import StorefrontError
from storefront.core.logging import configure_logging

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "access-control-allow-origin": "*",
    "access-control-allow-methods": "GET,HEAD,POST,OPTIONS",
    "access-control-allow-headers": "content-type,authorization,x-setup-token",
}


def _error_response(status_code: int, payload: dict) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=payload)


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Storefront Backend",
        version="0.1.0",
        description="Secret setup, OAuth brokering, checkout delivery and audit trail.",
    )
    app.include_router(api_router, prefix="/api")

    @app.middleware("http")
    async def cors_and_uncaught_errors(request: Request, call_next) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=HTTPStatus.NO_CONTENT, headers=CORS_HEADERS)
        try:
            response = await call_next(request)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Unhandled error for %s %s", request.method, request.url.path)
            response = _error_response(
                HTTPStatus.INTERNAL_SERVER_ERROR, {"error": str(exc) or type(exc).__name__}
            )
        response.headers.update(CORS_HEADERS)
        return response

    @app.exception_handler(StorefrontError)
    async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
        if exc.status_code >= HTTPStatus.INTERNAL_SERVER_ERROR:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _error_response(exc.status_code, exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return _error_response(
            HTTPStatus.BAD_REQUEST, {"error": describe_validation_error(exc)}
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail).lower()},
            headers=getattr(exc, "headers", None),
        )

    return app


app = create_app()

__all__ = ["app", "create_app"]
