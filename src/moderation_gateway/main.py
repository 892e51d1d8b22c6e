"""
FastAPI application factory for the Moderation Gateway.

Wires routes, middleware and exception handlers, and resolves the gateway
configuration once at startup.
"""

import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from moderation_gateway.api.health import router as health_router
from moderation_gateway.api.v1.chat import router as chat_router
from moderation_gateway.config import Settings
from moderation_gateway.middleware.request_size import request_size_validator
from moderation_gateway.middleware.request_tracking import request_tracking_middleware
from moderation_gateway.middleware.security_headers import security_headers_middleware
from moderation_gateway.pipeline.normalizer import error_response, normalize_error
from moderation_gateway.utils.errors import (
    ConfigurationError,
    GatewayError,
    InvalidRequestError,
    MethodNotAllowedError,
)
from moderation_gateway.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):  # type: ignore
    """Log the resolved configuration on startup."""
    config = app.state.gateway_config
    if config is None:
        error = app.state.config_error
        logger.warning(
            "Gateway not configured, completion requests will be rejected",
            extra={"error_code": error.error_code, "details": error.details},
        )
    else:
        logger.info(
            "Gateway ready",
            extra={
                "moderation_model": config.moderation_model,
                "moderation_timeout": config.moderation_provider.timeout_seconds,
                "completion_timeout": config.completion_provider.timeout_seconds,
                "image_aware": config.policy.image_aware,
                "require_structured_string_content": config.policy.require_structured_string_content,
            },
        )

    yield

    logger.info("Gateway stopped")


def load_gateway_config(app: FastAPI, settings: Settings) -> None:
    """
    Build the gateway configuration and store it on app state.

    A configuration problem does not stop the application; it is stored and
    reported on every completion request instead.
    """
    try:
        app.state.gateway_config = settings.gateway_config
        app.state.config_error = None
    except ConfigurationError as exc:
        app.state.gateway_config = None
        app.state.config_error = exc


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error raised outside a streamed body as an error envelope."""

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:  # type: ignore
        envelope = normalize_error(exc)
        log = logger.error if envelope.status_code >= 500 else logger.warning
        log(
            f"Gateway error: {exc.message}",
            extra={
                "error_type": envelope.error.type,
                "error_code": envelope.error.code,
                "status_code": envelope.status_code,
                "path": request.url.path,
            },
        )
        return error_response(envelope)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:  # type: ignore
        # Routing errors (unknown path, unsupported method) use the same envelope
        error: GatewayError
        if exc.status_code == 405:
            error = MethodNotAllowedError(request.method)
        else:
            error = InvalidRequestError(
                str(exc.detail), error_code=exc.status_code, status_code=exc.status_code
            )
        logger.warning(
            "Routing error",
            extra={"method": request.method, "path": request.url.path, "status_code": exc.status_code},
        )
        return error_response(normalize_error(error), headers=exc.headers)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:  # type: ignore
        return error_response(normalize_error(exc))


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Optional settings; loaded from the environment when omitted

    Returns:
        Configured FastAPI application
    """
    if settings is None:
        try:
            settings = Settings()
        except Exception as exc:
            # Logging is configured from settings, so report on stderr
            print(f"CRITICAL: Failed to load settings: {exc}", file=sys.stderr)
            raise

    setup_logging(settings)

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="Moderation-gated proxy for OpenAI-compatible chat completions",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.upstream_transport = None
    load_gateway_config(app, settings)

    # Last registered runs outermost: tracking wraps the 413 responses too
    app.middleware("http")(request_size_validator)
    if settings.enable_security_headers:
        app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_tracking_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(chat_router)

    logger.info(
        "Application created",
        extra={"environment": settings.environment, "configured": app.state.gateway_config is not None},
    )
    return app


app = create_app()
