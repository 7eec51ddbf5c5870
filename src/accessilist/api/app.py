"""FastAPI application factory for the AccessiList session API."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from accessilist import __version__
from accessilist.api import health, session_routes
from accessilist.api.dependencies import AppServices, get_client_id
from accessilist.api.middleware import (
    MetricsMiddleware,
    RequestIDMiddleware,
    SecurityHeadersMiddleware,
    get_request_id,
)
from accessilist.api.schemas import error_response
from accessilist.config.checklist_types import TypeRegistry, load_type_registry
from accessilist.config.runtime import RuntimeConfig, RuntimeMode, get_runtime_config
from accessilist.observability.logger import configure_logging, payload_scrubber
from accessilist.observability.metrics import MetricsExporter
from accessilist.security.csrf import CsrfProtector
from accessilist.security.rate_limit import build_endpoint_limiters
from accessilist.state.session_store import SessionStore
from accessilist.utils.errors import (
    ERROR_MESSAGES,
    AccessiListError,
    ErrorCode,
    RateLimitError,
    ValidationError,
    get_http_status_for_error,
    log_error,
)
from accessilist.utils.security_logger import SecurityEventType, get_security_logger
from accessilist.utils.time_provider import TimeProvider

logger = logging.getLogger(__name__)
security_logger = get_security_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log startup/shutdown and sweep stale rate limit files."""
    services: AppServices = app.state.services

    swept = sum(limiter.cleanup_stale_files() for limiter in services.limiters.values())
    if swept:
        logger.info("Removed %d stale rate limit files at startup", swept)

    security_logger.log_system_event(
        SecurityEventType.STARTUP,
        "AccessiList API started",
        additional_data={
            "version": __version__,
            "mode": services.config.mode.value,
            "checklist_types": len(services.registry),
        },
    )

    yield

    security_logger.log_system_event(SecurityEventType.SHUTDOWN, "AccessiList API shutting down")


def build_services(
    config: RuntimeConfig,
    *,
    store: SessionStore | None = None,
    registry: TypeRegistry | None = None,
    time_provider: TimeProvider | None = None,
) -> AppServices:
    """Wire the store, limiters, CSRF protector and metrics from ``config``."""
    if registry is None:
        registry = store.registry if store else load_type_registry(config.storage.types_file)
    store = store or SessionStore(
        config.storage.sessions_dir, registry=registry, time_provider=time_provider
    )
    clock = time_provider.now if time_provider else None

    return AppServices(
        config=config,
        store=store,
        registry=registry,
        csrf=CsrfProtector(
            config.security.csrf_secret,
            ttl=config.security.csrf_ttl,
            enabled=config.security.csrf_enabled,
            now=clock,
        ),
        limiters=build_endpoint_limiters(
            config.storage.rate_limit_dir,
            multiplier=config.security.rate_limit_multiplier,
            now=clock,
        ),
        metrics=MetricsExporter() if config.observability.metrics_enabled else None,
    )


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AccessiListError)
    async def _accessilist_error_handler(request: Request, exc: AccessiListError) -> JSONResponse:
        log_error(exc, request_id=get_request_id(request))
        status_code = get_http_status_for_error(exc)
        if isinstance(exc, ValidationError):
            security_logger.log_invalid_input(
                client_id=get_client_id(request),
                error_message=payload_scrubber(exc.message),
                correlation_id=get_request_id(request),
            )
        if isinstance(exc, RateLimitError):
            retry_after = exc.error_details.retry_after or 60
            return error_response(
                status_code,
                exc.message,
                headers={"Retry-After": str(retry_after)},
                retry_after=retry_after,
            )
        return error_response(status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        logger.warning(
            "Rejected malformed request",
            extra={"request_id": get_request_id(request), "errors": len(errors)},
        )
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        security_logger.log_invalid_input(
            client_id=get_client_id(request),
            error_message=payload_scrubber(f"{location}: {first.get('msg', '')}"),
            correlation_id=get_request_id(request),
        )
        return error_response(400, "Invalid data format")

    @app.exception_handler(StarletteHTTPException)
    async def _http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code == 405:
            message = ERROR_MESSAGES[ErrorCode.E906_METHOD_NOT_ALLOWED]
        elif exc.status_code == 404:
            message = "Not found"
        else:
            message = str(exc.detail)
        return error_response(exc.status_code, message, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        log_error(exc, request_id=get_request_id(request))
        return error_response(500, "Internal server error")


def create_app(
    config: RuntimeConfig | None = None,
    *,
    store: SessionStore | None = None,
    registry: TypeRegistry | None = None,
    time_provider: TimeProvider | None = None,
) -> FastAPI:
    """Create a FastAPI application instance.

    Args:
        config: Runtime configuration. Read from the environment if omitted.
        store: Pre-built session store (tests inject one over a temp dir).
        registry: Checklist type registry. Defaults to the store's or the
            configured types file.
        time_provider: Clock shared by the store, CSRF tokens and limiters.
    """
    config = config or get_runtime_config()
    configure_logging(config.observability.log_level, config.observability.json_logging)

    services = build_services(config, store=store, registry=registry, time_provider=time_provider)

    app = FastAPI(
        title="accessilist",
        version=__version__,
        description="Accessibility checklist session API",
        docs_url="/docs" if config.mode != RuntimeMode.PRODUCTION else None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.services = services
    app.state.metrics = services.metrics

    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        SecurityHeadersMiddleware, hsts=config.mode != RuntimeMode.LOCAL
    )

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(session_routes.router)

    logger.debug("Application created in %s mode", config.mode.value)
    return app
