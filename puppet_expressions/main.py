"""Puppet Expressions - FastAPI Application Entry Point.

Expression parameter blending engine for a rigged 2D puppet, served over
HTTP and WebSocket.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from puppet_expressions import __version__
from puppet_expressions.api.frame_driver import FrameDriver
from puppet_expressions.api.routes import expressions, health, model
from puppet_expressions.api.websocket import events, parameters
from puppet_expressions.config.settings import get_settings
from puppet_expressions.exceptions import (
    DuplicateExpressionError,
    ExpressionNotFoundError,
    InvalidDescriptorError,
    NoActiveModelError,
    PuppetExpressionError,
    UnknownParameterError,
    ValidationFailedError,
)
from puppet_expressions.observability.logging import get_logger, init_logging
from puppet_expressions.observability.metrics import set_build_info

logger = get_logger(__name__)

# Domain error -> HTTP status
ERROR_STATUS: dict[type[PuppetExpressionError], int] = {
    NoActiveModelError: 409,
    DuplicateExpressionError: 409,
    ExpressionNotFoundError: 404,
    UnknownParameterError: 404,
    ValidationFailedError: 422,
    InvalidDescriptorError: 422,
}


def status_for(error: PuppetExpressionError) -> int:
    """HTTP status for a domain error (400 when unmapped)."""
    for error_type in type(error).__mro__:
        if error_type in ERROR_STATUS:
            return ERROR_STATUS[error_type]
    return 400


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown of components.
    """
    settings = get_settings()
    init_logging(
        json_format=settings.environment == "production",
        level=settings.log_level,
    )
    logger.info(
        "puppet_expressions_starting",
        version=__version__,
        environment=settings.environment,
        port=settings.api_port,
    )
    set_build_info(__version__, "unknown", "unknown")

    driver: FrameDriver | None = None
    try:
        engine = expressions.get_engine()
        health.set_component_health("engine", True)

        if settings.model_path:
            try:
                engine.load_model_file(settings.model_path)
            except InvalidDescriptorError as e:
                # Stay up without a model; /readyz reports it
                logger.warning(
                    "startup_model_not_loaded",
                    model_path=settings.model_path,
                    error=e.message,
                )

        driver = FrameDriver(engine, fps=settings.target_fps)
        if settings.frame_driver_enabled:
            driver.start()
        health.set_component_health("frame_driver", True)

        health.set_ready(True)
        logger.info("puppet_expressions_ready", components=health.get_component_health())

    except Exception as e:
        logger.error("puppet_expressions_startup_failed", error=str(e))
        raise

    yield  # Application runs here

    logger.info("puppet_expressions_shutting_down")
    health.set_ready(False)

    if driver is not None:
        await driver.stop()
    health.set_component_health("frame_driver", False)

    await events.get_event_manager().disconnect_all()
    await parameters.get_parameter_manager().disconnect_all()
    logger.info("puppet_expressions_shutdown_complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Puppet Expressions",
        description="Expression parameter blending engine for rigged 2D puppets",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.environment == "development" else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(health.router)
    app.include_router(model.router)
    app.include_router(expressions.router)
    app.include_router(events.router)
    app.include_router(parameters.router)

    if settings.metrics_enabled:
        @app.get("/metrics", include_in_schema=False)
        async def metrics() -> Response:
            """Prometheus exposition."""
            return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.exception_handler(PuppetExpressionError)
    async def domain_exception_handler(
        request: Request,
        exc: PuppetExpressionError,
    ) -> JSONResponse:
        status_code = status_for(exc)
        logger.info(
            "request_rejected",
            path=request.url.path,
            method=request.method,
            status_code=status_code,
            error=exc.message,
        )
        return JSONResponse(
            status_code=status_code,
            content={"detail": exc.message, "error": exc.to_dict()},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    return app


# Create application instance
app = create_app()


def run() -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "puppet_expressions.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower().replace("warn", "warning"),
        reload=settings.environment == "development",
    )


if __name__ == "__main__":
    run()
