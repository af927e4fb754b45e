"""
PURPOSE: FastAPI application factory and lifecycle management for the template engine.

Initializes the FastAPI application with:
- Template and indicator routers under /api
- Rate limiting and CORS middleware
- Exception handlers with a consistent error body
- Startup: logging, generation backends, catalog seeding, queue connection
- Shutdown: queue disconnect, backend HTTP clients closed
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from template_engine.api import api_router
from template_engine.catalog.repository import IndicatorCatalog, get_indicator_catalog
from template_engine.catalog.seed import seed_indicator_catalog
from template_engine.config.settings import Settings, settings
from template_engine.core.rate_limit import limiter
from template_engine.dispatch.generation_queue import GenerationQueue
from template_engine.services.template_service import TemplateService
from template_engine.template_builder.backends.factory import BackendPair, build_backends
from template_engine.template_builder.pipeline import build_pipeline
from template_engine.utils.logger import get_logger, setup_logging
from template_engine.version import get_version


logger = get_logger("main")


# ════════════════════════════════════════════════════════════════
# Lifecycle Events
# ════════════════════════════════════════════════════════════════


async def on_startup(app: FastAPI, config: Settings) -> None:
    """
    PURPOSE: Build the long-lived collaborators and store them on app.state.

    CALLED BY: FastAPI lifespan startup

    Tasks:
        1. Setup logging with configured level
        2. Build extraction/generation backends for AI_PROVIDER
        3. Seed the indicator catalog from the built-in table
        4. Connect the generation queue (unless INLINE_GENERATION)
        5. Wire the TemplateService
    """
    from template_engine.db.engine import AsyncSessionLocal

    try:
        setup_logging(config.LOG_LEVEL)
        logger.info(
            "application_startup_starting",
            version=get_version(),
            log_level=config.LOG_LEVEL,
            provider=config.AI_PROVIDER,
            inline_generation=config.INLINE_GENERATION,
        )

        insecure = config.get_insecure_defaults()
        if insecure:
            logger.warning(
                "insecure_default_credentials",
                message="Default credentials detected. Change these before deploying.",
                settings=insecure,
            )

        backends: BackendPair = build_backends(config)
        app.state.backends = backends

        catalog: IndicatorCatalog = get_indicator_catalog()
        app.state.indicator_catalog = catalog
        try:
            await seed_indicator_catalog(catalog)
        except Exception as e:
            logger.warning("indicator_catalog_seeding_failed", error=str(e))

        queue: Optional[GenerationQueue] = None
        if not config.INLINE_GENERATION:
            queue = GenerationQueue(config.REDIS_URL, config.GENERATION_QUEUE_NAME)
            await queue.connect()
        app.state.generation_queue = queue

        app.state.template_service = TemplateService(
            AsyncSessionLocal,
            build_pipeline(backends, catalog, config),
            queue=queue,
            inline=config.INLINE_GENERATION,
        )

        logger.info("application_startup_complete")

    except Exception as e:
        logger.critical("application_startup_failed", error=str(e))
        raise


async def on_shutdown(app: FastAPI) -> None:
    """
    PURPOSE: Release the queue connection, backend HTTP clients and DB pool.

    CALLED BY: FastAPI lifespan shutdown
    """
    try:
        logger.info("application_shutdown_starting")

        queue: Optional[GenerationQueue] = getattr(app.state, "generation_queue", None)
        if queue is not None:
            await queue.disconnect()

        backends: Optional[BackendPair] = getattr(app.state, "backends", None)
        if backends is not None:
            await backends.close()

        from template_engine.db.engine import dispose_engine

        await dispose_engine()

        logger.info("application_shutdown_complete")

    except Exception as e:
        logger.error("application_shutdown_error", error=str(e))
        raise


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    PURPOSE: Manage application lifespan with startup and shutdown events.

    CALLED BY: FastAPI during application startup and shutdown
    """
    await on_startup(app, settings)

    yield

    await on_shutdown(app)


# ════════════════════════════════════════════════════════════════
# Exception Handlers
# ════════════════════════════════════════════════════════════════


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """
    PURPOSE: Handle Pydantic validation errors with consistent JSON response.

    CALLED BY: FastAPI when request validation fails
    """
    logger.warning(
        "request_validation_failed",
        path=request.url.path,
        method=request.method,
        error_count=len(exc.errors())
    )

    safe_errors = jsonable_encoder(
        exc.errors(),
        custom_encoder={
            ValueError: lambda e: str(e),
            Exception: lambda e: str(e),
        },
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "status": "error",
            "detail": "Request validation failed",
            "errors": safe_errors,
        },
    )


async def general_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    PURPOSE: Handle unexpected exceptions with logging and safe error response.

    CALLED BY: FastAPI exception handler middleware
    """
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exception_type=type(exc).__name__
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "status": "error",
            "detail": "Internal server error",
        },
    )


# ════════════════════════════════════════════════════════════════
# FastAPI Application Factory
# ════════════════════════════════════════════════════════════════


def create_app(use_lifespan: bool = True) -> FastAPI:
    """
    PURPOSE: Create and configure the FastAPI application.

    CALLED BY: Application entrypoint (uvicorn), tests (use_lifespan=False
    with app.state populated by the test)

    Args:
        use_lifespan: Attach the startup/shutdown lifespan

    Returns:
        FastAPI: Configured application
    """
    # Fail fast if non-dev config still has insecure defaults
    settings.validate_credentials()

    version = get_version()
    app = FastAPI(
        title="Stepwise Template Engine",
        description="Turns trading-strategy conversations into validated stepwise rules",
        version=version,
        lifespan=lifespan if use_lifespan else None,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # ────────────────────────────────────────────────────────────
    # Middleware
    # ────────────────────────────────────────────────────────────

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://localhost:8000",
        ],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=[
            "Authorization",
            "Content-Type",
            "X-Request-ID",
        ],
    )

    # ────────────────────────────────────────────────────────────
    # Routes
    # ────────────────────────────────────────────────────────────

    app.include_router(api_router)

    @app.get("/health", tags=["health"])
    async def health(request: Request):
        """
        PURPOSE: Liveness check with provider, queue and cache details.

        CALLED BY: Load balancers, docker healthcheck
        """
        queue: Optional[GenerationQueue] = getattr(request.app.state, "generation_queue", None)
        catalog = getattr(request.app.state, "indicator_catalog", None)
        cache = getattr(catalog, "cache", None)
        return {
            "status": "ok",
            "service": "template-engine",
            "version": version,
            "provider": settings.AI_PROVIDER,
            "generation_mode": "inline" if queue is None else "queued",
            "indicator_cache": cache.get_stats() if cache is not None else None,
        }

    # ────────────────────────────────────────────────────────────
    # Exception Handlers
    # ────────────────────────────────────────────────────────────

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info(
        "fastapi_application_created",
        version=version,
        api_prefix="/api"
    )

    return app


# Create the application
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "template_engine.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development(),
        log_level=settings.LOG_LEVEL.lower(),
    )
