"""FastAPI application entry point for the Azure relay proxy.

Main application setup with middleware, routing, and lifecycle management.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import httpx
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.openai_proxy import router as openai_router
from app.api.schemas import ErrorResponse, HealthEnvironment, HealthResponse
from app.api.search_proxy import router as search_router
from app.core.config import Settings, get_settings
from app.core.errors import ConfigurationError, ProxyRequestError, UpstreamError
from app.core.logging_config import setup_logging

# Initialize logging before importing other modules
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Opens the shared upstream HTTP client unless one was injected.
    """
    settings: Settings = app.state.settings
    owns_client = app.state.http_client is None

    # Startup
    logger.info(f"Starting relay proxy on port {settings.port}...")
    logger.info(f"  - OpenAI API: {'configured' if settings.openai_configured else 'NOT configured'}")
    logger.info(f"  - Search API: {'configured' if settings.search_configured else 'NOT configured'}")

    if owns_client:
        app.state.http_client = httpx.AsyncClient(timeout=settings.request_timeout)

    yield

    # Shutdown
    logger.info("Shutting down relay proxy...")
    if owns_client:
        await app.state.http_client.aclose()
        app.state.http_client = None


def create_app(settings: Settings | None = None, http_client: httpx.AsyncClient | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings. If None, loads from environment.
        http_client: Optional upstream client, mainly for tests.

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Test Scenario Generator Proxy",
        description="Relays Azure OpenAI and Azure AI Search calls with server-held keys",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Store settings and client in app state
    app.state.settings = settings
    app.state.http_client = http_client

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(openai_router)
    app.include_router(search_router)

    # Health check endpoint
    @app.get("/api/health", tags=["health"], response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Report liveness and which upstream services have credentials."""
        return HealthResponse(
            timestamp=datetime.now(timezone.utc).isoformat(),
            environment=HealthEnvironment(
                openai_configured=bool(settings.azure_openai_api_key),
                search_configured=bool(settings.azure_search_api_key),
            ),
        )

    # Exception handlers
    @app.exception_handler(UpstreamError)
    async def upstream_exception_handler(request: Request, exc: UpstreamError):
        """Relay upstream error statuses with the raw body."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.body if exc.body else str(exc)},
        )

    @app.exception_handler(ProxyRequestError)
    @app.exception_handler(ConfigurationError)
    async def relay_exception_handler(request: Request, exc: Exception):
        """Upstream unreachable or not configured."""
        logger.error(f"Relay error on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(
                error=str(exc),
                error_code="CONFIGURATION_ERROR" if isinstance(exc, ConfigurationError) else "UPSTREAM_UNREACHABLE",
            ).model_dump(exclude_none=True),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle Pydantic validation errors."""
        logger.warning(f"Validation error: {exc.errors()}")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=ErrorResponse(
                error="Validation error",
                error_code="VALIDATION_ERROR",
                details={"errors": jsonable_errors(exc)},
            ).model_dump(exclude_none=True),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle uncaught exceptions."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(error=str(exc) or "Internal server error", error_code="INTERNAL_ERROR").model_dump(
                exclude_none=True
            ),
        )

    logger.info("FastAPI application created successfully")
    return app


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Return validation errors without non-serializable context objects."""
    return [{key: error[key] for key in ("loc", "msg", "type") if key in error} for error in exc.errors()]


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    logger.info(f"Starting uvicorn server on port {settings.port}...")
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
