"""
FastAPI backend for the MEDIATE simulation dashboard.

Serves the persistent response cache, user accounts and preferences,
dashboard statistics and proxies to the simulation workflow API.
"""

# Performance: Install uvloop if available (Linux/macOS only)
try:
    import uvloop
    uvloop.install()
except ImportError:
    pass  # Windows - uvloop not available, use default asyncio

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, ORJSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from core.cleanup import CleanupService
from core.config import Settings
from core.container import container
from core.exceptions import APIError
from core.health import set_startup_time
from core.logging import configure_logging, get_logger
from middleware.auth import AuthMiddleware
from routers import auth, cache, dashboard, health, preferences, workflow

# Initialize settings and logging
settings = Settings()
configure_logging(settings)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    # Startup
    logger.info("Starting MEDIATE dashboard services")
    set_startup_time()

    await container.database().startup()

    cleanup_service = None
    if settings.cache_cleanup_enabled:
        cleanup_service = CleanupService(
            cache=container.cache(),
            sessions=container.session_service(),
            settings=container.settings()
        )
        await cleanup_service.start()

    logger.info("Services started successfully")
    yield

    # Shutdown
    if cleanup_service is not None:
        await cleanup_service.stop()
    await container.database().shutdown()
    logger.info("Services shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="MEDIATE Dashboard Services",
    version="1.0.0",
    description="Cache, accounts, dashboard and simulation workflow proxy",
    lifespan=lifespan,
    default_response_class=ORJSONResponse
)


@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError):
    return ORJSONResponse(status_code=exc.status_code, content={"error": exc.message})


# Routes whose clients expect {"error": ...} bodies for malformed input too
ERROR_BODY_PREFIXES = ("/api/cache", "/api/user-preferences")


def describe_validation_error(exc: RequestValidationError) -> str:
    """First validation problem as "Invalid <field>: <reason>"."""
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first["loc"] if part not in ("body", "query"))
    return f"Invalid {field or 'request'}: {first['msg']}"


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    if not request.url.path.startswith(ERROR_BODY_PREFIXES):
        return await request_validation_exception_handler(request, exc)
    return ORJSONResponse(status_code=400, content={"error": describe_validation_error(exc)})


# Add exception handler middleware BEFORE CORS to catch all errors
class CatchAllExceptionsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error("Unhandled exception", path=request.url.path,
                         error_type=type(e).__name__, error=str(e), exc_info=True)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"error": "Internal server error"}
            )


app.add_middleware(CatchAllExceptionsMiddleware)

# Bearer token check for dashboard and workflow routes
app.add_middleware(AuthMiddleware)

# Add CORS middleware (must be AFTER exception middleware)
logger.info("Configuring CORS middleware",
            origins_count=len(settings.cors_origins),
            origins=settings.cors_origins)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router)
app.include_router(cache.router)
app.include_router(preferences.router)
app.include_router(health.router)
app.include_router(dashboard.router)
app.include_router(dashboard.ws_router)
app.include_router(workflow.router)


if __name__ == "__main__":
    import uvicorn
    logger.info("Starting MEDIATE dashboard services",
                host=settings.host, port=settings.port, debug=settings.debug)
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        reload_dirs=["."] if settings.debug else None,
        reload_excludes=["*.pyc", "__pycache__", "*.log", "*.db"] if settings.debug else None,
        workers=1 if settings.debug else settings.workers
    )
