"""
Main FastAPI Application with Enhanced Logging.
Entry point for the Phone Resale Reconciliation Service API.
"""

from fastapi import FastAPI, Request, status # type: ignore
from fastapi.middleware.cors import CORSMiddleware # type: ignore
from fastapi.responses import JSONResponse # type: ignore
from contextlib import asynccontextmanager
import time
from datetime import datetime, timezone

from app.config import settings
from app.core.backend_client import BackendClient
from app.core.exceptions import AppException
from app.core.responses import ErrorResponse, ResponseHandler
from app.core.logging_config import (
    setup_logging,
    get_logger,
    log_operation_start,
    log_operation_end,
    log_api_request
)

from app.api.routes import sales_routes, report_routes
from app.api.routes import special_order_routes, catalog_routes


# Setup logging before anything else
setup_logging(
    log_level="DEBUG" if settings.DEBUG else settings.LOG_LEVEL,
    log_dir=settings.LOG_DIR,
    enable_file_logging=settings.ENABLE_FILE_LOGGING,
    enable_performance_logging=settings.DEBUG
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    # Startup
    logger.info("=" * 80)
    logger.info(f"Starting {settings.APP_NAME}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug Mode: {settings.DEBUG}")
    logger.info(f"Version: {settings.APP_VERSION}")
    logger.info(f"Inventory backend: {settings.BACKEND_URL}")
    logger.info("=" * 80)

    logger.perf.log_performance_snapshot("Application Startup")

    log_operation_start(logger, "backend_client_initialization")
    client = BackendClient(settings.BACKEND_URL, timeout=settings.BACKEND_TIMEOUT)
    await client.open()
    app.state.backend_client = client
    log_operation_end(logger, "backend_client_initialization", success=True)

    yield

    # Shutdown
    logger.info("=" * 80)
    logger.info(f"Shutting down {settings.APP_NAME}")
    logger.perf.log_performance_snapshot("Application Shutdown")

    try:
        log_operation_start(logger, "backend_client_shutdown")
        await client.close()
        log_operation_end(logger, "backend_client_shutdown", success=True)
    except Exception as e:
        logger.error(f"Error during shutdown: {str(e)}", exc_info=True)
        log_operation_end(logger, "backend_client_shutdown", success=False, error=str(e))

    logger.info("Shutdown complete")
    logger.info("=" * 80)


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Sale-line balances, consolidated client invoices and daily stock movements for a phone resale shop",
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)


# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request timing and logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests with timing information."""
    start_time = time.time()
    request.state.timestamp = datetime.now(timezone.utc).isoformat()

    logger.debug(
        f"Incoming request: {request.method} {request.url.path}",
        extra={
            "method": request.method,
            "path": request.url.path,
            "client_host": request.client.host if request.client else "unknown",
            "query_params": dict(request.query_params)
        }
    )

    try:
        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000

        log_api_request(
            logger,
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=duration_ms
        )

        # Slow request threshold: 1 second
        if duration_ms > 1000:
            logger.warning(
                f"Slow request detected: {request.method} {request.url.path} - {duration_ms:.2f}ms",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "duration_ms": duration_ms,
                    "slow_request": True
                }
            )
            logger.perf.log_performance_snapshot(f"Slow Request: {request.url.path}")

        response.headers["X-Request-ID"] = request.state.timestamp
        response.headers["X-Process-Time"] = str(duration_ms)

        return response

    except Exception as e:
        duration_ms = (time.time() - start_time) * 1000
        logger.error(
            f"Request failed: {request.method} {request.url.path} - {str(e)}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "duration_ms": duration_ms,
                "error": str(e)
            },
            exc_info=True
        )
        raise


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    """Handle custom application exceptions."""
    logger.warning(
        f"Application exception: {exc.error_code} - {exc.message}",
        extra={
            "error_code": exc.error_code,
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=ResponseHandler.error(
            code=exc.error_code,
            message=exc.message,
            status_code=exc.status_code,
            details=exc.details
        )
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(
        f"Unhandled exception: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "exception_type": type(exc).__name__
        },
        exc_info=True
    )

    logger.perf.log_performance_snapshot("Unhandled Exception")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ResponseHandler.error(
            code="INTERNAL_ERROR",
            message="An unexpected error occurred" if not settings.DEBUG else str(exc),
            status_code=500
        )
    )


ERROR_RESPONSES = {
    404: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}

logger.info("Registering API routes...")
app.include_router(sales_routes.router, prefix="/api/v1", responses={
    400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, **ERROR_RESPONSES
})
logger.debug("Registered sales routes")
app.include_router(report_routes.router, prefix="/api/v1", responses=ERROR_RESPONSES)
logger.debug("Registered stock report routes")
app.include_router(special_order_routes.router, prefix="/api/v1", responses=ERROR_RESPONSES)
logger.debug("Registered special order routes")
app.include_router(catalog_routes.router, prefix="/api/v1", responses=ERROR_RESPONSES)
logger.debug("Registered catalog routes")
logger.info("All API routes registered successfully")


@app.get("/health", tags=["System"])
async def health_check(request: Request):
    """Health check endpoint with system metrics."""
    import psutil # type: ignore

    client = getattr(request.app.state, "backend_client", None)
    client_open = bool(client and client.is_open)

    process = psutil.Process()
    memory_info = process.memory_info()

    health_data = {
        "status": "healthy" if client_open else "degraded",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "backend": {
            "url": settings.BACKEND_URL,
            "client_open": client_open
        },
        "performance": {
            "memory_mb": round(memory_info.rss / 1024 / 1024, 2),
            "cpu_percent": round(process.cpu_percent(interval=None), 2)
        }
    }

    logger.info(f"Health check: {health_data['status']}")
    return health_data


@app.get("/", tags=["System"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "docs": "/api/docs",
        "health": "/health",
        "api_prefix": "/api/v1"
    }


if __name__ == "__main__":
    import uvicorn # type: ignore

    logger.info(f"Starting server on {settings.HOST}:{settings.PORT}")

    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_config=None,  # Use our custom logging configuration
        access_log=False  # Handled by our middleware
    )
