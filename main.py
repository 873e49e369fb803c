"""
Main FastAPI application entry point.
"""
import sys
import time
import logging
import warnings
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError
from starlette import status
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy.exc import OperationalError

# Add project root to path
ROOT_DIR = Path(__file__).resolve().parent
sys.path.insert(0, str(ROOT_DIR))

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
    force=True
)

logger = logging.getLogger(__name__)

from config import settings, get_ip_tracking_settings
from alembic_runner import run_migrations

# Import models to register with SQLAlchemy Base
from Login_module.User.user_model import User
from DailyCode_module.DailyCode_model import DailyCode
from EntryExit_module.EntryExit_model import EntryExitRecord
from IpTracking_module.IpAudit_model import IpAddressLog

# Routers
from DailyCode_module.DailyCode_router import router as daily_code_router
from EntryExit_module.EntryExit_router import router as entry_exit_router
from IpTracking_module.IpTracking_router import router as ip_tracking_router
from IpTracking_module.ip_capture import get_client_ip

# Scheduler
from IpTracking_module.scheduler import start_scheduler, shutdown_scheduler


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log HTTP requests and responses with status codes."""

    async def dispatch(self, request: Request, call_next):
        client_ip = get_client_ip(request)
        start_time = time.time()

        logger.info("-> %s %s | IP: %s", request.method, request.url.path, client_ip)

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.time() - start_time
            logger.error(
                "%s %s | Status: 500 (SERVER_ERROR) | Error: %s | Duration: %.3fs | IP: %s",
                request.method, request.url.path, e, duration, client_ip
            )
            raise

        duration = time.time() - start_time
        status_code = response.status_code
        if 200 <= status_code < 300:
            status_category = "SUCCESS"
        elif 300 <= status_code < 400:
            status_category = "REDIRECT"
        elif 400 <= status_code < 500:
            status_category = "CLIENT_ERROR"
        else:
            status_category = "SERVER_ERROR"

        logger.info(
            "%s %s | Status: %s (%s) | Duration: %.3fs | IP: %s",
            request.method, request.url.path, status_code, status_category, duration, client_ip
        )
        return response


def initialize_database():
    """
    Bring the schema up to date with Alembic.
    Connection errors are logged; the next startup retries.
    """
    try:
        logger.info("Running database migrations...")
        run_migrations()
        logger.info("Database migrations completed successfully")
    except OperationalError as e:
        logger.error("Failed to connect to database during migrations: %s", e)
        logger.warning("Migrations will be retried on next startup")
    except Exception as e:
        logger.error("Unexpected error during migrations: %s", e, exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown."""
    logger.info("Starting application...")
    ip_settings = get_ip_tracking_settings()
    logger.info(
        "IP tracking: enabled=%s, privacy=%s, level=%s, retentionDays=%s",
        ip_settings.enabled, ip_settings.privacy_enabled,
        ip_settings.anonymization_level.value, ip_settings.retention_days
    )

    if settings.RUN_MIGRATIONS_ON_STARTUP:
        initialize_database()
    if settings.SCHEDULER_ENABLED:
        start_scheduler()

    logger.info("Application started successfully")
    yield
    logger.info("Shutting down application...")
    shutdown_scheduler()
    logger.info("Application shutdown complete")


# Initialize FastAPI app
app = FastAPI(
    title="Attendance API",
    version="1.0.0",
    lifespan=lifespan
)


def _format_validation_errors(exc):
    """Return consistent error structure for 422 responses."""
    detail_list = []
    errors = exc.errors() if hasattr(exc, "errors") else []

    for err in errors:
        loc = err.get("loc", [])
        source = loc[0] if loc else "body"
        field = loc[-1] if len(loc) > 1 else loc[0] if loc else None
        detail_list.append({
            "source": source,
            "field": field,
            "message": err.get("msg"),
            "type": err.get("type")
        })
    return detail_list


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle FastAPI request validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "status": "error",
            "message": "Request validation failed.",
            "details": _format_validation_errors(exc)
        }
    )


@app.exception_handler(ValidationError)
async def pydantic_validation_exception_handler(request: Request, exc: ValidationError):
    """Handle Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "status": "error",
            "message": "Validation failed.",
            "details": _format_validation_errors(exc)
        }
    )


# CORS configuration
ALLOWED_ORIGINS = [origin.strip() for origin in settings.ALLOWED_ORIGINS.split(",") if origin.strip()]
if ALLOWED_ORIGINS == ["*"]:
    warnings.warn("CORS is set to allow all origins. This is not recommended for production.")

# Middleware
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With"],
)

# Include routers
app.include_router(daily_code_router)
app.include_router(entry_exit_router)
app.include_router(ip_tracking_router)


@app.get("/")
def root():
    """Root endpoint with API information."""
    return {
        "status": "success",
        "message": "Attendance API",
        "version": "1.0.0",
        "endpoints": {
            "dailyCode": "/api/daily-code",
            "entryExit": "/api/entry-exit",
            "ipTrackingAdmin": "/admin/ip-tracking",
        },
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
def health_check():
    """Health check endpoint for container orchestration."""
    return {
        "status": "healthy",
        "service": "Attendance API"
    }


# Run application
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8030,
        reload=False,
        log_level="info",
        access_log=True,
    )
