"""
DoseTrack Backend
Main FastAPI application for medication adherence tracking
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from datetime import datetime

# Configuration and database
from config import settings
from database import init_db, DatabaseHealthCheck
from errors import GUIDANCE, ErrorKind, ServiceError

from api import include_routers
from tools.email_service import email_service
from tools.storage import proof_photo_storage

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)


# ==================== LIFESPAN ====================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown"""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENV}")

    # Initialize database
    try:
        init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

    if not email_service.enabled:
        logger.warning("SMTP_HOST not set; missed-dose emails are disabled")
    if not proof_photo_storage.enabled:
        logger.warning("STORAGE_DIR not set; proof photos are kept inline")
    if not settings.SWEEP_TOKEN:
        logger.warning("SWEEP_TOKEN not set; the sweep endpoint is closed")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.APP_NAME}")


# ==================== APP INITIALIZATION ====================

app = FastAPI(
    title=settings.APP_NAME,
    description="""
    ## DoseTrack API

    Medication adherence tracking for a patient and their caretaker.

    ### Features
    - **Daily status**: Taken/pending per medication time slot
    - **Reminders**: Overdue doses after each slot deadline
    - **Caretaker alerts**: One notification and email per missed dose
    - **Adherence**: Monthly rate, streak and calendar
    """,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Attach modular API routers (prefix /api/v1)
include_routers(app)


# ==================== EXCEPTION HANDLERS ====================

@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": True,
            "message": exc.detail,
            "status_code": exc.status_code,
            "timestamp": datetime.now().isoformat()
        },
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "error": True,
            "kind": ErrorKind.VALIDATION.value,
            "message": GUIDANCE[ErrorKind.VALIDATION],
            "details": jsonable_encoder(exc.errors()),
            "status_code": 422,
            "timestamp": datetime.now().isoformat()
        }
    )


@app.exception_handler(ServiceError)
async def service_error_handler(request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.warning(f"{exc.kind.value} error on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": True,
            "kind": exc.kind.value,
            "message": exc.message,
            "guidance": GUIDANCE[exc.kind],
            "status_code": exc.status_code,
            "timestamp": datetime.now().isoformat()
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": True,
            "message": "An unexpected error occurred" if not settings.DEBUG else str(exc),
            "status_code": 500,
            "timestamp": datetime.now().isoformat()
        }
    )


# ==================== HEALTH ENDPOINTS ====================

@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - basic health check"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "healthy",
        "timestamp": datetime.now().isoformat()
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check endpoint"""
    db_connected = DatabaseHealthCheck.is_connected()
    table_counts = DatabaseHealthCheck.table_counts() if db_connected else {}

    return {
        "status": "healthy" if db_connected else "degraded",
        "timestamp": datetime.now().isoformat(),
        "checks": {
            "database": {
                "status": "up" if db_connected else "down",
                "type": "sqlite" if "sqlite" in settings.DATABASE_URL else "postgresql",
                "tables": table_counts
            },
            "email": {"configured": email_service.enabled},
            "storage": {"configured": proof_photo_storage.enabled},
            "auth": {"enabled": settings.AUTH_ENABLED}
        },
        "config": {
            "sweep_window_minutes": settings.SWEEP_WINDOW_MINUTES,
            "refresh_interval_seconds": settings.REFRESH_INTERVAL_SECONDS
        },
        "version": settings.APP_VERSION,
        "environment": settings.ENV
    }


# ==================== MAIN ====================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
