"""
Dealer Signatures FastAPI Backend
Signature requests, signing links and PDF signature stamping
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config import settings
from database import SessionLocal, DatabaseManager
from app.models.audit import AuditEventType
from app.routes import signatures
from app.services.audit_service import AuditService
from app.utils.errors import SigningError, InternalSigningError

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def _log_system_event(event_type: AuditEventType, message: str, details: dict = None):
    db = SessionLocal()
    try:
        AuditService.log_system_event(db, event_type, message, details)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    logger.info(f"{settings.APP_NAME} starting...")

    if settings.AUTO_CREATE_TABLES:
        DatabaseManager.create_all_tables()
        logger.info("Database tables ensured")

    if DatabaseManager.check_connection():
        logger.info("Database connection established")
    else:
        logger.error("Database connection failed")

    _log_system_event(AuditEventType.SYSTEM_STARTUP, "Service started", {"service": settings.APP_NAME})

    yield

    # Shutdown
    logger.info(f"{settings.APP_NAME} shutting down...")
    _log_system_event(AuditEventType.SYSTEM_SHUTDOWN, "Service stopped")


# Create FastAPI app
app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Document signature requests and PDF signature stamping",
    version=settings.APP_VERSION,
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# Trusted host middleware
app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=settings.ALLOWED_HOSTS
)


@app.exception_handler(SigningError)
async def signing_error_handler(request: Request, exc: SigningError):
    """Render pipeline errors as {success, error, message, retryable}"""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions"""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    _log_system_event(
        AuditEventType.UNHANDLED_EXCEPTION,
        f"Unhandled {type(exc).__name__}",
        {
            "path": request.url.path,
            "method": request.method,
            "error": str(exc),
        }
    )

    return JSONResponse(status_code=500, content=InternalSigningError().to_dict())


# Health check endpoint
@app.get("/health")
async def health_check():
    """System health check"""
    health_status = {
        "status": "healthy",
        "timestamp": time.time(),
        "services": {}
    }

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
        health_status["services"]["database"] = "healthy"
    except Exception:
        health_status["services"]["database"] = "unhealthy"
        health_status["status"] = "degraded"

    return health_status


# Root endpoint
@app.get("/")
async def root():
    """Welcome message and API information"""
    return {
        "message": f"Welcome to {settings.APP_NAME} API",
        "version": settings.APP_VERSION,
        "status": "running",
        "documentation": "/api/docs",
        "health_check": "/health"
    }

# Include routers
app.include_router(signatures.router, prefix="/api/signatures", tags=["Signatures"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=5000,
        reload=settings.DEBUG,
        access_log=settings.DEBUG
    )
