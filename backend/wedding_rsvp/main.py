import logging
import traceback
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from wedding_rsvp.api.routes import health, households, imports, rsvp
from wedding_rsvp.core.config import settings
from wedding_rsvp.core.errors import ImportFormatError, ImportProcessingError
from wedding_rsvp.core.logging import setup_logging
from wedding_rsvp.db.base import Base
from wedding_rsvp.db.session import SessionLocal, engine
from wedding_rsvp.models import guest, household  # noqa: F401  (register tables)

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for startup and shutdown"""
    # Startup
    logger.info("🚀 Starting Wedding RSVP API...")

    # Create database tables
    logger.info("📦 Creating database tables...")
    Base.metadata.create_all(bind=engine)

    # Test database connection
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        logger.info("✅ Database connection successful")
    except Exception as e:
        logger.error(f"❌ Database connection failed: {e}")
        raise
    finally:
        db.close()

    yield

    # Shutdown
    logger.info("👋 Shutting down...")

def describe_validation_errors(exc: RequestValidationError) -> str:
    """One line per field: "records.0: Input should be a valid dictionary"."""
    lines = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        lines.append(f"{location}: {err.get('msg')}" if location else err.get("msg", ""))
    return "; ".join(lines)

def register_exception_handlers(app: FastAPI) -> None:
    import_paths = {f"/api{route.path}" for route in imports.router.routes}

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        if request.url.path not in import_paths:
            return await request_validation_exception_handler(request, exc)
        message = describe_validation_errors(exc)
        logger.warning(f"Rejected import on {request.url.path}: {message}")
        return JSONResponse(status_code=400, content={"error": "Invalid import data", "message": message})

    @app.exception_handler(ImportFormatError)
    async def import_format_error_handler(request: Request, exc: ImportFormatError):
        logger.warning(f"Rejected import on {request.url.path}: {exc.message}")
        return JSONResponse(status_code=400, content={"error": exc.error, "message": exc.message})

    @app.exception_handler(ImportProcessingError)
    async def import_processing_error_handler(request: Request, exc: ImportProcessingError):
        content = {"error": exc.error, "message": str(exc.cause) or "Unknown error"}
        if settings.DEBUG:
            content["stack"] = "".join(traceback.format_exception(exc.cause))
        if exc.timed_out:
            content["error"] = "The server took too long to process the request."
            return JSONResponse(status_code=504, content=content)
        return JSONResponse(status_code=500, content=content)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=exc)
        content = {"error": "Internal server error", "message": str(exc) or "Unknown error"}
        if settings.DEBUG:
            content["stack"] = "".join(traceback.format_exception(exc))
        return JSONResponse(status_code=500, content=content)

# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Wedding RSVP backend - guest/household import and admin API",
    version=settings.VERSION,
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

register_exception_handlers(app)

# Include routers
app.include_router(health.router, prefix="/api", tags=["Health"])
app.include_router(imports.router, prefix="/api", tags=["Guest Import"])
app.include_router(households.router, prefix="/api", tags=["Admin"])
app.include_router(rsvp.router, prefix="/api", tags=["RSVP"])

@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "service": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "status": "operational",
        "docs": "/docs",
        "endpoints": {
            "health": "/api/health",
            "upload_batch": "/api/admin/upload-batch",
            "import_text": "/api/admin/import-text",
            "import_text_guests": "/api/admin/import-text-guests",
            "upload_csv": "/api/admin/upload-csv",
            "guests": "/api/admin/guests",
            "statistics": "/api/admin/statistics",
            "rsvp_lookup": "/api/rsvp/lookup"
        }
    }

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000, reload=False)
