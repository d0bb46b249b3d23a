"""
Relay Chat Backend API - Main Application
"""
import logging
import sys
import traceback
import uuid
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
import uvicorn

from .core.config import settings
from .core.exceptions import ChatServiceError
from .core.rate_limit import limiter
from .database import init_db
from .api.v1 import api_router
from .utils.time_utils import to_utc_isoformat, utc_now

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
    ]
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting Relay Chat Backend API...")

    try:
        init_db()
        logger.info(f"Database initialized ({settings.DATABASE_HOST}:{settings.DATABASE_PORT}/{settings.DATABASE_NAME})")
        logger.info(f"Debug mode: {settings.DEBUG}")
        logger.info(f"API running at http://{settings.API_HOST}:{settings.API_PORT}")
    except Exception as e:
        logger.error(f"Failed to initialize backend: {e}")
        raise

    yield  # Application runs here

    logger.info("Shutting down Relay Chat Backend API...")


# Create FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Chat backend: profiles, friendships, conversations, messages and notifications behind row-level policies",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    lifespan=lifespan,
    redirect_slashes=False
)

# Rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ChatServiceError)
async def chat_service_exception_handler(request: Request, exc: ChatServiceError):
    """Typed service failures map straight to their HTTP status."""
    logger.info(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "detail": exc.message}
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unexpected errors."""
    # Generate a unique error ID for tracking
    error_id = str(uuid.uuid4())[:8]

    # Always log the full error on the server
    logger.error(
        f"[ERROR_ID: {error_id}] Unhandled exception on {request.method} {request.url.path}",
        exc_info=True
    )

    if settings.DEBUG:
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "detail": str(exc),
                "error_id": error_id,
                "type": type(exc).__name__,
                "path": str(request.url.path),
                "traceback": traceback.format_exc()
            }
        )
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "detail": "An internal server error occurred. Please try again later.",
            "error_id": error_id
        }
    )


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "service": settings.PROJECT_NAME,
        "version": "1.0.0",
        "status": "running",
        "environment": settings.ENVIRONMENT,
        "docs_url": "/docs" if settings.DEBUG else "disabled",
        "features": [
            "Firebase Auth",
            "JWT authentication",
            "Profiles & username search",
            "Friend requests",
            "Direct messages with media",
            "Notifications",
            "Row-level authorization"
        ]
    }


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "timestamp": to_utc_isoformat(utc_now()),
        "service": "relay-chat-api",
        "version": "1.0.0",
        "services": {
            "database": {
                "host": settings.DATABASE_HOST
            },
            "firebase": {
                "project_id": settings.FIREBASE_PROJECT_ID
            }
        }
    }


app.include_router(api_router, prefix=settings.API_V1_PREFIX)

# Public URLs of uploaded media
app.mount(settings.MEDIA_BASE_URL, StaticFiles(directory=str(settings.MEDIA_ROOT), check_dir=False), name="media")


if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
