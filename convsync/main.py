"""FastAPI application for the conversation sync service."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from convsync.config import get_settings
from convsync.database import check_db_ready
from convsync.errors import SyncError
from convsync.rate_limit import limiter
from convsync.routers import agents_router, conversations_router, health_router
from convsync.tasks.scheduler import setup_scheduler, shutdown_scheduler

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    logger.info("Starting convsync backend...")

    # Verify database is ready
    try:
        await check_db_ready()
        logger.info("Database ready")
    except Exception as e:
        logger.error(f"Database not ready: {e}")
        raise

    setup_scheduler()

    yield

    # Shutdown
    shutdown_scheduler()
    logger.info("convsync backend shut down")


# Create FastAPI app
app = FastAPI(
    title="convsync API",
    description="Local mirror of ElevenLabs Conversational AI conversations",
    version="0.1.0",
    lifespan=lifespan,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SyncError)
async def sync_error_handler(request: Request, exc: SyncError):
    """Turn classified sync errors into structured JSON."""
    if exc.http_status >= 500:
        logger.error(f"Sync error on {request.method} {request.url.path}: {exc.code} {exc.message}")
    else:
        logger.warning(f"Sync error on {request.method} {request.url.path}: {exc.code} {exc.message}")
    return JSONResponse(
        status_code=exc.http_status,
        content={"success": False, "error": exc.to_dict()},
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unhandled exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# Include routers
app.include_router(health_router)
app.include_router(agents_router, prefix=settings.api_v1_prefix)
app.include_router(conversations_router, prefix=settings.api_v1_prefix)


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "convsync API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "convsync.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
