"""
FastAPI application for the VoteWatch API.

Exposes statistics, recent activity, ingestion triggers, cache management
and the admin wipe over HTTP.

Responsibility: Main API application setup and configuration
"""

# Load .env BEFORE importing settings (critical for pydantic-settings)
from dotenv import load_dotenv
load_dotenv('.env')

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from votewatch.config import settings
from votewatch.context import AppContext
from votewatch.exceptions import (
    ConfigurationError,
    PoliticianNotFoundError,
    TwitterError,
    VoteWatchError,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.app.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="VoteWatch API",
    description="Roll-call votes and politicians' posts",
    version=settings.app.app_version,
    docs_url="/docs",
    redoc_url="/redoc"
)

logger.info(f"CORS Origins configured: {settings.app.cors_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.app.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    max_age=3600,  # Cache preflight for 1 hour
)


@app.on_event("startup")
async def startup_event():
    """Create the shared application context"""
    logger.info("Starting VoteWatch API...")
    logger.info(f"Environment: {settings.app.environment}")
    context = AppContext(settings)
    await context.start()
    app.state.context = context


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown"""
    logger.info("Shutting down VoteWatch API...")
    context = getattr(app.state, "context", None)
    if context is not None:
        await context.close()


@app.get("/")
async def root():
    """Root endpoint - API information."""
    return {
        "name": "VoteWatch API",
        "version": settings.app.app_version,
        "status": "operational",
        "endpoints": {
            "stats": "/api/v1/stats",
            "recent_tweets": "/api/v1/tweets/recent",
            "recent_sessions": "/api/v1/sessions/recent",
            "politician": "/api/v1/politicians/{id}",
            "logs": "/api/v1/logs",
            "ingest": "/api/v1/ingest",
            "cache": "/api/v1/cache",
            "docs": "/docs"
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "service": "votewatch-api"
    }


# MARK: Exception handlers ---------------------------------------------------

def _error_response(status_code: int, error: str, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "type": type(exc).__name__, "detail": str(exc)}
    )


@app.exception_handler(PoliticianNotFoundError)
async def not_found_handler(request: Request, exc: PoliticianNotFoundError):
    return _error_response(404, "Not found", exc)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error(f"Configuration error: {exc}")
    return _error_response(503, "Service not configured", exc)


@app.exception_handler(TwitterError)
async def twitter_error_handler(request: Request, exc: TwitterError):
    logger.error(f"Upstream API error: {exc}")
    return _error_response(502, "Upstream API error", exc)


@app.exception_handler(VoteWatchError)
async def pipeline_error_handler(request: Request, exc: VoteWatchError):
    logger.error(f"Pipeline error: {exc}")
    return _error_response(500, "Pipeline error", exc)


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return _error_response(400, "Bad request", exc)


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc) if settings.app.debug else "An unexpected error occurred"
        }
    )


# Import and include routers
from api.v1.endpoints import admin, cache, ingestion, overview

app.include_router(
    overview.router,
    prefix="/api/v1",
    tags=["overview"]
)

app.include_router(
    ingestion.router,
    prefix="/api/v1/ingest",
    tags=["ingestion"]
)

app.include_router(
    cache.router,
    prefix="/api/v1/cache",
    tags=["cache"]
)

app.include_router(
    admin.router,
    prefix="/api/v1/admin",
    tags=["admin"]
)
