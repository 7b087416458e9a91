"""
adsync Campaign Sync API
Main FastAPI application
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.middleware.gzip import GZipMiddleware

from adsync import __version__
from adsync.config import get_settings
from adsync.errors import AdSyncError
from adsync.utils.logger import log

# Import routers
from adsync.api import campaigns, health, integrations, jobs, organizations, sync
from adsync.middleware.auth_middleware import AuthMiddleware

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    # Startup
    log.info(f"Starting {settings.app_name} v{__version__}")
    log.info(f"Environment: {settings.environment}")

    # Initialize database
    try:
        from adsync.models.base import init_db
        init_db()
        log.info("Database initialized")
    except Exception as e:
        log.error(f"Database initialization error: {str(e)}")

    # Start the scheduler for automated campaign syncs
    from adsync.scheduler import start_scheduler, stop_scheduler
    try:
        start_scheduler()
    except Exception as e:
        log.error(f"Scheduler startup error: {str(e)}")

    yield

    # Shutdown
    stop_scheduler()
    log.info("Shutting down application")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=__version__,
    description="""
    Multi-tenant recruitment advertising backend

    - Sync Meta and TikTok campaigns and daily metrics into each organization
    - Unified dashboard merging live vendor data with stored campaigns
    - Campaign wizard, job vacancies and Google Sheets job import
    - Organization memberships and invites
    """,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Bearer-token authentication middleware
app.add_middleware(AuthMiddleware)

# Gzip compression
app.add_middleware(GZipMiddleware, minimum_size=500)


# ── Error responses: {"success": false, "error": "..."} ──

@app.exception_handler(AdSyncError)
async def adsync_error_handler(request: Request, exc: AdSyncError):
    if exc.status_code >= 500:
        log.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        log.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": str(exc)})


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{field}: {first.get('msg', 'invalid value')}" if field else first.get("msg", "Invalid request")
    return JSONResponse(status_code=400, content={"success": False, "error": message})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    log.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})


# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(organizations.router)
app.include_router(integrations.router)
app.include_router(sync.router)
app.include_router(campaigns.router)
app.include_router(jobs.router)


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "app": settings.app_name,
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "adsync.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug
    )
