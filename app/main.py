"""
SEO Content Creator API - Main application entry point.

Accepts a site URL, topic and keywords, crawls the site for context and
generates SEO content (meta tags, article, FAQ, JSON-LD) through a polled
job queue.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.core.database import Database
from app.core.exceptions import AppException, InputValidationError
from app.core.middleware import NoStoreMiddleware
from app.jobs.service import JobStore
from app.jobs.validation import format_error_details
from app.jobs.views import router as jobs_router
from app.worker.runner import build_runner, check_time_budget
from app.worker.views import router as worker_router

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - build process-wide handles once."""
    # Startup
    database = Database(settings)
    await database.connect()
    app.state.database = database
    app.state.job_store = JobStore.from_database(database)
    app.state.job_runner = build_runner(database, settings)
    check_time_budget(settings)
    yield
    # Shutdown
    await database.disconnect()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
## SEO Content Creator API

Submit a website, topic and keywords; poll the job until it completes.

### Flow

- `POST /jobs` creates a pending job
- a scheduled worker (`POST /worker/run` or Celery Beat) crawls, generates and parses
- `GET /jobs/{job_id}` returns live progress and, when completed, the result
    """,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(NoStoreMiddleware)


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    body = {"error": exc.detail}
    if isinstance(exc, InputValidationError) and exc.details:
        body["details"] = exc.details
    return JSONResponse(body, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies and parameters share the 400 input-error shape."""
    return JSONResponse(
        {"error": "Invalid input", "details": format_error_details(exc.errors())},
        status_code=400,
    )


# Include routers
routers = [
    jobs_router,
    worker_router,
]

for router in routers:
    app.include_router(router)


@app.get("/", tags=["Health"])
async def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
    }


@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """Detailed health check."""
    database = getattr(request.app.state, "database", None)
    return {
        "status": "healthy",
        "database": "connected" if database is not None and database.connected else "disconnected",
        "version": settings.APP_VERSION,
    }
