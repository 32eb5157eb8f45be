"""Core module - config, database, dependencies, exceptions."""

from app.core.config import get_settings, Settings
from app.core.database import Database
from app.core.dependencies import get_job_store, get_job_runner, require_worker_key
from app.core.exceptions import (
    AppException,
    NotFoundException,
    ForbiddenException,
    BadRequestException,
    InputValidationError,
    PipelineError,
    CrawlError,
    GenerationError,
    ParseError,
)

__all__ = [
    "get_settings",
    "Settings",
    "Database",
    "get_job_store",
    "get_job_runner",
    "require_worker_key",
    "AppException",
    "NotFoundException",
    "ForbiddenException",
    "BadRequestException",
    "InputValidationError",
    "PipelineError",
    "CrawlError",
    "GenerationError",
    "ParseError",
]
