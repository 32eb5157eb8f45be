"""
Common dependencies for FastAPI routes.

Process-wide handles (database, job store, runner) are created once in the
application lifespan and kept on `app.state`; handlers receive them here.
"""

from fastapi import Header, Request

from app.core.config import get_settings
from app.core.exceptions import AppException, ForbiddenException


def _state_attr(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise AppException(f"Service not ready: {name} is not initialised")
    return value


def get_job_store(request: Request):
    return _state_attr(request, "job_store")


def get_job_runner(request: Request):
    return _state_attr(request, "job_runner")


def require_worker_key(x_worker_api_key: str = Header(default="", alias="X-WORKER-API-KEY")) -> None:
    """
    Guard for worker triggers.

    If WORKER_API_KEY is empty the trigger stays open (plain cron callers);
    otherwise the header must match.
    """
    expected = (get_settings().WORKER_API_KEY or "").strip()
    if not expected:
        return
    if (x_worker_api_key or "").strip() != expected:
        raise ForbiddenException("Worker access denied")
