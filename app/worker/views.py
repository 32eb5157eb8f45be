"""Worker trigger and queue health endpoints."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Header
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.core.dependencies import get_job_runner, get_job_store, require_worker_key
from app.jobs.service import JobStore
from app.worker.runner import JobRunner


router = APIRouter(prefix="/worker", tags=["Worker"])
settings = get_settings()
logger = logging.getLogger(__name__)


@router.post("/run", dependencies=[Depends(require_worker_key)])
async def run_worker(
    body: Optional[Dict[str, Any]] = Body(default=None),
    x_force_job_id: str = Header(default="", alias="X-FORCE-JOB-ID"),
    x_trigger_source: str = Header(default="", alias="X-TRIGGER-SOURCE"),
    runner: JobRunner = Depends(get_job_runner),
):
    """Process at most one job. A forced job id bypasses the pending-only claim."""
    body = body or {}
    force_job_id = (x_force_job_id or body.get("force_job_id") or "").strip() or None
    source = x_trigger_source or body.get("source") or "unknown"
    logger.info(f"Worker triggered (source={source}, forced={force_job_id or 'none'})")

    outcome = await runner.run_once(force_job_id=force_job_id)

    if outcome.status == "not_found":
        return JSONResponse(outcome.to_dict(), status_code=404)
    if not outcome.success:
        return JSONResponse(outcome.to_dict(), status_code=500)
    return outcome.to_dict()


@router.get("/health")
async def worker_health(store: JobStore = Depends(get_job_store)):
    """Pending/stuck counts and recent job summaries."""
    return await store.queue_health(settings.JOB_HEALTH_STUCK_MS)
