"""Jobs API endpoints: submit, poll, list, reset."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, status

from app.core.config import get_settings
from app.core.dependencies import get_job_store
from app.core.exceptions import NotFoundException
from app.jobs.models import (
    JobCreateResponse,
    JobListItem,
    JobListResponse,
    JobResetResponse,
    JobStatus,
    JobView,
    job_from_document,
)
from app.jobs.service import JobStore
from app.jobs.validation import validate_job_request


router = APIRouter(prefix="/jobs", tags=["Jobs"])
settings = get_settings()
logger = logging.getLogger(__name__)


def _minutes_since(ts: datetime, now: datetime) -> int:
    return max(0, int((now - ts).total_seconds() // 60))


@router.post("", response_model=JobCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_job(
    body: Dict[str, Any] = Body(...),
    store: JobStore = Depends(get_job_store),
):
    job_input = validate_job_request(body)
    job_id = await store.create_job(job_input)
    return JobCreateResponse(job_id=job_id, status=JobStatus.PENDING)


@router.get("", response_model=JobListResponse)
async def list_jobs(
    status_filter: Optional[JobStatus] = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1),
    store: JobStore = Depends(get_job_store),
):
    limit = min(limit, int(settings.JOBS_LIST_MAX_LIMIT))
    docs = await store.list_jobs(status=status_filter, limit=limit)
    now = datetime.utcnow()
    items = [
        JobListItem(
            job_id=d["job_id"],
            status=d["status"],
            progress=int(d.get("progress") or 0),
            attempts=int(d.get("attempts") or 0),
            url=d["input"]["url"],
            topic=d["input"]["topic"],
            created_at=d["created_at"],
            updated_at=d["updated_at"],
            age_minutes=_minutes_since(d["created_at"], now),
            last_update_minutes=_minutes_since(d["updated_at"], now),
        )
        for d in docs
    ]
    return JobListResponse(
        jobs=items,
        count=len(items),
        filter=status_filter.value if status_filter else "all",
    )


@router.get("/{job_id}", response_model=JobView)
async def get_job(
    job_id: str = Path(..., description="Job ID"),
    store: JobStore = Depends(get_job_store),
):
    doc = await store.get_job(job_id)
    if not doc:
        raise NotFoundException("Job not found")
    return job_from_document(doc)


@router.post("/{job_id}/reset", response_model=JobResetResponse)
async def reset_job(
    job_id: str = Path(..., description="Job ID"),
    store: JobStore = Depends(get_job_store),
):
    previous = await store.reset_job(job_id)
    logger.info(f"Reset job {job_id} (was {previous['status']})")
    return JobResetResponse(job_id=job_id, previous_status=previous["status"])
