"""Job models: stored input/result shapes and the tagged job view."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class JobStatus(str, Enum):
    PENDING = "pending"
    CRAWLING = "crawling"
    GENERATING = "generating"
    PARSING = "parsing"
    COMPLETED = "completed"
    FAILED = "failed"


ACTIVE_STATUSES = (
    JobStatus.PENDING,
    JobStatus.CRAWLING,
    JobStatus.GENERATING,
    JobStatus.PARSING,
)
TERMINAL_STATUSES = (JobStatus.COMPLETED, JobStatus.FAILED)


class JobInput(BaseModel):
    """Normalized, validated input. Immutable once the job exists."""

    url: str
    topic: str
    keywords: List[str]
    length: int
    additional_notes: Optional[str] = None


class CrawledPage(BaseModel):
    title: str
    url: str


class JobResult(BaseModel):
    meta_title: str
    meta_description: str
    content_markdown: str
    faq_raw: str = ""
    schema_json_string: str = ""
    pages: List[CrawledPage] = Field(default_factory=list)


# =============================================================================
# Job view (one shape per lifecycle phase)
# =============================================================================


class _JobBase(BaseModel):
    job_id: str
    input: JobInput
    progress: int = Field(default=0, ge=0, le=100)
    message: str = ""
    attempts: int = 0
    created_at: datetime
    updated_at: datetime
    last_attempt_at: Optional[datetime] = None


class InProgressJob(_JobBase):
    status: Literal["pending", "crawling", "generating", "parsing"]


class CompletedJob(_JobBase):
    status: Literal["completed"]
    result: JobResult


class FailedJob(_JobBase):
    status: Literal["failed"]
    error: str


JobView = Annotated[
    Union[InProgressJob, CompletedJob, FailedJob],
    Field(discriminator="status"),
]


def job_from_document(doc: Dict[str, Any]) -> Union[InProgressJob, CompletedJob, FailedJob]:
    """Build the job view variant matching the stored status."""
    common = {
        "job_id": doc["job_id"],
        "status": doc["status"],
        "input": doc["input"],
        "progress": int(doc.get("progress") or 0),
        "message": doc.get("message") or "",
        "attempts": int(doc.get("attempts") or 0),
        "created_at": doc["created_at"],
        "updated_at": doc["updated_at"],
        "last_attempt_at": doc.get("last_attempt_at"),
    }
    status = doc["status"]
    if status == JobStatus.COMPLETED.value:
        return CompletedJob(result=doc["result"], **common)
    if status == JobStatus.FAILED.value:
        return FailedJob(error=doc.get("error") or "Unknown error", **common)
    return InProgressJob(**common)


# =============================================================================
# API payloads
# =============================================================================


class JobCreateRequest(BaseModel):
    url: str = Field(..., description="https URL of the site to write for")
    topic: str = Field(..., min_length=3, max_length=140)
    keywords: str = Field(..., min_length=1, description="Comma-separated keywords")
    length: int = Field(..., ge=300, le=3000, description="Target word count")
    additional_notes: Optional[str] = Field(default=None, max_length=1000)


class JobCreateResponse(BaseModel):
    job_id: str
    status: JobStatus
    message: str = "Job created successfully. Poll /jobs/{job_id} for status."


class JobListItem(BaseModel):
    job_id: str
    status: JobStatus
    progress: int = 0
    attempts: int = 0
    url: str
    topic: str
    created_at: datetime
    updated_at: datetime
    age_minutes: int
    last_update_minutes: int


class JobListResponse(BaseModel):
    jobs: List[JobListItem] = Field(default_factory=list)
    count: int
    filter: str


class JobResetResponse(BaseModel):
    job_id: str
    previous_status: JobStatus
    status: JobStatus = JobStatus.PENDING
    message: str = "Job reset to pending status"
