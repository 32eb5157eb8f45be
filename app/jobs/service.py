"""Job store: the jobs collection is the queue and the single source of truth."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from app.core.exceptions import NotFoundException
from app.jobs.models import ACTIVE_STATUSES, JobInput, JobResult, JobStatus


logger = logging.getLogger(__name__)

ACTIVE = [s.value for s in ACTIVE_STATUSES]
# Fields mutable through update_job; attempts/result/error have dedicated operations.
UPDATABLE_FIELDS = ("status", "progress", "message")


def _now() -> datetime:
    return datetime.utcnow()


def _strip_id(doc: Optional[dict]) -> Optional[dict]:
    if doc is not None:
        doc.pop("_id", None)
    return doc


class JobStore:
    """
    Persistence for job records.

    Reads always go to the primary collection (no caching layer), so a poll
    issued after a write observes that write.
    """

    def __init__(self, collection):
        self._collection = collection

    @classmethod
    def from_database(cls, database) -> "JobStore":
        return cls(database.get_collection("jobs"))

    async def create_job(self, job_input: JobInput) -> str:
        now = _now()
        oid = ObjectId()
        job_id = str(oid)

        doc = {
            "_id": oid,
            "job_id": job_id,
            "status": JobStatus.PENDING.value,
            "progress": 0,
            "message": "Job created, waiting to start...",
            "attempts": 0,
            "last_attempt_at": None,
            "created_at": now,
            "updated_at": now,
            "input": job_input.model_dump(),
            "result": None,
            "error": None,
        }

        await self._collection.insert_one(doc)
        logger.info(f"Created job {job_id} for {job_input.url}")
        return job_id

    async def get_job(self, job_id: str) -> Optional[dict]:
        doc = await self._collection.find_one({"job_id": job_id})
        return _strip_id(doc)

    async def update_job(
        self,
        job_id: str,
        *,
        status: Optional[JobStatus] = None,
        progress: Optional[int] = None,
        message: Optional[str] = None,
    ) -> dict:
        changes: Dict[str, Any] = {"updated_at": _now()}
        if status is not None:
            changes["status"] = JobStatus(status).value
        if progress is not None:
            changes["progress"] = max(0, min(100, int(progress)))
        if message is not None:
            changes["message"] = message

        doc = await self._collection.find_one_and_update(
            {"job_id": job_id},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise NotFoundException(f"Job {job_id} not found")
        logger.debug(f"Updated job {job_id}: {changes.get('status', 'progress')} {changes.get('progress', '')}")
        return _strip_id(doc)

    async def complete_job(self, job_id: str, result: JobResult) -> dict:
        doc = await self._collection.find_one_and_update(
            {"job_id": job_id},
            {
                "$set": {
                    "status": JobStatus.COMPLETED.value,
                    "progress": 100,
                    "message": "Content generation completed successfully",
                    "result": result.model_dump(),
                    "error": None,
                    "updated_at": _now(),
                }
            },
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise NotFoundException(f"Job {job_id} not found")
        return _strip_id(doc)

    async def fail_job(self, job_id: str, error: str, message: str = "Job failed") -> dict:
        doc = await self._collection.find_one_and_update(
            {"job_id": job_id},
            {
                "$set": {
                    "status": JobStatus.FAILED.value,
                    "progress": 0,
                    "message": message,
                    "error": error,
                    "result": None,
                    "updated_at": _now(),
                }
            },
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise NotFoundException(f"Job {job_id} not found")
        return _strip_id(doc)

    async def increment_job_attempt(self, job_id: str) -> int:
        """
        Count a processing attempt before any stage work starts.

        Result/error from an earlier terminal state are cleared so a forced
        re-run never shows an in-progress status next to a stale outcome.
        """
        now = _now()
        doc = await self._collection.find_one_and_update(
            {"job_id": job_id},
            {
                "$inc": {"attempts": 1},
                "$set": {"last_attempt_at": now, "updated_at": now, "result": None, "error": None},
            },
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise NotFoundException(f"Job {job_id} not found")
        return int(doc.get("attempts") or 0)

    async def get_next_pending_job(self) -> Optional[str]:
        """
        Claim the oldest pending job.

        Selection and the move out of `pending` are a single conditional
        update, so concurrent callers can never receive the same job.
        """
        now = _now()
        doc = await self._collection.find_one_and_update(
            {"status": JobStatus.PENDING.value},
            {
                "$set": {
                    "status": JobStatus.CRAWLING.value,
                    "message": "Claimed by worker",
                    "updated_at": now,
                }
            },
            sort=[("created_at", ASCENDING), ("_id", ASCENDING)],
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            return None
        return doc["job_id"]

    async def reset_stuck_jobs(self, stale_threshold_ms: int) -> int:
        cutoff = _now() - timedelta(milliseconds=stale_threshold_ms)
        res = await self._collection.update_many(
            {"status": {"$in": ACTIVE}, "updated_at": {"$lt": cutoff}},
            {
                "$set": {
                    "status": JobStatus.PENDING.value,
                    "progress": 0,
                    "message": "Job was stuck, re-queued for retry",
                    "updated_at": _now(),
                }
            },
        )
        return int(res.modified_count)

    async def cleanup_old_jobs(self, max_age_ms: int) -> int:
        cutoff = _now() - timedelta(milliseconds=max_age_ms)
        res = await self._collection.delete_many({"created_at": {"$lt": cutoff}})
        return int(res.deleted_count)

    async def list_jobs(self, status: Optional[JobStatus] = None, limit: int = 50) -> List[dict]:
        query: Dict[str, Any] = {}
        if status is not None:
            query["status"] = JobStatus(status).value
        cursor = self._collection.find(query).sort(
            [("created_at", DESCENDING), ("_id", DESCENDING)]
        ).limit(int(limit))
        docs = await cursor.to_list(length=int(limit))
        return [_strip_id(d) for d in docs]

    async def reset_job(self, job_id: str) -> dict:
        """Manual recovery: back to pending with a fresh retry budget."""
        doc = await self._collection.find_one_and_update(
            {"job_id": job_id},
            {
                "$set": {
                    "status": JobStatus.PENDING.value,
                    "progress": 0,
                    "attempts": 0,
                    "message": "Job reset - queued for retry",
                    "result": None,
                    "error": None,
                    "updated_at": _now(),
                }
            },
            return_document=ReturnDocument.BEFORE,
        )
        if doc is None:
            raise NotFoundException("Job not found")
        return _strip_id(doc)

    async def queue_health(self, stuck_after_ms: int, recent_limit: int = 5) -> dict:
        now = _now()
        stuck_cutoff = now - timedelta(milliseconds=stuck_after_ms)

        pending = await self._collection.find(
            {"status": JobStatus.PENDING.value}
        ).sort("created_at", ASCENDING).to_list(length=None)
        stuck = await self._collection.find(
            {"status": {"$in": ACTIVE}, "updated_at": {"$lt": stuck_cutoff}}
        ).to_list(length=None)
        recent = await self._collection.find({}).sort(
            "updated_at", DESCENDING
        ).limit(recent_limit).to_list(length=recent_limit)

        distribution = {}
        for status in JobStatus:
            count = await self._collection.count_documents({"status": status.value})
            if count:
                distribution[status.value] = count

        def minutes_since(ts: datetime) -> int:
            return int((now - ts).total_seconds() // 60)

        oldest = pending[0] if pending else None
        return {
            "status": "warning" if stuck else "healthy",
            "timestamp": now,
            "queue": {
                "pending_count": len(pending),
                "stuck_count": len(stuck),
                "oldest_pending_job": {
                    "job_id": oldest["job_id"],
                    "created_at": oldest["created_at"],
                    "age_minutes": minutes_since(oldest["created_at"]),
                    "attempts": int(oldest.get("attempts") or 0),
                } if oldest else None,
            },
            "jobs": {
                "stuck": [
                    {
                        "job_id": d["job_id"],
                        "status": d["status"],
                        "stuck_for_minutes": minutes_since(d["updated_at"]),
                        "attempts": int(d.get("attempts") or 0),
                    }
                    for d in stuck
                ],
                "recent": [
                    {
                        "job_id": d["job_id"],
                        "status": d["status"],
                        "updated_at": d["updated_at"],
                        "attempts": int(d.get("attempts") or 0),
                    }
                    for d in recent
                ],
            },
            "statistics": {
                "status_distribution": distribution,
                "last_run": recent[0]["updated_at"] if recent else None,
            },
        }
