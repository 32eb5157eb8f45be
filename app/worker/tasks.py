"""Celery tasks (sync wrappers around the async job runner)."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from app.core.config import get_settings
from app.core.database import Database
from app.worker.celery_app import celery_app
from app.worker.runner import build_runner, check_time_budget

logger = logging.getLogger(__name__)

check_time_budget(get_settings())


def _run_async(coro):
    """Run async function in sync Celery task."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


async def _process_once(force_job_id: Optional[str] = None) -> Dict[str, Any]:
    settings = get_settings()
    # A fresh handle per task: the event loop is per task as well.
    database = Database(settings)
    await database.connect()
    try:
        runner = build_runner(database, settings)
        outcome = await runner.run_once(force_job_id=force_job_id)
        return outcome.to_dict()
    finally:
        await database.disconnect()


@celery_app.task(name="app.worker.tasks.process_job_queue", acks_late=True)
def process_job_queue(force_job_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Process at most one job from the queue.

    Scheduled by Celery Beat; may also be sent on demand with a forced job id.
    Stage failures are recorded on the job, not raised.
    """
    logger.info(f"Job queue tick (forced={force_job_id or 'none'})")
    outcome = _run_async(_process_once(force_job_id))
    if outcome["status"] != "idle":
        logger.info(f"Job queue tick result: {outcome}")
    return outcome
