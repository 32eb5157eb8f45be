"""
Job runner: drives one job through crawl -> generate -> parse.

One invocation processes at most one job. The scheduler (Celery Beat or an
HTTP trigger) calls `run_once` often enough to drain the queue; all state
lives in the job store.
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

from app.core.config import Settings, get_settings
from app.core.exceptions import NotFoundException
from app.crawler.service import CrawlResult, crawl
from app.content.openai_service import ContentGenerator, build_generator
from app.content.parser import parse_sections
from app.jobs.models import CrawledPage, JobResult, JobStatus
from app.jobs.service import JobStore

logger = logging.getLogger(__name__)

CrawlFn = Callable[..., Awaitable[CrawlResult]]

ERROR_SNIPPET_CHARS = 100
STALLED_ERROR = "last attempt stalled and never finished"


def worst_case_run_ms(settings: Settings) -> int:
    """Upper bound of one invocation: seed fetch, link batches, draft plus refinement calls."""
    links = max(0, int(settings.SCRAPE_MAX_PAGES) - 1)
    batches = -(-links // max(1, int(settings.SCRAPE_CONCURRENCY)))
    crawl_ms = (1 + batches) * int(settings.SCRAPE_TIMEOUT_MS)
    llm_ms = (1 + int(settings.LLM_MAX_REFINEMENT_ROUNDS)) * int(settings.LLM_TIMEOUT_MS)
    return crawl_ms + llm_ms


def check_time_budget(settings: Settings) -> bool:
    """Warn when stage timeouts can outlast the Celery soft time limit."""
    soft_limit_ms = int(settings.CELERY_TASK_SOFT_TIME_LIMIT or 0) * 1000
    worst = worst_case_run_ms(settings)
    if soft_limit_ms and worst >= soft_limit_ms:
        logger.warning(
            f"Stage timeouts allow {worst}ms per run, above the {soft_limit_ms}ms task soft limit"
        )
        return False
    return True


@dataclass
class RunOutcome:
    """What a single invocation did. `status` is idle/completed/retrying/failed/not_found."""

    status: str
    job_id: Optional[str] = None
    forced: bool = False
    attempts: int = 0
    error: Optional[str] = None
    duration_ms: int = 0
    maintenance: Dict[str, int] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.status in ("idle", "completed")

    @property
    def will_retry(self) -> bool:
        return self.status == "retrying"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["success"] = self.success
        data["will_retry"] = self.will_retry
        return data


class JobRunner:
    def __init__(
        self,
        store: JobStore,
        generator: ContentGenerator,
        *,
        crawl_fn: CrawlFn = crawl,
        settings: Settings = None,
    ):
        self.store = store
        self.generator = generator
        self.crawl_fn = crawl_fn
        self.settings = settings or get_settings()

    @property
    def max_retries(self) -> int:
        return int(self.settings.JOB_MAX_RETRIES)

    async def maintain(self) -> Dict[str, int]:
        stuck = await self.store.reset_stuck_jobs(self.settings.JOB_STUCK_THRESHOLD_MS)
        cleaned = await self.store.cleanup_old_jobs(self.settings.JOB_RETENTION_MS)
        if stuck:
            logger.info(f"Reset {stuck} stuck job(s)")
        if cleaned:
            logger.info(f"Cleaned up {cleaned} old job(s)")
        return {"stuck_reset": stuck, "cleaned_up": cleaned}

    async def run_once(self, force_job_id: Optional[str] = None) -> RunOutcome:
        started = time.monotonic()

        def elapsed() -> int:
            return int((time.monotonic() - started) * 1000)

        maintenance = await self.maintain()

        if force_job_id:
            # Manual recovery path: bypasses the pending-only claim.
            logger.info(f"Force processing job {force_job_id}")
            job_id = force_job_id
        else:
            job_id = await self.store.get_next_pending_job()

        if not job_id:
            logger.debug("No pending jobs in queue")
            return RunOutcome(status="idle", duration_ms=elapsed(), maintenance=maintenance)

        job = await self.store.get_job(job_id)
        if job is None:
            return RunOutcome(
                status="not_found",
                job_id=job_id,
                forced=bool(force_job_id),
                error="Job not found",
                duration_ms=elapsed(),
                maintenance=maintenance,
            )

        spent = int(job.get("attempts") or 0)
        if not force_job_id and spent >= self.max_retries:
            # Requeued by stuck recovery with its budget already used up.
            final = f"Failed after {spent} attempts. Last error: {STALLED_ERROR}"
            await self.store.fail_job(job_id, final, message=final)
            logger.warning(f"Job {job_id}: retry budget exhausted ({spent}/{self.max_retries})")
            return RunOutcome(
                status="failed",
                job_id=job_id,
                attempts=spent,
                error=final,
                duration_ms=elapsed(),
                maintenance=maintenance,
            )

        attempts = await self.store.increment_job_attempt(job_id)
        logger.info(f"Job {job_id}: attempt {attempts}/{self.max_retries}")

        outcome = RunOutcome(
            status="completed",
            job_id=job_id,
            forced=bool(force_job_id),
            attempts=attempts,
            maintenance=maintenance,
        )
        try:
            await self._process(job_id, job["input"])
        except Exception as e:
            logger.exception(f"Job {job_id} failed on attempt {attempts}")
            error = str(e) or type(e).__name__
            try:
                outcome.status, outcome.error = await self._handle_failure(job_id, attempts, error)
            except NotFoundException:
                # Deleted mid-run (retention cleanup from another invocation).
                outcome.status, outcome.error = "not_found", error

        outcome.duration_ms = elapsed()
        logger.info(f"Job {job_id}: {outcome.status} in {outcome.duration_ms}ms")
        return outcome

    async def _process(self, job_id: str, job_input: Dict[str, Any]) -> None:
        url = job_input["url"]
        s = self.settings

        # Stage 1: crawl
        await self.store.update_job(
            job_id, status=JobStatus.CRAWLING, progress=10, message=f"Crawling {url}..."
        )
        crawled = await self.crawl_fn(
            url,
            s.SCRAPE_MAX_PAGES,
            s.SCRAPE_CONCURRENCY,
            s.SCRAPE_TIMEOUT_MS,
            max_words=s.SCRAPE_MAX_WORDS_PER_PAGE,
        )
        await self.store.update_job(
            job_id, status=JobStatus.CRAWLING, progress=30, message=f"Crawled {len(crawled.pages)} pages"
        )

        # Stage 2: generate
        await self.store.update_job(
            job_id, status=JobStatus.GENERATING, progress=40, message="Generating SEO content with AI..."
        )
        raw_text = await self.generator.generate(
            crawled.context,
            job_input["topic"],
            job_input["keywords"],
            job_input["length"],
            job_input.get("additional_notes"),
        )
        await self.store.update_job(
            job_id, status=JobStatus.GENERATING, progress=80, message="Content generated successfully"
        )

        # Stage 3: parse
        await self.store.update_job(
            job_id, status=JobStatus.PARSING, progress=90, message="Parsing and formatting content..."
        )
        sections = parse_sections(raw_text)

        result = JobResult(
            meta_title=sections.meta_title,
            meta_description=sections.meta_description,
            content_markdown=sections.content_markdown,
            faq_raw=sections.faq_raw,
            schema_json_string=sections.schema_json_string,
            pages=[CrawledPage(title=p.title, url=p.url) for p in crawled.pages],
        )
        await self.store.complete_job(job_id, result)

    async def _handle_failure(self, job_id: str, attempts: int, error: str):
        if attempts < self.max_retries:
            await self.store.update_job(
                job_id,
                status=JobStatus.PENDING,
                progress=0,
                message=(
                    f"Retry attempt {attempts + 1}/{self.max_retries} - "
                    f"Error: {error[:ERROR_SNIPPET_CHARS]}"
                ),
            )
            logger.info(f"Job {job_id}: queued for retry ({attempts + 1}/{self.max_retries})")
            return "retrying", error

        final = f"Failed after {attempts} attempts. Last error: {error}"
        await self.store.fail_job(job_id, final, message=final)
        logger.info(f"Job {job_id}: failed after {attempts} attempts")
        return "failed", final


def build_runner(database, settings: Settings = None) -> JobRunner:
    settings = settings or get_settings()
    return JobRunner(
        JobStore.from_database(database),
        build_generator(settings),
        settings=settings,
    )
