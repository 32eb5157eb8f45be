import asyncio
from datetime import datetime, timedelta

import pytest
from mongomock_motor import AsyncMongoMockClient

from app.core.database import Database
from app.core.exceptions import NotFoundException
from app.jobs.models import JobInput, JobResult, JobStatus, job_from_document
from app.jobs.service import JobStore


def _input(url="https://example.com"):
    return JobInput(url=url, topic="Benefits of X", keywords=["x", "y", "z"], length=800)


def _result():
    return JobResult(
        meta_title="Title",
        meta_description="Description",
        content_markdown="# Body",
        faq_raw="Q: a\nA: b",
        schema_json_string="{}",
        pages=[{"title": "Home", "url": "https://example.com"}],
    )


async def _age(collection, job_id, field, delta):
    await collection.update_one({"job_id": job_id}, {"$set": {field: datetime.utcnow() - delta}})


def test_create_then_get_is_pending(store):
    async def _run():
        job_id = await store.create_job(_input())
        job = await store.get_job(job_id)
        assert job["status"] == "pending"
        assert job["progress"] == 0
        assert job["attempts"] == 0
        assert job["result"] is None
        assert job["error"] is None
        assert job["updated_at"] >= job["created_at"]
        assert job["input"]["keywords"] == ["x", "y", "z"]
        assert "_id" not in job

    asyncio.run(_run())


def test_get_unknown_job_returns_none(store):
    assert asyncio.run(store.get_job("missing")) is None


def test_update_job_merges_status_fields_only(store):
    async def _run():
        job_id = await store.create_job(_input())
        await store.increment_job_attempt(job_id)
        before = await store.get_job(job_id)

        await store.update_job(job_id, status=JobStatus.CRAWLING, progress=10, message="Crawling")
        job = await store.get_job(job_id)
        assert job["status"] == "crawling"
        assert job["progress"] == 10
        assert job["message"] == "Crawling"
        assert job["attempts"] == 1
        assert job["input"] == before["input"]
        assert job["updated_at"] >= before["updated_at"]

        await store.update_job(job_id, progress=30)
        job = await store.get_job(job_id)
        assert job["status"] == "crawling"
        assert job["message"] == "Crawling"

    asyncio.run(_run())


def test_update_unknown_job_raises(store):
    with pytest.raises(NotFoundException):
        asyncio.run(store.update_job("missing", progress=10))


def test_complete_job_is_idempotent(store):
    async def _run():
        job_id = await store.create_job(_input())
        await store.complete_job(job_id, _result())
        first = await store.get_job(job_id)
        await store.complete_job(job_id, _result())
        second = await store.get_job(job_id)

        for job in (first, second):
            assert job["status"] == "completed"
            assert job["progress"] == 100
            assert job["error"] is None
            assert job["result"]["meta_title"] == "Title"
        assert first["result"] == second["result"]

        view = job_from_document(second)
        assert view.status == "completed"
        assert view.result.pages[0].url == "https://example.com"

    asyncio.run(_run())


def test_fail_job_clears_result(store):
    async def _run():
        job_id = await store.create_job(_input())
        await store.complete_job(job_id, _result())
        await store.fail_job(job_id, "boom")
        job = await store.get_job(job_id)
        assert job["status"] == "failed"
        assert job["error"] == "boom"
        assert job["result"] is None
        assert job_from_document(job).error == "boom"

    asyncio.run(_run())


def test_increment_attempt_counts_and_clears_previous_outcome(store):
    async def _run():
        job_id = await store.create_job(_input())
        assert await store.increment_job_attempt(job_id) == 1
        await store.fail_job(job_id, "boom")
        assert await store.increment_job_attempt(job_id) == 2
        job = await store.get_job(job_id)
        assert job["error"] is None
        assert job["result"] is None
        assert job["last_attempt_at"] is not None

    asyncio.run(_run())


def test_claim_takes_oldest_pending_and_marks_it(store, collection):
    async def _run():
        newer = await store.create_job(_input("https://b.example.com"))
        older = await store.create_job(_input("https://a.example.com"))
        await _age(collection, older, "created_at", timedelta(minutes=5))

        assert await store.get_next_pending_job() == older
        claimed = await store.get_job(older)
        assert claimed["status"] != "pending"

        assert await store.get_next_pending_job() == newer
        assert await store.get_next_pending_job() is None

    asyncio.run(_run())


def test_concurrent_claims_never_share_a_job(store):
    async def _run():
        ids = [await store.create_job(_input()) for _ in range(5)]
        claims = await asyncio.gather(*(store.get_next_pending_job() for _ in range(8)))
        claimed = [c for c in claims if c is not None]
        assert sorted(claimed) == sorted(ids)
        assert len(set(claimed)) == len(claimed)
        assert claims.count(None) == 3

    asyncio.run(_run())


def test_single_pending_job_claimed_once(store):
    async def _run():
        job_id = await store.create_job(_input())
        first, second = await asyncio.gather(store.get_next_pending_job(), store.get_next_pending_job())
        assert [first, second].count(job_id) == 1
        assert [first, second].count(None) == 1

    asyncio.run(_run())


def test_reset_stuck_jobs(store, collection):
    async def _run():
        stuck = await store.create_job(_input())
        await store.increment_job_attempt(stuck)
        await store.increment_job_attempt(stuck)
        await store.update_job(stuck, status=JobStatus.CRAWLING, progress=30)
        await _age(collection, stuck, "updated_at", timedelta(minutes=11))

        fresh = await store.create_job(_input())
        await store.update_job(fresh, status=JobStatus.GENERATING, progress=40)

        done = await store.create_job(_input())
        await store.complete_job(done, _result())
        await _age(collection, done, "updated_at", timedelta(minutes=30))

        assert await store.reset_stuck_jobs(600000) == 1

        job = await store.get_job(stuck)
        assert job["status"] == "pending"
        assert job["progress"] == 0
        assert job["attempts"] == 2
        assert (await store.get_job(fresh))["status"] == "generating"
        assert (await store.get_job(done))["status"] == "completed"

    asyncio.run(_run())


def test_cleanup_old_jobs_by_created_at(store, collection):
    async def _run():
        old = await store.create_job(_input())
        await store.complete_job(old, _result())
        await _age(collection, old, "created_at", timedelta(hours=25))

        recent = await store.create_job(_input())
        await _age(collection, recent, "created_at", timedelta(hours=23))

        assert await store.cleanup_old_jobs(86400000) == 1
        assert await store.get_job(old) is None
        assert await store.get_job(recent) is not None

    asyncio.run(_run())


def test_list_jobs_newest_first_with_filter_and_limit(store, collection):
    async def _run():
        ids = []
        for minutes in (30, 20, 10):
            job_id = await store.create_job(_input())
            await _age(collection, job_id, "created_at", timedelta(minutes=minutes))
            ids.append(job_id)
        await store.fail_job(ids[0], "boom")

        jobs = await store.list_jobs()
        assert [j["job_id"] for j in jobs] == list(reversed(ids))

        assert [j["job_id"] for j in await store.list_jobs(limit=2)] == [ids[2], ids[1]]
        assert [j["job_id"] for j in await store.list_jobs(status=JobStatus.FAILED)] == [ids[0]]

    asyncio.run(_run())


def test_reset_job_restores_retry_budget(store):
    async def _run():
        job_id = await store.create_job(_input())
        for _ in range(3):
            await store.increment_job_attempt(job_id)
        await store.fail_job(job_id, "Failed after 3 attempts")

        previous = await store.reset_job(job_id)
        assert previous["status"] == "failed"

        job = await store.get_job(job_id)
        assert job["status"] == "pending"
        assert job["attempts"] == 0
        assert job["progress"] == 0
        assert job["error"] is None

    asyncio.run(_run())


def test_reset_unknown_job_raises(store):
    with pytest.raises(NotFoundException):
        asyncio.run(store.reset_job("missing"))


def test_queue_health_counts(store, collection):
    async def _run():
        await store.create_job(_input())
        stuck = await store.create_job(_input())
        await store.update_job(stuck, status=JobStatus.CRAWLING)
        await _age(collection, stuck, "updated_at", timedelta(minutes=6))
        done = await store.create_job(_input())
        await store.complete_job(done, _result())

        health = await store.queue_health(300000)
        assert health["status"] == "warning"
        assert health["queue"]["pending_count"] == 1
        assert health["queue"]["stuck_count"] == 1
        assert health["jobs"]["stuck"][0]["job_id"] == stuck
        assert health["statistics"]["status_distribution"] == {"pending": 1, "crawling": 1, "completed": 1}

    asyncio.run(_run())


def test_store_from_database(settings):
    async def _run():
        database = await Database(settings, client=AsyncMongoMockClient()).connect()
        assert database.connected
        store = JobStore.from_database(database)
        job_id = await store.create_job(_input())
        assert (await database.get_collection("jobs").find_one({"job_id": job_id}))["status"] == "pending"

    asyncio.run(_run())
