import pytest
from fastapi.testclient import TestClient

from app.core.config import get_settings
from app.core.dependencies import get_job_runner, get_job_store
from app.main import app
from app.worker.runner import JobRunner


@pytest.fixture
def client(store, settings, make_output, fake_crawler, fake_generator_cls):
    runner = JobRunner(store, fake_generator_cls([make_output(800)]), crawl_fn=fake_crawler, settings=settings)
    app.dependency_overrides[get_job_store] = lambda: store
    app.dependency_overrides[get_job_runner] = lambda: runner
    yield TestClient(app)
    app.dependency_overrides.clear()


def _submit(client, **overrides):
    body = {
        "url": "https://example.com/",
        "topic": "Benefits of X",
        "keywords": "x, y, X",
        "length": 800,
    }
    body.update(overrides)
    return client.post("/jobs", json=body)


def test_create_and_poll_job(client):
    response = _submit(client)
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "pending"

    poll = client.get(f"/jobs/{data['job_id']}")
    assert poll.status_code == 200
    job = poll.json()
    assert job["status"] == "pending"
    assert job["progress"] == 0
    assert job["input"]["url"] == "https://example.com"
    assert job["input"]["keywords"] == ["x", "y"]
    assert "result" not in job
    assert "no-store" in poll.headers["cache-control"]
    assert poll.headers["cdn-cache-control"] == "no-store"


def test_invalid_submission_is_rejected(client, store):
    response = _submit(client, topic="X", length=50)
    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "Invalid input"
    assert any(d.startswith("topic") for d in data["details"])
    assert any(d.startswith("length") for d in data["details"])
    assert client.get("/jobs").json()["count"] == 0


def test_plain_http_url_is_rejected(client):
    response = _submit(client, url="http://example.com")
    assert response.status_code == 400
    assert response.json()["details"] == ["url: must be a valid https URL"]


def test_too_many_keywords(client):
    response = _submit(client, keywords=",".join(f"k{i}" for i in range(13)))
    assert response.status_code == 400
    assert response.json()["error"] == "Maximum 12 keywords allowed (got 13)"


def test_unknown_job_is_404(client):
    response = client.get("/jobs/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"error": "Job not found"}


def test_list_filter_and_reset(client):
    first = _submit(client).json()["job_id"]
    second = _submit(client, url="https://second.example.com").json()["job_id"]

    listing = client.get("/jobs").json()
    assert listing["filter"] == "all"
    assert [j["job_id"] for j in listing["jobs"]] == [second, first]

    assert client.post("/worker/run").json()["status"] == "completed"

    completed = client.get("/jobs", params={"status": "completed"}).json()
    assert completed["filter"] == "completed"
    assert completed["count"] == 1
    done_id = completed["jobs"][0]["job_id"]

    reset = client.post(f"/jobs/{done_id}/reset")
    assert reset.status_code == 200
    assert reset.json()["previous_status"] == "completed"
    job = client.get(f"/jobs/{done_id}").json()
    assert job["status"] == "pending"
    assert job["attempts"] == 0

    assert client.post("/jobs/does-not-exist/reset").status_code == 404


def test_worker_run_completes_job(client):
    job_id = _submit(client).json()["job_id"]

    run = client.post("/worker/run", headers={"X-TRIGGER-SOURCE": "test"})
    assert run.status_code == 200
    assert run.json()["job_id"] == job_id
    assert run.json()["success"] is True

    job = client.get(f"/jobs/{job_id}").json()
    assert job["status"] == "completed"
    assert job["progress"] == 100
    assert job["result"]["meta_title"] == "Benefits of X for Small Teams"
    assert "error" not in job

    idle = client.post("/worker/run").json()
    assert idle["status"] == "idle"


def test_worker_run_forced_unknown_job(client):
    response = client.post("/worker/run", json={"force_job_id": "does-not-exist"})
    assert response.status_code == 404
    assert response.json()["status"] == "not_found"


def test_worker_health(client):
    _submit(client)
    health = client.get("/worker/health").json()
    assert health["status"] == "healthy"
    assert health["queue"]["pending_count"] == 1
    assert health["statistics"]["status_distribution"] == {"pending": 1}


def test_worker_key_guard(client, monkeypatch):
    monkeypatch.setattr(get_settings(), "WORKER_API_KEY", "secret")
    assert client.post("/worker/run").status_code == 403
    assert client.post("/worker/run", headers={"X-WORKER-API-KEY": "wrong"}).status_code == 403
    assert client.post("/worker/run", headers={"X-WORKER-API-KEY": "secret"}).status_code == 200


def test_non_object_body_is_rejected(client):
    response = client.post("/jobs", json=["not", "an", "object"])
    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "Invalid input"
    assert data["details"] and data["details"][0].startswith("body")
    assert client.get("/jobs").json()["count"] == 0


def test_unparseable_json_is_rejected(client):
    response = client.post("/jobs", content=b"{bad json", headers={"Content-Type": "application/json"})
    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "Invalid input"
    assert data["details"]
