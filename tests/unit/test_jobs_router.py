from __future__ import annotations

import threading
import time

import pytest
from fastapi.testclient import TestClient

from apps.api_gateway.main import _create_app
from media_insights_agent.common.config import get_settings
from media_insights_agent.domain.jobs import Job, JobStatusView, PdfJob, UploadJob, UrlJob
from media_insights_agent.queue.dispatcher import JobDispatcher, JobHandlers
from media_insights_agent.queue.memory import InMemoryJobQueue


class _FakeQueue:
    def __init__(self) -> None:
        self.payloads: list = []
        self.jobs: dict[str, Job] = {}
        self.cleanup_calls: list[float] = []
        self.threads: dict[str, int] = {}

    def start(self) -> None:
        self.threads["start"] = threading.get_ident()

    def add_job(self, payload, *, job_id=None) -> str:
        self.threads["add_job"] = threading.get_ident()
        job_id = job_id or f"job-{len(self.payloads) + 1}"
        self.payloads.append(payload)
        self.jobs[job_id] = Job(id=job_id, payload=payload)
        return job_id

    def get_job_status(self, job_id):
        job = self.jobs.get(job_id)
        return JobStatusView.from_job(job) if job else None

    def get_all_jobs_status(self):
        return [JobStatusView.from_job(j) for j in self.jobs.values()]

    def get_queue_info(self):
        self.threads["get_queue_info"] = threading.get_ident()
        return {
            "total": len(self.jobs),
            "pending": len(self.jobs),
            "processing": 0,
            "completed": 0,
            "error": 0,
            "current_job": None,
        }

    def cleanup(self, older_than_hours: float = 24) -> int:
        self.threads["cleanup"] = threading.get_ident()
        self.cleanup_calls.append(older_than_hours)
        return 0

    async def wait_idle(self) -> None:
        return None


@pytest.fixture()
def api_settings(tmp_path):
    s = get_settings()
    keys = ["auth_mode", "api_keys", "queue_cleanup_enabled", "storage_root", "app_env", "cors_allowed_origins"]
    snapshot = {k: getattr(s, k) for k in keys}
    s.auth_mode = "none"
    s.api_keys = ""
    s.queue_cleanup_enabled = False
    s.storage_root = str(tmp_path)
    s.app_env = "dev"
    s.cors_allowed_origins = "*"
    try:
        yield s
    finally:
        for k, v in snapshot.items():
            setattr(s, k, v)


@pytest.fixture()
def fake_queue() -> _FakeQueue:
    return _FakeQueue()


@pytest.fixture()
def client(api_settings, fake_queue):
    with TestClient(_create_app(job_queue=fake_queue)) as c:
        yield c


def test_health(client) -> None:
    assert client.get("/health").json() == {"ok": True}


def test_submit_job_returns_202_with_id(client, fake_queue) -> None:
    r = client.post("/v1/jobs", json={"type": "url", "data": {"url": "https://vimeo.com/42"}})
    assert r.status_code == 202
    body = r.json()
    assert body["job_id"] == "job-1"
    assert body["api_version"] == "v1"
    assert fake_queue.payloads == [UrlJob(url="https://vimeo.com/42")]


def test_submit_pdf_job_parses_force_vision(client, fake_queue) -> None:
    r = client.post(
        "/v1/jobs",
        json={"type": "pdf", "data": {"file_path": "/data/bula.pdf", "force_vision": "true"}},
    )
    assert r.status_code == 202
    assert fake_queue.payloads == [PdfJob(file_path="/data/bula.pdf", original_name="/data/bula.pdf", force_vision=True)]


def test_unknown_job_type_is_422(client, fake_queue) -> None:
    r = client.post("/v1/jobs", json={"type": "youtube", "data": {}})
    assert r.status_code == 422
    assert fake_queue.payloads == []


def test_missing_required_field_is_422_with_code(client) -> None:
    r = client.post("/v1/jobs", json={"type": "scorm", "data": {}})
    assert r.status_code == 422
    detail = r.json()["detail"]
    assert detail["code"] == "validation"
    assert detail["details"] == {"field": "scorm_id"}


def test_job_status_and_list(client) -> None:
    job_id = client.post("/v1/jobs", json={"type": "scorm", "data": {"scorm_id": "77"}}).json()["job_id"]

    r = client.get(f"/v1/jobs/{job_id}")
    assert r.status_code == 200
    body = r.json()
    assert body["type"] == "scorm"
    assert body["status"] == "pending"
    assert body["has_result"] is False

    jobs = client.get("/v1/jobs").json()["jobs"]
    assert [j["id"] for j in jobs] == [job_id]


def test_unknown_job_is_404(client) -> None:
    r = client.get("/v1/jobs/nope")
    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "not_found"


def test_queue_info_and_cleanup(client, fake_queue) -> None:
    info = client.get("/v1/queue").json()
    assert info["total"] == 0
    assert info["current_job"] is None

    r = client.post("/v1/queue/cleanup", params={"older_than_hours": 2})
    assert r.status_code == 200
    assert r.json()["removed"] == 0
    assert fake_queue.cleanup_calls == [2.0]

    assert client.post("/v1/queue/cleanup", params={"older_than_hours": -1}).status_code == 422


def test_upload_media_stores_file_and_enqueues(client, fake_queue, api_settings, tmp_path) -> None:
    r = client.post(
        "/v1/uploads/media",
        files={"file": ("aula.mp4", b"\0" * 1024, "video/mp4")},
    )
    assert r.status_code == 202
    (payload,) = fake_queue.payloads
    assert isinstance(payload, UploadJob)
    assert payload.original_name == "aula.mp4"
    assert payload.file_path.startswith(str(tmp_path))
    assert payload.file_path.endswith(".mp4")


def test_upload_pdf_passes_force_vision(client, fake_queue) -> None:
    r = client.post(
        "/v1/uploads/pdf",
        files={"file": ("bula.pdf", b"%PDF-1.4", "application/pdf")},
        data={"force_vision": "true"},
    )
    assert r.status_code == 202
    (payload,) = fake_queue.payloads
    assert isinstance(payload, PdfJob)
    assert payload.force_vision is True


def test_api_key_mode_rejects_anonymous(api_settings, fake_queue) -> None:
    api_settings.auth_mode = "api_key"
    api_settings.api_keys = "secret-key-1"
    with TestClient(_create_app(job_queue=fake_queue)) as c:
        r = c.get("/v1/queue")
        assert r.status_code == 401
        assert r.headers["www-authenticate"] == "Bearer"

        r = c.get("/v1/queue", headers={"X-API-Key": "secret-key-1"})
        assert r.status_code == 200


def test_real_queue_runs_submitted_job(api_settings) -> None:
    handlers = JobHandlers(
        upload=lambda job: {"success": True, "entity_id": job.original_name, "message": "ok"},
        url=lambda job: {"success": True, "entity_id": job.url, "message": "ok"},
        pdf=lambda job: {"success": True, "entity_id": job.original_name, "message": "ok"},
        scorm=lambda job: {"success": True, "entity_id": job.scorm_id, "message": "ok"},
    )
    queue = InMemoryJobQueue(JobDispatcher(handlers))
    with TestClient(_create_app(job_queue=queue)) as c:
        job_id = c.post("/v1/jobs", json={"type": "scorm", "data": {"scorm_id": "77"}}).json()["job_id"]

        deadline = time.monotonic() + 5
        body = c.get(f"/v1/jobs/{job_id}").json()
        while body["status"] != "completed" and time.monotonic() < deadline:
            time.sleep(0.02)
            body = c.get(f"/v1/jobs/{job_id}").json()

    assert body["status"] == "completed"
    assert body["result_summary"]["entity_id"] == "77"
    assert body["result_summary"]["success"] is True


def test_queue_calls_run_on_event_loop_thread(client, fake_queue) -> None:
    client.post("/v1/jobs", json={"type": "scorm", "data": {"scorm_id": "5"}})
    client.get("/v1/queue")
    client.post("/v1/queue/cleanup", params={"older_than_hours": 1})

    threads = fake_queue.threads
    assert threads["cleanup"] == threads["add_job"]
    assert threads["get_queue_info"] == threads["add_job"]
    assert threads["start"] == threads["add_job"]
