from __future__ import annotations

import asyncio
import threading
from datetime import timedelta

from media_insights_agent.common.errors import ConfigurationError
from media_insights_agent.domain.enums import JobStatus
from media_insights_agent.domain.jobs import Job, PdfJob, ScormJob, UploadJob, UrlJob
from media_insights_agent.queue.dispatcher import JobDispatcher, JobHandlers
from media_insights_agent.queue.memory import InMemoryJobQueue


class _Recorder:
    def __init__(self) -> None:
        self.calls: list[str] = []
        self.max_processing = 0
        self.queue: InMemoryJobQueue | None = None
        self.lock = threading.Lock()

    def _observe(self, name: str) -> dict:
        with self.lock:
            self.calls.append(name)
            if self.queue is not None:
                self.max_processing = max(self.max_processing, self.queue.get_queue_info()["processing"])
        return {"success": True, "entity_id": name, "message": "ok", "degraded_stages": []}

    def handlers(self) -> JobHandlers:
        return JobHandlers(
            upload=lambda job: self._observe(job.original_name),
            url=lambda job: self._observe(job.url),
            pdf=lambda job: self._observe(job.original_name),
            scorm=lambda job: self._observe(job.scorm_id),
        )


def _queue(recorder: _Recorder, **kwargs) -> InMemoryJobQueue:
    q = InMemoryJobQueue(JobDispatcher(recorder.handlers()), **kwargs)
    recorder.queue = q
    return q


def test_jobs_run_in_fifo_order_one_at_a_time() -> None:
    rec = _Recorder()

    async def _run() -> InMemoryJobQueue:
        q = _queue(rec)
        q.add_job(UploadJob(file_path="/tmp/a.mp3", original_name="a.mp3"))
        q.add_job(UrlJob(url="https://vimeo.com/1"))
        q.add_job(PdfJob(file_path="/tmp/c.pdf", original_name="c.pdf"))
        q.add_job(ScormJob(scorm_id="s-1"))
        await q.wait_idle()
        return q

    q = asyncio.run(_run())
    assert rec.calls == ["a.mp3", "https://vimeo.com/1", "c.pdf", "s-1"]
    assert rec.max_processing == 1
    assert [v.status for v in q.get_all_jobs_status()] == ["completed"] * 4


def test_job_admitted_while_busy_stays_pending() -> None:
    started = threading.Event()
    release = threading.Event()

    def _slow_upload(job: UploadJob) -> dict:
        started.set()
        release.wait(timeout=5)
        return {"success": True, "entity_id": "e1"}

    handlers = JobHandlers(
        upload=_slow_upload,
        url=lambda job: {"success": True, "entity_id": "e2"},
        pdf=lambda job: {},
        scorm=lambda job: {},
    )

    async def _run() -> None:
        q = InMemoryJobQueue(JobDispatcher(handlers))
        first = q.add_job(UploadJob(file_path="/tmp/a.mp3", original_name="a.mp3"))
        await asyncio.to_thread(started.wait, 5)
        second = q.add_job(UrlJob(url="https://vimeo.com/2"))

        assert q.get_job_status(first).status == "processing"
        assert q.get_job_status(second).status == "pending"
        info = q.get_queue_info()
        assert info["current_job"]["id"] == first
        assert info["pending"] == 1

        release.set()
        await q.wait_idle()
        assert q.get_job_status(second).status == "completed"

    asyncio.run(_run())


def test_back_to_back_jobs_do_not_overlap() -> None:
    rec = _Recorder()

    async def _run() -> tuple[str, str, InMemoryJobQueue]:
        q = _queue(rec)
        a = q.add_job(UrlJob(url="https://vimeo.com/10"))
        b = q.add_job(UrlJob(url="https://vimeo.com/11"))
        await q.wait_idle()
        return a, b, q

    a, b, q = asyncio.run(_run())
    jobs = {j.id: j for j in q._jobs}
    assert jobs[b].started_at >= jobs[a].completed_at


def test_handler_error_marks_job_error_and_queue_continues() -> None:
    def _fail(job: PdfJob) -> dict:
        raise ConfigurationError("Шаблон qa_prompt не настроен в БД (settings)", {"field": "qa_prompt"})

    handlers = JobHandlers(
        upload=lambda job: {"success": True, "entity_id": "ok"},
        url=lambda job: {},
        pdf=_fail,
        scorm=lambda job: {},
    )

    async def _run() -> tuple[str, str, InMemoryJobQueue]:
        q = InMemoryJobQueue(JobDispatcher(handlers))
        bad = q.add_job(PdfJob(file_path="/tmp/x.pdf", original_name="x.pdf"))
        good = q.add_job(UploadJob(file_path="/tmp/a.mp3", original_name="a.mp3"))
        await q.wait_idle()
        return bad, good, q

    bad, good, q = asyncio.run(_run())
    failed = q.get_job_status(bad)
    assert failed.status == "error"
    assert "qa_prompt" in failed.error
    assert failed.has_result is False
    done = q.get_job_status(good)
    assert done.status == "completed"
    assert done.result_summary == {"success": True, "entity_id": "ok", "message": None, "degraded_stages": []}


def test_cleanup_removes_only_old_terminal_jobs() -> None:
    rec = _Recorder()

    async def _run() -> InMemoryJobQueue:
        q = _queue(rec)
        q.add_job(UploadJob(file_path="/tmp/a.mp3", original_name="a.mp3"))
        q.add_job(UploadJob(file_path="/tmp/b.mp3", original_name="b.mp3"))
        await q.wait_idle()
        return q

    q = asyncio.run(_run())
    old, recent = q._jobs
    old.completed_at = old.completed_at - timedelta(hours=30)
    # pending задачу со "старым" completed_at трогать нельзя
    stuck = Job(id="job_pending", payload=UrlJob(url="https://vimeo.com/3"))
    stuck.completed_at = old.completed_at
    q._jobs.append(stuck)

    removed = q.cleanup(24)
    assert removed == 1
    ids = [v.id for v in q.get_all_jobs_status()]
    assert ids == [recent.id, "job_pending"]
    assert q.get_job_status("job_pending").status == JobStatus.pending.value


def test_queue_info_counts_and_unknown_job() -> None:
    rec = _Recorder()

    async def _run() -> InMemoryJobQueue:
        q = _queue(rec)
        q.add_job(ScormJob(scorm_id="s-9"))
        await q.wait_idle()
        return q

    q = asyncio.run(_run())
    info = q.get_queue_info()
    assert info["total"] == 1
    assert info["completed"] == 1
    assert info["pending"] == 0
    assert info["current_job"] is None
    assert q.get_job_status("missing") is None


def test_cooldown_applies_only_between_jobs(monkeypatch) -> None:
    sleeps: list[float] = []
    real_sleep = asyncio.sleep

    async def _fake_sleep(delay: float, *args, **kwargs):
        sleeps.append(delay)
        await real_sleep(0)

    monkeypatch.setattr("media_insights_agent.queue.memory.asyncio.sleep", _fake_sleep)
    rec = _Recorder()

    async def _run() -> None:
        q = _queue(rec, cooldown_sec=1.0)
        q.add_job(UrlJob(url="https://vimeo.com/1"))
        q.add_job(UrlJob(url="https://vimeo.com/2"))
        await q.wait_idle()

    asyncio.run(_run())
    assert sleeps.count(1.0) == 1


def test_add_job_without_loop_is_accepted_and_runs_after_start() -> None:
    rec = _Recorder()
    q = _queue(rec)

    job_id = q.add_job(ScormJob(scorm_id="s-1"))
    assert q.get_job_status(job_id).status == "pending"
    assert rec.calls == []

    async def _run() -> None:
        q.start()
        await asyncio.sleep(0)
        await q.wait_idle()

    asyncio.run(_run())
    assert rec.calls == ["s-1"]
    assert q.get_job_status(job_id).status == "completed"


def test_add_job_from_other_thread_goes_through_loop() -> None:
    rec = _Recorder()

    async def _run() -> tuple[str, InMemoryJobQueue]:
        q = _queue(rec)
        q.start()
        job_id = await asyncio.to_thread(q.add_job, UrlJob(url="https://vimeo.com/7"))
        await asyncio.sleep(0)
        await q.wait_idle()
        return job_id, q

    job_id, q = asyncio.run(_run())
    assert rec.calls == ["https://vimeo.com/7"]
    assert q.get_job_status(job_id).status == "completed"


def test_metrics_failure_does_not_stop_consumer(monkeypatch) -> None:
    def _broken_metrics(**kwargs) -> None:
        raise ValueError("registry unavailable")

    monkeypatch.setattr("media_insights_agent.queue.memory.record_job_finished", _broken_metrics)
    rec = _Recorder()

    async def _run() -> InMemoryJobQueue:
        q = _queue(rec)
        q.add_job(UrlJob(url="https://vimeo.com/1"))
        q.add_job(UrlJob(url="https://vimeo.com/2"))
        await q.wait_idle()
        return q

    q = asyncio.run(_run())
    assert rec.calls == ["https://vimeo.com/1", "https://vimeo.com/2"]
    assert [v.status for v in q.get_all_jobs_status()] == ["completed", "completed"]
