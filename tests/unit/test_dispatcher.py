from __future__ import annotations

import asyncio

import pytest

from media_insights_agent.common.errors import ValidationError
from media_insights_agent.domain.enums import JobType
from media_insights_agent.domain.jobs import PdfJob, ScormJob, UploadJob, UrlJob, payload_from_dict
from media_insights_agent.queue.dispatcher import JobDispatcher, JobHandlers


def _dispatcher(calls: list[tuple[str, object]]) -> JobDispatcher:
    return JobDispatcher(
        JobHandlers(
            upload=lambda job: calls.append(("upload", job)) or {"kind": "upload"},
            url=lambda job: calls.append(("url", job)) or {"kind": "url"},
            pdf=lambda job: calls.append(("pdf", job)) or {"kind": "pdf"},
            scorm=lambda job: calls.append(("scorm", job)) or {"kind": "scorm"},
        )
    )


def test_each_payload_goes_to_its_handler() -> None:
    calls: list[tuple[str, object]] = []
    d = _dispatcher(calls)

    assert d.run_sync(UploadJob(file_path="/a.mp4", original_name="a.mp4")) == {"kind": "upload"}
    assert d.run_sync(UrlJob(url="https://vimeo.com/1")) == {"kind": "url"}
    assert d.run_sync(PdfJob(file_path="/b.pdf", original_name="b.pdf")) == {"kind": "pdf"}
    assert d.run_sync(ScormJob(scorm_id="42")) == {"kind": "scorm"}
    assert [c[0] for c in calls] == ["upload", "url", "pdf", "scorm"]


def test_dispatch_runs_handler_off_loop() -> None:
    calls: list[tuple[str, object]] = []
    d = _dispatcher(calls)
    out = asyncio.run(d.dispatch(ScormJob(scorm_id="7")))
    assert out == {"kind": "scorm"}


def test_unknown_payload_is_rejected() -> None:
    d = _dispatcher([])
    with pytest.raises(AssertionError):
        d.run_sync({"type": "upload"})  # type: ignore[arg-type]


def test_payload_from_dict_builds_typed_payloads() -> None:
    up = payload_from_dict("upload", {"file_path": "/tmp/v.mp4", "original_name": "v.mp4"})
    assert up == UploadJob(file_path="/tmp/v.mp4", original_name="v.mp4")
    assert up.job_type is JobType.upload

    pdf = payload_from_dict(JobType.pdf, {"file_path": "/tmp/d.pdf", "force_vision": "true"})
    assert pdf == PdfJob(file_path="/tmp/d.pdf", original_name="/tmp/d.pdf", force_vision=True)

    scorm = payload_from_dict("scorm", {"scorm_id": 12, "course_path": "course/agro"})
    assert scorm == ScormJob(scorm_id="12", course_path="course/agro")


def test_payload_from_dict_validation() -> None:
    with pytest.raises(ValidationError) as e:
        payload_from_dict("video", {})
    assert "video" in e.value.message

    with pytest.raises(ValidationError) as e:
        payload_from_dict("url", {"url": "  "})
    assert e.value.details == {"field": "url"}
