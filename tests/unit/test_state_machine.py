from __future__ import annotations

import pytest

from media_insights_agent.common.errors import ValidationError
from media_insights_agent.domain.enums import JobStatus
from media_insights_agent.domain.jobs import Job, UrlJob
from media_insights_agent.domain.state_machine import (
    can_transition,
    mark_completed,
    mark_error,
    mark_processing,
)


def _job() -> Job:
    return Job(id="job_1", payload=UrlJob(url="https://vimeo.com/1"))


def test_allowed_transitions() -> None:
    assert can_transition(JobStatus.pending, JobStatus.processing)
    assert can_transition(JobStatus.processing, JobStatus.completed)
    assert can_transition(JobStatus.processing, JobStatus.error)
    assert not can_transition(JobStatus.pending, JobStatus.completed)
    assert not can_transition(JobStatus.completed, JobStatus.pending)
    assert not can_transition(JobStatus.error, JobStatus.processing)


def test_happy_path_sets_timestamps() -> None:
    job = _job()
    mark_processing(job)
    assert job.status is JobStatus.processing
    assert job.started_at is not None
    mark_completed(job, {"success": True})
    assert job.is_terminal
    assert job.completed_at >= job.started_at
    assert job.result == {"success": True}


def test_error_keeps_message() -> None:
    job = _job()
    mark_processing(job)
    mark_error(job, "")
    assert job.status is JobStatus.error
    assert job.error == "Неизвестная ошибка"


def test_terminal_status_is_final() -> None:
    job = _job()
    mark_processing(job)
    mark_completed(job, None)
    assert job.result == {}
    with pytest.raises(ValidationError):
        mark_error(job, "late")
    with pytest.raises(ValidationError):
        mark_processing(job)
