"""
Машина состояний задачи очереди.

Назначение:
- централизованная проверка переходов pending → processing → completed|error
- терминальные статусы финальны (повторной постановки в pending нет)
"""

from __future__ import annotations

from media_insights_agent.common.errors import ValidationError
from media_insights_agent.common.time import utc_now

from .enums import JobStatus
from .jobs import Job

_ALLOWED: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.pending: frozenset({JobStatus.processing}),
    JobStatus.processing: frozenset({JobStatus.completed, JobStatus.error}),
    JobStatus.completed: frozenset(),
    JobStatus.error: frozenset(),
}


def can_transition(old: JobStatus, new: JobStatus) -> bool:
    return new in _ALLOWED.get(old, frozenset())


def assert_transition(old: JobStatus, new: JobStatus) -> None:
    if not can_transition(old, new):
        raise ValidationError(
            "Недопустимый переход статуса задачи",
            {"from": old.value, "to": new.value},
        )


# =============================================================================
# ПЕРЕХОДЫ
# =============================================================================
def mark_processing(job: Job) -> None:
    assert_transition(job.status, JobStatus.processing)
    job.status = JobStatus.processing
    job.started_at = utc_now()


def mark_completed(job: Job, result: dict | None) -> None:
    assert_transition(job.status, JobStatus.completed)
    job.status = JobStatus.completed
    job.result = result if result is not None else {}
    job.completed_at = utc_now()


def mark_error(job: Job, message: str) -> None:
    assert_transition(job.status, JobStatus.error)
    job.status = JobStatus.error
    job.error = message or "Неизвестная ошибка"
    job.completed_at = utc_now()
