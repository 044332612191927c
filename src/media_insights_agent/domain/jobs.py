"""
Задачи очереди и их полезная нагрузка.

Назначение:
- tagged union UploadJob | UrlJob | PdfJob | ScormJob
- разбор тела {type, data} от HTTP-слоя
- in-memory модель задачи (Job) и её read-only проекция
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar

from media_insights_agent.common.errors import ValidationError
from media_insights_agent.common.time import iso_or_none, utc_now

from .enums import JobStatus, JobType


# =============================================================================
# ПОЛЕЗНАЯ НАГРУЗКА
# =============================================================================
@dataclass(frozen=True)
class UploadJob:
    job_type: ClassVar[JobType] = JobType.upload

    file_path: str
    original_name: str


@dataclass(frozen=True)
class UrlJob:
    job_type: ClassVar[JobType] = JobType.url

    url: str
    file_name: str | None = None


@dataclass(frozen=True)
class PdfJob:
    job_type: ClassVar[JobType] = JobType.pdf

    file_path: str
    original_name: str
    # None: берём значение по умолчанию из PDF_FORCE_VISION
    force_vision: bool | None = None


@dataclass(frozen=True)
class ScormJob:
    job_type: ClassVar[JobType] = JobType.scorm

    scorm_id: str
    scorm_name: str | None = None
    course_path: str | None = None


JobPayload = UploadJob | UrlJob | PdfJob | ScormJob


def _required_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None or not str(value).strip():
        raise ValidationError(f"Поле data.{key} обязательно", {"field": key})
    return str(value).strip()


def _optional_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _optional_bool(data: Mapping[str, Any], key: str) -> bool | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def payload_from_dict(job_type: str | JobType, data: Mapping[str, Any] | None) -> JobPayload:
    """
    Строит типизированную нагрузку из тела {type, data}.
    """
    try:
        kind = JobType(job_type)
    except ValueError as e:
        raise ValidationError(
            f"Неизвестный тип задачи: {job_type}",
            {"allowed": [t.value for t in JobType]},
        ) from e

    data = data or {}
    if kind is JobType.upload:
        return UploadJob(
            file_path=_required_str(data, "file_path"),
            original_name=_optional_str(data, "original_name") or _required_str(data, "file_path"),
        )
    if kind is JobType.url:
        return UrlJob(url=_required_str(data, "url"), file_name=_optional_str(data, "file_name"))
    if kind is JobType.pdf:
        return PdfJob(
            file_path=_required_str(data, "file_path"),
            original_name=_optional_str(data, "original_name") or _required_str(data, "file_path"),
            force_vision=_optional_bool(data, "force_vision"),
        )
    return ScormJob(
        scorm_id=_required_str(data, "scorm_id"),
        scorm_name=_optional_str(data, "scorm_name"),
        course_path=_optional_str(data, "course_path"),
    )


# =============================================================================
# ЗАДАЧА
# =============================================================================
@dataclass
class Job:
    id: str
    payload: JobPayload
    status: JobStatus = JobStatus.pending
    created_at: datetime = field(default_factory=utc_now)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    error: str | None = None
    result: dict[str, Any] | None = None

    @property
    def type(self) -> JobType:
        return self.payload.job_type

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.completed, JobStatus.error)


def summarize_result(result: dict[str, Any] | None) -> dict[str, Any] | None:
    """
    Урезанная сводка результата для статусов (без больших текстов).
    """
    if not result:
        return None
    return {
        "success": bool(result.get("success")),
        "entity_id": result.get("entity_id"),
        "message": result.get("message"),
        "degraded_stages": list(result.get("degraded_stages") or []),
    }


@dataclass(frozen=True)
class JobStatusView:
    id: str
    type: str
    status: str
    created_at: str | None
    started_at: str | None
    completed_at: str | None
    error: str | None
    has_result: bool
    result_summary: dict[str, Any] | None

    @classmethod
    def from_job(cls, job: Job) -> JobStatusView:
        return cls(
            id=job.id,
            type=job.type.value,
            status=job.status.value,
            created_at=iso_or_none(job.created_at),
            started_at=iso_or_none(job.started_at),
            completed_at=iso_or_none(job.completed_at),
            error=job.error,
            has_result=job.result is not None,
            result_summary=summarize_result(job.result),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "status": self.status,
            "created_at": self.created_at,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "error": self.error,
            "has_result": self.has_result,
            "result_summary": self.result_summary,
        }
