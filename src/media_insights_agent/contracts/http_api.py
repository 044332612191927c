"""
HTTP API контракты (Pydantic-модели).

Назначение:
- валидация входа/выхода на уровне FastAPI
- стабильные структуры для клиентов
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from media_insights_agent.domain.enums import JobType

from .versions import HTTP_API_VERSION


# =============================================================================
# ЗАПРОСЫ
# =============================================================================
class JobSubmitRequest(BaseModel):
    type: JobType
    data: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# ОТВЕТЫ
# =============================================================================
class JobSubmitResponse(BaseModel):
    api_version: str = Field(default=HTTP_API_VERSION)
    job_id: str


class JobStatusResponse(BaseModel):
    api_version: str = Field(default=HTTP_API_VERSION)
    id: str
    type: str
    status: str
    created_at: str | None = None
    started_at: str | None = None
    completed_at: str | None = None
    error: str | None = None
    has_result: bool = False
    result_summary: dict[str, Any] | None = None


class JobListResponse(BaseModel):
    api_version: str = Field(default=HTTP_API_VERSION)
    jobs: list[JobStatusResponse] = Field(default_factory=list)


class CurrentJob(BaseModel):
    id: str
    type: str
    started_at: str | None = None


class QueueInfoResponse(BaseModel):
    api_version: str = Field(default=HTTP_API_VERSION)
    total: int
    pending: int
    processing: int
    completed: int
    error: int
    current_job: CurrentJob | None = None


class QueueCleanupResponse(BaseModel):
    api_version: str = Field(default=HTTP_API_VERSION)
    removed: int
