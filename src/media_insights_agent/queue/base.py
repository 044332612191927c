"""
Контракт очереди задач.

Назначение:
- единый интерфейс для HTTP-слоя и фоновых job
- позволяет заменить in-memory реализацию на durable без изменения вызывающего кода
"""

from __future__ import annotations

from typing import Any, Protocol

from media_insights_agent.domain.jobs import JobPayload, JobStatusView


class JobQueue(Protocol):
    def start(self) -> None: ...

    def add_job(self, payload: JobPayload, *, job_id: str | None = None) -> str: ...

    def get_job_status(self, job_id: str) -> JobStatusView | None: ...

    def get_all_jobs_status(self) -> list[JobStatusView]: ...

    def get_queue_info(self) -> dict[str, Any]: ...

    def cleanup(self, older_than_hours: float = 24) -> int: ...

    async def wait_idle(self) -> None: ...
