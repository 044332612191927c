"""
HTTP роуты очереди задач.

- POST /v1/jobs              постановка задачи {type, data}
- POST /v1/uploads/{kind}    загрузка файла (media|pdf) и постановка задачи
- GET  /v1/jobs              статусы всех задач
- GET  /v1/jobs/{job_id}     статус задачи
- GET  /v1/queue             сводка очереди
- POST /v1/queue/cleanup     удаление старых завершённых задач

Авторизация: Depends(auth_dep)
Все обращения к очереди идут из потока event loop (async def), в threadpool
выносится только запись файла.
"""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from starlette.concurrency import run_in_threadpool

from apps.api_gateway.deps import auth_dep, queue_dep
from media_insights_agent.common.config import get_settings
from media_insights_agent.common.errors import ErrCode
from media_insights_agent.common.logging import get_project_logger
from media_insights_agent.contracts.http_api import (
    JobListResponse,
    JobStatusResponse,
    JobSubmitRequest,
    JobSubmitResponse,
    QueueCleanupResponse,
    QueueInfoResponse,
)
from media_insights_agent.domain.jobs import PdfJob, UploadJob, payload_from_dict
from media_insights_agent.queue.base import JobQueue
from media_insights_agent.storage.files import save_stream

log = get_project_logger()

router = APIRouter()
AUTH_DEP = Depends(auth_dep)
QUEUE_DEP = Depends(queue_dep)


@router.post("/jobs", response_model=JobSubmitResponse, status_code=status.HTTP_202_ACCEPTED)
async def submit_job(
    req: JobSubmitRequest,
    queue: JobQueue = QUEUE_DEP,
    _=AUTH_DEP,
) -> JobSubmitResponse:
    payload = payload_from_dict(req.type, req.data)
    job_id = queue.add_job(payload)
    return JobSubmitResponse(job_id=job_id)


@router.post(
    "/uploads/{kind}",
    response_model=JobSubmitResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def upload_and_submit(
    kind: Literal["media", "pdf"],
    file: UploadFile = File(...),
    force_vision: bool | None = Form(default=None),
    queue: JobQueue = QUEUE_DEP,
    _=AUTH_DEP,
) -> JobSubmitResponse:
    original_name = file.filename or ("upload.pdf" if kind == "pdf" else "upload")
    prefix = "pdf" if kind == "pdf" else "video"
    stored = await run_in_threadpool(
        save_stream,
        file.file,
        prefix=prefix,
        original_name=original_name,
        root=get_settings().storage_root,
    )
    log.info(
        "upload_stored",
        extra={"payload": {"kind": kind, "file_name": original_name, "path": str(stored)}},
    )
    if kind == "pdf":
        payload = PdfJob(file_path=str(stored), original_name=original_name, force_vision=force_vision)
    else:
        payload = UploadJob(file_path=str(stored), original_name=original_name)
    return JobSubmitResponse(job_id=queue.add_job(payload))


@router.get("/jobs", response_model=JobListResponse)
async def list_jobs(queue: JobQueue = QUEUE_DEP, _=AUTH_DEP) -> JobListResponse:
    return JobListResponse(jobs=[JobStatusResponse(**v.to_dict()) for v in queue.get_all_jobs_status()])


@router.get("/jobs/{job_id}", response_model=JobStatusResponse)
async def get_job(job_id: str, queue: JobQueue = QUEUE_DEP, _=AUTH_DEP) -> JobStatusResponse:
    view = queue.get_job_status(job_id)
    if view is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": ErrCode.NOT_FOUND, "message": "Задача не найдена"},
        )
    return JobStatusResponse(**view.to_dict())


@router.get("/queue", response_model=QueueInfoResponse)
async def queue_info(queue: JobQueue = QUEUE_DEP, _=AUTH_DEP) -> QueueInfoResponse:
    return QueueInfoResponse(**queue.get_queue_info())


@router.post("/queue/cleanup", response_model=QueueCleanupResponse)
async def queue_cleanup(
    older_than_hours: float = Query(default=24.0, ge=0),
    queue: JobQueue = QUEUE_DEP,
    _=AUTH_DEP,
) -> QueueCleanupResponse:
    return QueueCleanupResponse(removed=queue.cleanup(older_than_hours))
