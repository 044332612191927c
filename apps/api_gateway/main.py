"""
API Gateway (FastAPI).

Функции:
- /health
- /metrics
- HTTP API очереди задач (/v1/jobs, /v1/uploads, /v1/queue)

Архитектурно:
- очередь, диспетчер и обработчики собираются на старте и живут в app.state
- задачи обрабатываются по одной в фоне, клиент опрашивает статус
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from apps.api_gateway.routers.jobs import router as jobs_router
from media_insights_agent.common.config import get_settings
from media_insights_agent.common.errors import AppError, ErrCode
from media_insights_agent.common.logging import get_project_logger, setup_logging
from media_insights_agent.common.metrics import setup_metrics_endpoint
from media_insights_agent.jobs import queue_cleanup_job
from media_insights_agent.queue.base import JobQueue
from media_insights_agent.queue.memory import InMemoryJobQueue
from media_insights_agent.services.context import ServiceContext
from media_insights_agent.services.handlers import build_dispatcher

log = get_project_logger()

_STATUS_BY_CODE = {
    ErrCode.VALIDATION: 422,
    ErrCode.UNAUTHORIZED: 401,
    ErrCode.NOT_FOUND: 404,
    ErrCode.CONFIGURATION: 503,
    ErrCode.SIZE_LIMIT_EXCEEDED: 413,
    ErrCode.RATE_LIMITED: 429,
}


def _parse_origins(raw: str) -> list[str]:
    origins = [o.strip() for o in (raw or "").split(",") if o.strip()]
    return origins or ["*"]


def _is_prod_env(app_env: str | None) -> bool:
    env = (app_env or "").strip().lower()
    return env in {"prod", "production"}


def _cors_params() -> tuple[list[str], bool]:
    settings = get_settings()
    allow_origins = _parse_origins(settings.cors_allowed_origins)
    allow_credentials = bool(settings.cors_allow_credentials)

    if _is_prod_env(settings.app_env) and "*" in allow_origins:
        raise RuntimeError("CORS wildcard '*' запрещён в APP_ENV=prod")

    # '*' нельзя использовать вместе с credentials=true
    if "*" in allow_origins:
        allow_credentials = False

    return allow_origins, allow_credentials


def _build_queue() -> JobQueue:
    settings = get_settings()
    ctx = ServiceContext.from_settings(settings)
    return InMemoryJobQueue(build_dispatcher(ctx), cooldown_sec=settings.queue_cooldown_ms / 1000.0)


def _create_app(job_queue: JobQueue | None = None) -> FastAPI:
    app = FastAPI(title="Media Insights Agent", version="0.1.0")
    allow_origins, allow_credentials = _cors_params()
    settings = get_settings()
    app.state.job_queue = job_queue
    app.state.cleanup_task = None

    # CORS (настраивается через ENV; в prod wildcard запрещён)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=allow_credentials,
    )

    setup_metrics_endpoint(app)

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        status_code = _STATUS_BY_CODE.get(exc.code, 500)
        log.warning(
            "http_app_error",
            extra={"payload": {"path": request.url.path, "code": exc.code, "status_code": status_code}},
        )
        return JSONResponse(
            status_code=status_code,
            content={"detail": {"code": exc.code, "message": exc.message, "details": exc.details or {}}},
        )

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {"ok": True}

    @app.on_event("startup")
    async def startup_queue() -> None:
        if app.state.job_queue is None:
            app.state.job_queue = _build_queue()
        app.state.job_queue.start()
        if settings.queue_cleanup_enabled:
            app.state.cleanup_task = asyncio.get_running_loop().create_task(
                queue_cleanup_job.run_forever(app.state.job_queue, settings),
                name="queue-cleanup",
            )
        log.info("job_queue_ready")

    @app.on_event("shutdown")
    async def shutdown_queue() -> None:
        task = app.state.cleanup_task
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    app.include_router(jobs_router, prefix="/v1")

    return app


setup_logging()

app = _create_app()
