"""
Метрики Prometheus для сервиса.

Назначение:
- Экспорт /metrics
- Счётчики задач очереди и стадий пайплайна обогащения
- Используется API Gateway и обработчиками задач
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from fastapi import FastAPI, Request
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

# =============================================================================
# СЧЁТЧИКИ И МЕТРИКИ
# =============================================================================

# Общее количество HTTP-запросов
REQUESTS_TOTAL = Counter(
    "mia_requests_total",
    "Общее количество HTTP запросов",
    ["service", "route", "method", "status"],
)

HTTP_REQUEST_LATENCY_MS = Histogram(
    "mia_http_request_latency_ms",
    "Задержка HTTP запроса (мс)",
    ["service", "route", "method"],
    buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000),
)

# Задачи очереди
JOBS_TOTAL = Counter(
    "mia_jobs_total",
    "Количество задач, дошедших до терминального статуса",
    ["job_type", "status"],  # status=completed|error
)

JOB_DURATION_MS = Histogram(
    "mia_job_duration_ms",
    "Длительность обработки задачи (мс)",
    ["job_type"],
    buckets=(1000, 5000, 15000, 30000, 60000, 120000, 300000, 600000, 1800000),
)

QUEUE_DEPTH = Gauge(
    "mia_queue_jobs",
    "Количество задач в очереди по статусам",
    ["status"],
)

# Стадии пайплайна обогащения
PIPELINE_STAGE_TOTAL = Counter(
    "mia_pipeline_stage_total",
    "Результаты стадий пайплайна обогащения",
    ["stage", "status"],  # status=ok|degraded|skipped
)

PIPELINE_STAGE_LATENCY_MS = Histogram(
    "mia_pipeline_stage_latency_ms",
    "Задержка выполнения стадий пайплайна (мс)",
    ["service", "stage"],
    buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000, 60000),
)

LLM_RETRIES_TOTAL = Counter(
    "mia_llm_retries_total",
    "Количество повторов запросов к LLM",
    ["reason"],  # rate_limited|provider_error
)

STT_CHUNKS_TOTAL = Counter(
    "mia_stt_chunks_total",
    "Количество отправленных на транскрибацию частей аудио",
    ["result"],  # ok|failed
)

METRICS_COLLECTION_ERRORS_TOTAL = Counter(
    "mia_metrics_collection_errors_total",
    "Ошибки сборки служебных метрик",
    ["source"],
)


@contextmanager
def track_stage_latency(service: str, stage: str) -> Iterator[None]:
    started = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000
        PIPELINE_STAGE_LATENCY_MS.labels(service=service, stage=stage).observe(elapsed_ms)


def record_job_finished(*, job_type: str, status: str, duration_ms: float | None) -> None:
    JOBS_TOTAL.labels(job_type=job_type, status=status).inc()
    if duration_ms is not None:
        JOB_DURATION_MS.labels(job_type=job_type).observe(max(0.0, duration_ms))


def refresh_queue_metrics(info_provider: Callable[[], dict] | None) -> None:
    if info_provider is None:
        return
    try:
        info = info_provider()
        for status in ("pending", "processing", "completed", "error"):
            QUEUE_DEPTH.labels(status=status).set(int(info.get(status, 0)))
    except Exception:
        METRICS_COLLECTION_ERRORS_TOTAL.labels(source="queue_metrics").inc()


# =============================================================================
# ENDPOINT /metrics
# =============================================================================
def setup_metrics_endpoint(app: FastAPI) -> None:
    """
    Регистрирует endpoint /metrics для Prometheus.
    """

    @app.middleware("http")
    async def http_metrics(request: Request, call_next):
        route = request.url.path
        method = request.method
        started = time.perf_counter()

        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        status_code = str(response.status_code)

        REQUESTS_TOTAL.labels(
            service="api-gateway",
            route=route,
            method=method,
            status=status_code,
        ).inc()
        HTTP_REQUEST_LATENCY_MS.labels(
            service="api-gateway",
            route=route,
            method=method,
        ).observe(elapsed_ms)
        return response

    @app.get("/metrics")
    def metrics(request: Request) -> Response:
        queue = getattr(request.app.state, "job_queue", None)
        refresh_queue_metrics(queue.get_queue_info if queue is not None else None)
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
