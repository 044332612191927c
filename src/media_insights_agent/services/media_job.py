"""
Обработчики медиа-задач: загруженный файл и ссылка на видео.

Поток:
1) строка videos в статусе processing
2) проверка конфигурации (ключ провайдера, шаблоны промптов)
3) транскрипт: субтитры видеохостинга или split -> STT по частям
4) пайплайн обогащения (каталог, словарь, структура, Q&A)
5) строка videos -> completed; при любой ошибке -> error и проброс
"""

from __future__ import annotations

from pathlib import Path

from media_insights_agent.common.ids import new_uuid
from media_insights_agent.common.logging import get_project_logger
from media_insights_agent.domain.enums import EntityStatus, JobType, SourceType
from media_insights_agent.domain.jobs import UploadJob, UrlJob
from media_insights_agent.processing.pipeline import EnrichmentResult, PipelineOptions
from media_insights_agent.processing.templates import PromptTemplates
from media_insights_agent.sources.vimeo import extract_video_id
from media_insights_agent.sources.vtt import vtt_to_text
from media_insights_agent.storage.files import ensure_in_storage, storage_dir_for, unique_name
from media_insights_agent.storage.models import VideoRecord

from .context import ServiceContext
from .entities import mark_entity_completed, mark_entity_error

log = get_project_logger()


def transcribe_media(ctx: ServiceContext, path: Path) -> str:
    """
    Разбиение (при необходимости) и транскрибация по частям.
    Части удаляются и при успехе, и при ошибке.
    """
    chunks = ctx.splitter.split(str(path), str(path.parent), path.stem)
    try:
        return ctx.transcriber.transcribe(chunks)
    finally:
        ctx.splitter.cleanup([c for c in chunks if c != str(path)])


def _enrich(
    ctx: ServiceContext, templates: PromptTemplates, text: str, *, job_type: JobType, file_name: str
) -> EnrichmentResult:
    pipeline = ctx.build_pipeline(templates)
    return pipeline.run(text, options=PipelineOptions.for_job_type(job_type), file_name=file_name)


def _video_fields(result: EnrichmentResult) -> dict:
    return {
        "transcript": result.corrected_text,
        "structured_transcript": result.structured_summary,
        "questions_answers": result.questions_answers,
        "degraded_stages": result.degraded_stages,
    }


def _result(entity_id: str, file_name: str, result: EnrichmentResult, **extra) -> dict:
    return {
        "success": True,
        "entity_id": entity_id,
        "message": "Vídeo processado com sucesso",
        "file_name": file_name,
        "transcript": result.corrected_text,
        "structured_transcript": result.structured_summary,
        "questions_answers": result.questions_answers,
        "stages": result.stage_report(),
        "degraded_stages": result.degraded_stages,
        **extra,
    }


# =============================================================================
# UPLOAD
# =============================================================================
def handle_upload(ctx: ServiceContext, job: UploadJob) -> dict:
    entity_id = new_uuid()
    stored = ensure_in_storage(
        job.file_path, prefix="video", original_name=job.original_name, root=ctx.settings.storage_root
    )
    ctx.create_entity(
        VideoRecord,
        id=entity_id,
        file_name=job.original_name,
        source_type=SourceType.upload.value,
        file_path=str(stored),
        status=EntityStatus.processing.value,
    )
    log.info(
        "video_job_started",
        extra={"payload": {"entity_id": entity_id, "file_name": job.original_name, "source": "upload"}},
    )

    try:
        templates = ctx.prepare_templates()
        transcript = transcribe_media(ctx, stored)
        result = _enrich(ctx, templates, transcript, job_type=JobType.upload, file_name=job.original_name)
        mark_entity_completed(ctx, VideoRecord, entity_id, _video_fields(result))
    except Exception as e:
        mark_entity_error(ctx, VideoRecord, entity_id, e)
        raise

    log.info(
        "video_job_completed",
        extra={"payload": {"entity_id": entity_id, "degraded_stages": result.degraded_stages}},
    )
    return _result(entity_id, job.original_name, result, file_path=str(stored))


# =============================================================================
# URL
# =============================================================================
def _transcript_from_url(ctx: ServiceContext, url: str, file_name: str) -> tuple[str, str]:
    """
    (транскрипт, источник): субтитры видеохостинга, иначе скачивание + STT.
    """
    video_id = extract_video_id(url)
    ctx.vimeo.require_token()

    vtt = ctx.vimeo.fetch_caption_vtt(video_id)
    text = vtt_to_text(vtt) if vtt else ""
    if text:
        log.info("video_captions_used", extra={"payload": {"video_id": video_id, "chars": len(text)}})
        return text, "captions"

    dest = storage_dir_for(root=ctx.settings.storage_root) / unique_name("video", f"{file_name}.mp4")
    path, _name = ctx.vimeo.download_video(
        video_id, dest, timeout_s=ctx.settings.content_download_timeout_sec
    )
    return transcribe_media(ctx, path), "stt"


def handle_url(ctx: ServiceContext, job: UrlJob) -> dict:
    entity_id = new_uuid()
    file_name = job.file_name or job.url.rstrip("/").rsplit("/", 1)[-1] or "video"
    ctx.create_entity(
        VideoRecord,
        id=entity_id,
        file_name=file_name,
        source_type=SourceType.url.value,
        source_url=job.url,
        status=EntityStatus.processing.value,
    )
    log.info(
        "video_job_started",
        extra={"payload": {"entity_id": entity_id, "url": job.url, "source": "url"}},
    )

    try:
        templates = ctx.prepare_templates()
        transcript, transcript_source = _transcript_from_url(ctx, job.url, file_name)
        result = _enrich(ctx, templates, transcript, job_type=JobType.url, file_name=file_name)
        mark_entity_completed(ctx, VideoRecord, entity_id, _video_fields(result))
    except Exception as e:
        mark_entity_error(ctx, VideoRecord, entity_id, e)
        raise

    log.info(
        "video_job_completed",
        extra={
            "payload": {
                "entity_id": entity_id,
                "transcript_source": transcript_source,
                "degraded_stages": result.degraded_stages,
            }
        },
    )
    return _result(entity_id, file_name, result, source_url=job.url, transcript_source=transcript_source)
