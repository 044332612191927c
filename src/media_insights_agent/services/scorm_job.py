"""
Обработчик SCORM-задач.

Поток:
1) строка scorms в статусе processing, проверка конфигурации
2) курс из content-report (нет курса -> NotFoundError)
3) видео курса: скачивание, STT, структура + Q&A; ошибка видео не роняет задачу
4) единый текст курса -> пайплайн обогащения -> completed
"""

from __future__ import annotations

from pathlib import Path

from media_insights_agent.common.errors import ErrCode
from media_insights_agent.common.ids import new_uuid
from media_insights_agent.common.logging import get_project_logger
from media_insights_agent.domain.enums import EntityStatus, JobType
from media_insights_agent.domain.jobs import ScormJob
from media_insights_agent.processing.pipeline import PipelineOptions
from media_insights_agent.processing.templates import PromptTemplates
from media_insights_agent.sources.download import download_to_file
from media_insights_agent.sources.scorm import MediaTranscript, ScormCourse, ScormVideo, build_course_text
from media_insights_agent.storage.files import storage_dir_for
from media_insights_agent.storage.models import ScormRecord

from .context import ServiceContext
from .entities import error_message, mark_entity_completed, mark_entity_error
from .media_job import transcribe_media

log = get_project_logger()


def _process_video(
    ctx: ServiceContext,
    templates: PromptTemplates,
    course: ScormCourse,
    video: ScormVideo,
    scorm_id: str,
) -> MediaTranscript:
    ext = Path(video.original_src).suffix or ".mp4"
    dest = storage_dir_for(root=ctx.settings.storage_root) / f"scorm-{scorm_id}-{video.id}{ext}"
    path = download_to_file(
        video.src,
        dest,
        timeout_s=ctx.settings.content_download_timeout_sec,
        code=ErrCode.CONTENT_PROVIDER_ERROR,
    )
    try:
        transcript = transcribe_media(ctx, path)
    finally:
        path.unlink(missing_ok=True)

    result = ctx.build_pipeline(templates).run(
        transcript,
        options=PipelineOptions(catalog=True, dictionary=True, structured=True, qa=True),
        file_name=video.title,
    )
    return MediaTranscript(
        id=video.id,
        title=video.title,
        src=video.original_src,
        lesson_page=course.lesson_page_for(video),
        transcript=result.corrected_text,
        structured_transcript=result.structured_summary,
        questions_answers=result.questions_answers,
    )


def _process_videos(
    ctx: ServiceContext, templates: PromptTemplates, course: ScormCourse, job: ScormJob
) -> tuple[list[MediaTranscript], list[dict], int]:
    course_path = job.course_path or course.path
    if not course_path:
        return [], [], 0

    errors: list[dict] = []
    try:
        videos = ctx.content_api.find_videos(course_path)
    except Exception as e:
        log.warning(
            "scorm_videos_lookup_failed",
            extra={"payload": {"scorm_id": job.scorm_id, "err": error_message(e)[:300]}},
        )
        return [], [{"video": None, "error": error_message(e)}], 0

    processed: list[MediaTranscript] = []
    for video in videos:
        try:
            processed.append(_process_video(ctx, templates, course, video, job.scorm_id))
        except Exception as e:
            log.warning(
                "scorm_video_failed",
                extra={"payload": {"scorm_id": job.scorm_id, "video": video.title, "err": error_message(e)[:300]}},
            )
            errors.append({"video": video.title, "error": error_message(e)})
    return processed, errors, len(videos)


def handle_scorm(ctx: ServiceContext, job: ScormJob) -> dict:
    entity_id = new_uuid()
    ctx.create_entity(
        ScormRecord,
        id=entity_id,
        scorm_id=job.scorm_id,
        scorm_name=job.scorm_name,
        course_path=job.course_path,
        status=EntityStatus.processing.value,
    )
    log.info(
        "scorm_job_started",
        extra={"payload": {"entity_id": entity_id, "scorm_id": job.scorm_id, "course_path": job.course_path}},
    )

    try:
        templates = ctx.prepare_templates()
        course = ctx.content_api.get_course(job.scorm_id)
        transcripts, video_errors, videos_total = _process_videos(ctx, templates, course, job)

        text = build_course_text(course, transcripts)
        result = ctx.build_pipeline(templates).run(
            text,
            options=PipelineOptions.for_job_type(JobType.scorm),
            file_name=job.scorm_name or course.title,
        )
        mark_entity_completed(
            ctx,
            ScormRecord,
            entity_id,
            {
                "course_path": job.course_path or course.path,
                "extracted_text": result.corrected_text,
                "structured_summary": result.structured_summary,
                "questions_answers": result.questions_answers,
                "degraded_stages": result.degraded_stages,
            },
        )
    except Exception as e:
        mark_entity_error(ctx, ScormRecord, entity_id, e)
        raise

    log.info(
        "scorm_job_completed",
        extra={
            "payload": {
                "entity_id": entity_id,
                "videos_total": videos_total,
                "videos_processed": len(transcripts),
                "video_errors": len(video_errors),
            }
        },
    )
    return {
        "success": True,
        "entity_id": entity_id,
        "message": "SCORM processado com sucesso",
        "scorm_id": job.scorm_id,
        "scorm_name": job.scorm_name,
        "course_path": job.course_path or course.path,
        "extracted_text": result.corrected_text,
        "structured_summary": result.structured_summary,
        "questions_answers": result.questions_answers,
        "videos": {"total": videos_total, "processed": len(transcripts), "errors": len(video_errors)},
        "video_errors": video_errors,
        "stages": result.stage_report(),
        "degraded_stages": result.degraded_stages,
    }
