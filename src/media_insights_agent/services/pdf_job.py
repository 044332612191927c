"""
Обработчик PDF-задач: извлечение текста (слой текста или vision OCR) и обогащение.
"""

from __future__ import annotations

from media_insights_agent.common.ids import new_uuid
from media_insights_agent.common.logging import get_project_logger
from media_insights_agent.domain.enums import EntityStatus, JobType
from media_insights_agent.domain.jobs import PdfJob
from media_insights_agent.processing.pipeline import PipelineOptions
from media_insights_agent.storage.files import ensure_in_storage
from media_insights_agent.storage.models import PdfRecord

from .context import ServiceContext
from .entities import mark_entity_completed, mark_entity_error

log = get_project_logger()


def handle_pdf(ctx: ServiceContext, job: PdfJob) -> dict:
    entity_id = new_uuid()
    stored = ensure_in_storage(
        job.file_path, prefix="pdf", original_name=job.original_name, root=ctx.settings.storage_root
    )
    force_vision = ctx.settings.pdf_force_vision if job.force_vision is None else job.force_vision
    ctx.create_entity(
        PdfRecord,
        id=entity_id,
        file_name=job.original_name,
        file_path=str(stored),
        status=EntityStatus.processing.value,
    )
    log.info(
        "pdf_job_started",
        extra={"payload": {"entity_id": entity_id, "file_name": job.original_name, "force_vision": force_vision}},
    )

    try:
        templates = ctx.prepare_templates()
        text = ctx.pdf_extractor.extract(str(stored), force_vision=force_vision)
        log.info("pdf_text_extracted", extra={"payload": {"entity_id": entity_id, "chars": len(text)}})

        result = ctx.build_pipeline(templates).run(
            text,
            options=PipelineOptions.for_job_type(JobType.pdf),
            file_name=job.original_name,
        )
        ely_metadata = result.metadata.to_text() if result.metadata else None
        mark_entity_completed(
            ctx,
            PdfRecord,
            entity_id,
            {
                "extracted_text": result.corrected_text,
                "structured_summary": result.structured_summary,
                "questions_answers": result.questions_answers,
                "ely_metadata": ely_metadata,
                "degraded_stages": result.degraded_stages,
            },
        )
    except Exception as e:
        mark_entity_error(ctx, PdfRecord, entity_id, e)
        raise

    log.info(
        "pdf_job_completed",
        extra={"payload": {"entity_id": entity_id, "degraded_stages": result.degraded_stages}},
    )
    return {
        "success": True,
        "entity_id": entity_id,
        "message": "PDF processado com sucesso",
        "file_name": job.original_name,
        "extracted_text": result.corrected_text,
        "structured_summary": result.structured_summary,
        "questions_answers": result.questions_answers,
        "metadata": result.metadata.to_dict() if result.metadata else None,
        "stages": result.stage_report(),
        "degraded_stages": result.degraded_stages,
    }
