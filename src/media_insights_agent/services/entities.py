"""
Общие шаги жизненного цикла строки сущности (videos/pdfs/scorms).
"""

from __future__ import annotations

from media_insights_agent.common.errors import AppError
from media_insights_agent.common.logging import get_project_logger
from media_insights_agent.domain.enums import EntityStatus

from .context import ServiceContext

log = get_project_logger()


def error_message(exc: BaseException) -> str:
    if isinstance(exc, AppError):
        return exc.message
    return str(exc) or type(exc).__name__


def mark_entity_error(ctx: ServiceContext, model: type, entity_id: str, exc: BaseException) -> None:
    """
    Переводит строку в error. Сбой записи логируется, исходная ошибка задачи важнее.
    """
    try:
        ctx.update_entity(
            model,
            entity_id,
            {"status": EntityStatus.error.value, "error_message": error_message(exc)[:2000]},
        )
    except Exception as db_err:
        log.error(
            "entity_error_status_failed",
            extra={
                "payload": {
                    "table": model.__tablename__,
                    "entity_id": entity_id,
                    "err": str(db_err)[:300],
                }
            },
        )


def mark_entity_completed(ctx: ServiceContext, model: type, entity_id: str, fields: dict) -> None:
    ctx.update_entity(model, entity_id, {**fields, "status": EntityStatus.completed.value, "error_message": None})
