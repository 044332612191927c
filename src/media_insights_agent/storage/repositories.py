"""
Репозитории (DAO слой).

Правила:
- Никакой бизнес-логики
- Только CRUD и запросы
- запись в таблицы сущностей переживает отсутствующую колонку:
  ALTER TABLE ... ADD COLUMN IF NOT EXISTS и один повтор
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from sqlalchemy import func, insert, select, text, update
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.orm import Session

from media_insights_agent.common.errors import ConfigurationError
from media_insights_agent.common.logging import get_project_logger
from media_insights_agent.processing.catalog import CatalogEntry
from media_insights_agent.processing.dictionary import DictionaryTerm
from media_insights_agent.processing.templates import PromptTemplates

from .models import (
    LATE_COLUMNS,
    CatalogProduct,
    DictionaryTermRecord,
    PromptSettings,
)

log = get_project_logger()

PROMPT_SETTINGS_ID = 1


def is_missing_column_error(exc: BaseException) -> bool:
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate == "42703":
        return True
    msg = str(orig if orig is not None else exc).lower()
    if "column" in msg and "does not exist" in msg:
        return True
    return "no such column" in msg or "has no column named" in msg


# =============================================================================
# ENTITY REPOSITORY (videos / pdfs / scorms)
# =============================================================================
class EntityRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _ensure_late_columns(self, table: str, columns: Iterable[str]) -> None:
        known = LATE_COLUMNS.get(table, {})
        for col in columns:
            col_type = known.get(col)
            if not col_type:
                continue
            self.session.execute(text(f"ALTER TABLE {table} ADD COLUMN IF NOT EXISTS {col} {col_type}"))
            log.warning("db_column_added", extra={"payload": {"table": table, "column": col}})

    def _execute_with_column_retry(self, model: type, build: Callable[[], Any], columns: Iterable[str]) -> None:
        columns = list(columns)
        try:
            self.session.execute(build())
            self.session.flush()
        except (ProgrammingError, OperationalError) as e:
            if not is_missing_column_error(e):
                raise
            table = model.__tablename__
            log.warning(
                "db_missing_column_retry",
                extra={"payload": {"table": table, "err": str(getattr(e, "orig", e))[:300]}},
            )
            self.session.rollback()
            self._ensure_late_columns(table, columns)
            self.session.execute(build())
            self.session.flush()

    def create(self, model: type, **fields: Any) -> None:
        self._execute_with_column_retry(model, lambda: insert(model).values(**fields), fields.keys())

    def update_fields(self, model: type, entity_id: str, fields: dict[str, Any]) -> None:
        self._execute_with_column_retry(
            model,
            lambda: update(model).where(model.id == entity_id).values(**fields),
            fields.keys(),
        )

    def get(self, model: type, entity_id: str):
        return self.session.get(model, entity_id)


# =============================================================================
# PROMPTS / DICTIONARY / CATALOG
# =============================================================================
class PromptSettingsRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self) -> PromptSettings | None:
        return self.session.get(PromptSettings, PROMPT_SETTINGS_ID)

    def load_templates(self) -> PromptTemplates:
        """
        Шаблоны промптов; отсутствие строки или пустой шаблон = ошибка конфигурации.
        """
        row = self.get()
        if row is None:
            raise ConfigurationError(
                "Настройки промптов не найдены в БД (settings id=1)",
                {"table": "settings", "id": PROMPT_SETTINGS_ID},
            )
        return PromptTemplates(
            transcript_prompt=row.transcript_prompt or "",
            qa_prompt=row.qa_prompt or "",
            additional_prompt=row.additional_prompt or "",
        ).validate()

    def upsert(self, *, transcript_prompt: str, qa_prompt: str, additional_prompt: str = "") -> None:
        row = self.get()
        if row is None:
            row = PromptSettings(id=PROMPT_SETTINGS_ID)
            self.session.add(row)
        row.transcript_prompt = transcript_prompt
        row.qa_prompt = qa_prompt
        row.additional_prompt = additional_prompt


class DictionaryRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_terms(self) -> list[DictionaryTerm]:
        rows = self.session.execute(
            select(DictionaryTermRecord.term, DictionaryTermRecord.replacement).order_by(
                func.length(DictionaryTermRecord.term).desc()
            )
        ).all()
        return [DictionaryTerm(term=r.term, replacement=r.replacement) for r in rows]

    def add(self, *, term: str, replacement: str) -> None:
        self.session.add(DictionaryTermRecord(term=term, replacement=replacement))


class CatalogRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_entries(self) -> list[CatalogEntry]:
        rows = (
            self.session.execute(
                select(CatalogProduct).where(
                    CatalogProduct.product_name != "",
                    (CatalogProduct.recommended_dose.is_not(None)) | (CatalogProduct.spray_volume.is_not(None)),
                )
            )
            .scalars()
            .all()
        )
        return [
            CatalogEntry(
                product_name=r.product_name,
                registered_crops=r.registered_crops,
                controlled_targets=r.controlled_targets,
                recommended_dose=r.recommended_dose,
                spray_volume=r.spray_volume,
                product_class=r.product_class,
                company=r.company,
                country=r.country,
            )
            for r in rows
        ]

    def add_entries(self, entries: Iterable[CatalogEntry]) -> int:
        count = 0
        for e in entries:
            if not (e.product_name or "").strip():
                continue
            self.session.add(
                CatalogProduct(
                    product_name=e.product_name.strip(),
                    registered_crops=e.registered_crops,
                    controlled_targets=e.controlled_targets,
                    recommended_dose=e.recommended_dose,
                    spray_volume=e.spray_volume,
                    product_class=e.product_class,
                    company=e.company,
                    country=e.country,
                )
            )
            count += 1
        return count
