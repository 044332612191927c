"""
ORM-модели базы данных.

Назначение:
- строки сущностей (videos / pdfs / scorms) со статусом и артефактами
- настройки промптов, словарь терминов, каталог продуктов
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from media_insights_agent.common.time import utc_now
from media_insights_agent.domain.enums import EntityStatus


# =============================================================================
# BASE
# =============================================================================
class Base(DeclarativeBase):
    pass


class _Timestamps:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )


# =============================================================================
# СУЩНОСТИ
# =============================================================================
class VideoRecord(_Timestamps, Base):
    """
    Видео/аудио: загрузка файла или ссылка на видеохостинг.
    """

    __tablename__ = "videos"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    file_name: Mapped[str] = mapped_column(String(512), nullable=False)
    source_type: Mapped[str] = mapped_column(String(16), nullable=False)
    source_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default=EntityStatus.processing.value, nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    transcript: Mapped[str | None] = mapped_column(Text, nullable=True)
    structured_transcript: Mapped[str | None] = mapped_column(Text, nullable=True)
    questions_answers: Mapped[str | None] = mapped_column(Text, nullable=True)
    degraded_stages: Mapped[list | None] = mapped_column(JSON, nullable=True)


class PdfRecord(_Timestamps, Base):
    __tablename__ = "pdfs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    file_name: Mapped[str] = mapped_column(String(512), nullable=False)
    file_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default=EntityStatus.processing.value, nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    extracted_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    structured_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    questions_answers: Mapped[str | None] = mapped_column(Text, nullable=True)
    ely_metadata: Mapped[str | None] = mapped_column(Text, nullable=True)
    degraded_stages: Mapped[list | None] = mapped_column(JSON, nullable=True)


class ScormRecord(_Timestamps, Base):
    __tablename__ = "scorms"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    scorm_id: Mapped[str] = mapped_column(String(128), nullable=False)
    scorm_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    course_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default=EntityStatus.processing.value, nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    extracted_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    structured_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    questions_answers: Mapped[str | None] = mapped_column(Text, nullable=True)
    degraded_stages: Mapped[list | None] = mapped_column(JSON, nullable=True)


# =============================================================================
# НАСТРОЙКИ / СПРАВОЧНИКИ
# =============================================================================
class PromptSettings(Base):
    """
    Шаблоны промптов оператора (одна строка, id=1).
    """

    __tablename__ = "settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    transcript_prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    qa_prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    additional_prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )


class DictionaryTermRecord(Base):
    __tablename__ = "dictionary_terms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    term: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    replacement: Mapped[str] = mapped_column(String(255), nullable=False)


class CatalogProduct(Base):
    __tablename__ = "catalog_products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    registered_crops: Mapped[str | None] = mapped_column(Text, nullable=True)
    controlled_targets: Mapped[str | None] = mapped_column(Text, nullable=True)
    recommended_dose: Mapped[str | None] = mapped_column(Text, nullable=True)
    spray_volume: Mapped[str | None] = mapped_column(Text, nullable=True)
    product_class: Mapped[str | None] = mapped_column(Text, nullable=True)
    company: Mapped[str | None] = mapped_column(Text, nullable=True)
    country: Mapped[str | None] = mapped_column(Text, nullable=True)


# Колонки, появившиеся после первой версии схемы (добавляются на лету)
LATE_COLUMNS: dict[str, dict[str, str]] = {
    "videos": {
        "structured_transcript": "TEXT",
        "questions_answers": "TEXT",
        "error_message": "TEXT",
        "degraded_stages": "JSON",
    },
    "pdfs": {
        "extracted_text": "TEXT",
        "structured_summary": "TEXT",
        "questions_answers": "TEXT",
        "ely_metadata": "TEXT",
        "error_message": "TEXT",
        "degraded_stages": "JSON",
    },
    "scorms": {
        "extracted_text": "TEXT",
        "structured_summary": "TEXT",
        "questions_answers": "TEXT",
        "error_message": "TEXT",
        "degraded_stages": "JSON",
    },
}
