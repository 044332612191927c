"""
Доменные перечисления (enum).

Используются во всей системе:
- типы и статусы задач очереди
- статус строк сущностей в БД
- результат стадий пайплайна обогащения
"""

from __future__ import annotations

import enum


class JobType(str, enum.Enum):
    """
    Тип задачи очереди (тег полезной нагрузки).
    """

    upload = "upload"
    url = "url"
    pdf = "pdf"
    scorm = "scorm"


class JobStatus(str, enum.Enum):
    """
    Жизненный цикл задачи: pending → processing → completed|error.
    """

    pending = "pending"
    processing = "processing"
    completed = "completed"
    error = "error"


class EntityStatus(str, enum.Enum):
    """
    Статус строки сущности (videos/pdfs/scorms).
    """

    processing = "processing"
    completed = "completed"
    error = "error"


class SourceType(str, enum.Enum):
    upload = "upload"
    url = "url"


class StageStatus(str, enum.Enum):
    """
    Результат стадии пайплайна обогащения.
    """

    ok = "ok"
    degraded = "degraded"
    skipped = "skipped"
