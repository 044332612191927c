"""
Генерация идентификаторов.

Назначение:
- job_id для очереди
- UUID для строк сущностей в БД
"""

from __future__ import annotations

import secrets
import uuid
from datetime import UTC, datetime


def new_uuid() -> str:
    """UUIDv4 строкой."""
    return str(uuid.uuid4())


def new_event_id(prefix: str = "evt") -> str:
    """
    Идентификатор события.
    Формат: <prefix>_<UTCYYYYMMDDHHMMSS>_<rand>
    """
    ts = datetime.now(UTC).strftime("%Y%m%d%H%M%S")
    rnd = secrets.token_hex(6)
    return f"{prefix}_{ts}_{rnd}"


def new_job_id() -> str:
    return new_event_id("job")
