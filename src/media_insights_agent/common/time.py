"""
Утилиты времени.

Назначение:
- единый формат времени (ISO UTC)
- локальная дата для папок хранилища
"""

from __future__ import annotations

from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Текущее время в UTC (datetime).
    """
    return datetime.now(UTC)


def iso_or_none(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
