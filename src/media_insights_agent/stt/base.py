"""
Базовый интерфейс STT (Speech-to-Text).

Назначение:
- единый контракт для всех провайдеров
- провайдер получает путь к файлу (часть аудио до лимита размера)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass
class STTResult:
    text: str
    confidence: float | None = None


class STTProvider(Protocol):
    def transcribe_file(self, path: str) -> STTResult: ...
