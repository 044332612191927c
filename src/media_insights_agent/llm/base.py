"""
Базовые типы для LLM.

Назначение:
- единый контракт провайдера (текст + vision)
- простой результат генерации
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass
class LLMResult:
    """
    Результат генерации LLM.
    """

    text: str
    model: str | None = None
    usage: dict[str, Any] | None = None


class LLMProvider(Protocol):
    def complete_text(
        self,
        *,
        system: str,
        user: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResult: ...

    def complete_vision(
        self,
        *,
        system: str,
        prompt: str,
        images_png_b64: list[str],
        max_tokens: int | None = None,
    ) -> LLMResult: ...
