"""
Mock LLM для тестов и dev.

Назначение:
- быстро гонять пайплайн без реальных вызовов LLM
- предсказуемый результат
"""

from __future__ import annotations

import json

from .base import LLMResult


class MockLLMProvider:
    def complete_text(
        self,
        *,
        system: str,
        user: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResult:
        if "JSON" in system or "JSON" in user:
            payload = {
                "title": "mock_title",
                "doc_type": "agronomy_best_practices",
                "specificity": "country_specific",
                "abstract": "mock_abstract",
            }
            return LLMResult(text=json.dumps(payload, ensure_ascii=False), model="mock")
        return LLMResult(text="mock_text", model="mock", usage={"mock": True})

    def complete_vision(
        self,
        *,
        system: str,
        prompt: str,
        images_png_b64: list[str],
        max_tokens: int | None = None,
    ) -> LLMResult:
        return LLMResult(text=f"mock_ocr pages={len(images_png_b64)}", model="mock")
