"""
Фабрика LLM-оркестратора по настройкам (LLM_PROVIDER).
"""

from __future__ import annotations

from media_insights_agent.common.config import Settings, get_settings

from .mock import MockLLMProvider
from .openai_compat import OpenAICompatProvider
from .orchestrator import LLMOrchestrator


def build_llm(settings: Settings | None = None) -> LLMOrchestrator:
    s = settings or get_settings()
    provider_name = (s.llm_provider or "openai_compat").strip().lower()
    if provider_name == "mock":
        return LLMOrchestrator(MockLLMProvider(), settings=s)
    return LLMOrchestrator(OpenAICompatProvider.from_settings(s), settings=s)
