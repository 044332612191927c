"""
Фабрика STT-провайдера по настройкам (STT_PROVIDER).
"""

from __future__ import annotations

from media_insights_agent.common.config import Settings, get_settings
from media_insights_agent.common.errors import ConfigurationError

from .base import STTProvider
from .mock import MockSTTProvider
from .openai_whisper import OpenAIWhisperProvider


def build_stt_provider(settings: Settings | None = None) -> STTProvider:
    s = settings or get_settings()
    provider_name = (s.stt_provider or "openai").strip().lower()
    if provider_name == "openai":
        return OpenAIWhisperProvider.from_settings(s)
    if provider_name == "mock":
        return MockSTTProvider()
    if provider_name == "whisper_local":
        # faster-whisper ставится опционально (extra "local-stt")
        from .whisper_local import WhisperLocalProvider

        return WhisperLocalProvider()
    raise ConfigurationError(
        f"Неизвестный STT_PROVIDER={provider_name}",
        {"allowed": ["openai", "whisper_local", "mock"]},
    )
