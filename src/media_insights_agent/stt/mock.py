from __future__ import annotations

from pathlib import Path

from media_insights_agent.stt.base import STTResult


class MockSTTProvider:
    """Заглушка STT: возвращает предсказуемый текст для проверки пайплайна end-to-end."""

    def transcribe_file(self, path: str) -> STTResult:
        return STTResult(text=f"mock_transcript {Path(path).name}")
