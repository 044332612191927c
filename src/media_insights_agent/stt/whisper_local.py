"""
Локальный STT на базе faster-whisper.

Что делает:
- принимает путь к аудиофайлу (декодирование делает сам faster-whisper через ffmpeg)
- запускает Whisper модель локально
- возвращает склеенный текст сегментов
"""

from __future__ import annotations

from faster_whisper import WhisperModel

from media_insights_agent.common.config import get_settings

from .base import STTResult


class WhisperLocalProvider:
    def __init__(
        self,
        model_size: str | None = None,
        device: str | None = None,
        compute_type: str | None = None,
        language: str | None = None,
        vad_filter: bool | None = None,
        beam_size: int | None = None,
    ) -> None:
        s = get_settings()

        # берём параметры из аргументов, иначе из настроек
        self.model = WhisperModel(
            model_size or s.whisper_model_size,
            device=device or s.whisper_device,
            compute_type=compute_type or s.whisper_compute_type,
        )
        self.language = language or s.stt_language
        self.vad_filter = s.whisper_vad_filter if vad_filter is None else vad_filter
        self.beam_size = beam_size or s.whisper_beam_size

    def transcribe_file(self, path: str) -> STTResult:
        segments, _info = self.model.transcribe(
            path,
            language=self.language,
            vad_filter=self.vad_filter,
            beam_size=self.beam_size,
        )
        text_parts = [seg.text.strip() for seg in segments if seg.text]
        return STTResult(text=" ".join(t for t in text_parts if t).strip())
