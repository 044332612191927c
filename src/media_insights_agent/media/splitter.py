"""
Разбиение больших медиафайлов на аудио-части под лимит транскрибации.

Правила:
- файл <= лимита возвращается как есть ([input_path], без копии)
- иначе: probe длительности, число частей = ceil(size_mb / target_mb),
  каждая часть кодируется в mp3 и проверяется по размеру;
  при превышении перекодируется с пониженным битрейтом, затем ошибка
- без ffmpeg/ffprobe или при нечитаемой длительности: warning и [input_path]
- части лежат в <output_dir>/chunks-<base_name>/chunk-<n>.mp3,
  удаляет их вызывающий код через cleanup()
"""

from __future__ import annotations

import math
import os
from pathlib import Path

from media_insights_agent.common.config import Settings, get_settings
from media_insights_agent.common.errors import MediaToolError
from media_insights_agent.common.logging import get_project_logger

from .tools import MediaTools

log = get_project_logger()

MB = 1024 * 1024
CHUNK_DIR_PREFIX = "chunks-"


class ChunkSplitter:
    def __init__(
        self,
        tools: MediaTools,
        *,
        max_bytes: int = 25 * MB,
        target_chunk_bytes: int = 20 * MB,
        bitrate: str = "128k",
        fallback_bitrate: str = "64k",
    ) -> None:
        self.tools = tools
        self.max_bytes = int(max_bytes)
        self.target_chunk_bytes = int(target_chunk_bytes)
        self.bitrate = bitrate
        self.fallback_bitrate = fallback_bitrate

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> ChunkSplitter:
        s = settings or get_settings()
        return cls(
            MediaTools.from_settings(s),
            max_bytes=int(s.media_max_upload_mb * MB),
            target_chunk_bytes=int(s.media_target_chunk_mb * MB),
            bitrate=s.media_chunk_bitrate,
            fallback_bitrate=s.media_fallback_bitrate,
        )

    def split(self, input_path: str, output_dir: str, base_name: str) -> list[str]:
        size = os.path.getsize(input_path)
        if size <= self.max_bytes:
            return [input_path]

        if not self.tools.available:
            log.warning(
                "media_tool_unavailable",
                extra={"payload": {"path": input_path, "size_bytes": size}},
            )
            return [input_path]

        try:
            duration = self.tools.probe_duration(input_path)
        except MediaToolError as e:
            log.warning(
                "media_probe_failed",
                extra={"payload": {"path": input_path, "err": e.message, "details": e.details}},
            )
            return [input_path]
        if not duration or duration <= 0:
            log.warning("media_duration_unknown", extra={"payload": {"path": input_path}})
            return [input_path]

        size_mb = size / MB
        target_mb = self.target_chunk_bytes / MB
        estimated = max(1, math.ceil(size_mb / target_mb))
        per_chunk = duration / estimated

        chunk_dir = Path(output_dir) / f"{CHUNK_DIR_PREFIX}{base_name}"
        chunk_dir.mkdir(parents=True, exist_ok=True)
        log.info(
            "media_split_started",
            extra={
                "payload": {
                    "path": input_path,
                    "size_mb": round(size_mb, 2),
                    "duration_sec": round(duration, 2),
                    "chunks": estimated,
                }
            },
        )

        paths: list[str] = []
        try:
            for i in range(estimated):
                start = i * per_chunk
                length = per_chunk if i < estimated - 1 else max(0.0, duration - start)
                out = str(chunk_dir / f"chunk-{i + 1}.mp3")
                paths.append(out)
                self._encode_chunk(input_path, start=start, duration=length, output_path=out)
        except Exception:
            self.cleanup(paths)
            raise
        return paths

    def _encode_chunk(self, input_path: str, *, start: float, duration: float, output_path: str) -> None:
        self.tools.reencode(
            input_path, start=start, duration=duration, bitrate=self.bitrate, output_path=output_path
        )
        size = os.path.getsize(output_path)
        if size <= self.max_bytes:
            log.info(
                "chunk_encoded",
                extra={"payload": {"path": output_path, "size_bytes": size, "bitrate": self.bitrate}},
            )
            return

        log.warning(
            "chunk_too_large_reencoding",
            extra={"payload": {"path": output_path, "size_bytes": size, "bitrate": self.fallback_bitrate}},
        )
        self.tools.reencode(
            input_path,
            start=start,
            duration=duration,
            bitrate=self.fallback_bitrate,
            output_path=output_path,
        )
        size = os.path.getsize(output_path)
        if size > self.max_bytes:
            raise MediaToolError(
                f"Часть {Path(output_path).name} всё ещё больше лимита: {size / MB:.2f} MB",
                {"path": output_path, "size_bytes": size, "limit_bytes": self.max_bytes},
            )

    @staticmethod
    def cleanup(chunk_paths: list[str]) -> None:
        """
        Удаляет файлы частей и опустевшую директорию chunks-*.
        Исходные файлы (вне chunks-*) не трогаются.
        """
        dirs: set[Path] = set()
        for raw in chunk_paths:
            p = Path(raw)
            if not p.parent.name.startswith(CHUNK_DIR_PREFIX):
                continue
            dirs.add(p.parent)
            try:
                p.unlink(missing_ok=True)
            except OSError as e:
                log.warning("chunk_cleanup_failed", extra={"payload": {"path": raw, "err": str(e)}})
        for d in dirs:
            try:
                if d.exists() and not any(d.iterdir()):
                    d.rmdir()
            except OSError as e:
                log.warning("chunk_dir_cleanup_failed", extra={"payload": {"path": str(d), "err": str(e)}})
