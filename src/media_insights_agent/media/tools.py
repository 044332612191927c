"""
Обёртка над ffmpeg/ffprobe.

Назначение:
- путь к бинарникам берётся из настроек (FFMPEG_PATH/FFPROBE_PATH), затем из PATH
- probe длительности и перекодирование временного отрезка в mp3
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

from media_insights_agent.common.config import Settings, get_settings
from media_insights_agent.common.errors import MediaToolError
from media_insights_agent.common.logging import get_project_logger

log = get_project_logger()


def resolve_binary(configured: str | None, name: str) -> str | None:
    """
    Явный путь из конфигурации, иначе поиск в PATH.
    """
    if configured:
        candidate = configured.strip()
        if candidate and (Path(candidate).is_file() or shutil.which(candidate)):
            return candidate
        log.warning(
            "media_tool_configured_path_missing",
            extra={"payload": {"tool": name, "path": candidate}},
        )
    return shutil.which(name)


class MediaTools:
    def __init__(
        self,
        *,
        ffmpeg_path: str | None = None,
        ffprobe_path: str | None = None,
        timeout_sec: int = 900,
    ) -> None:
        self.ffmpeg = resolve_binary(ffmpeg_path, "ffmpeg")
        self.ffprobe = resolve_binary(ffprobe_path, "ffprobe")
        self.timeout_sec = timeout_sec

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> MediaTools:
        s = settings or get_settings()
        return cls(
            ffmpeg_path=s.ffmpeg_path,
            ffprobe_path=s.ffprobe_path,
            timeout_sec=s.media_tool_timeout_sec,
        )

    @property
    def available(self) -> bool:
        return bool(self.ffmpeg and self.ffprobe)

    def _run(self, args: list[str]) -> subprocess.CompletedProcess:
        try:
            p = subprocess.run(args, capture_output=True, text=True, timeout=self.timeout_sec)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise MediaToolError("Не удалось запустить ffmpeg/ffprobe", {"err": str(e)[:300]}) from e
        if p.returncode != 0:
            raise MediaToolError(
                "ffmpeg/ffprobe завершился с ошибкой",
                {"returncode": p.returncode, "stderr": (p.stderr or p.stdout or "").strip()[-500:]},
            )
        return p

    def probe_duration(self, path: str) -> float:
        """
        Длительность медиа в секундах (0.0 если ffprobe не вернул число).
        """
        if not self.ffprobe:
            raise MediaToolError("ffprobe не найден")
        p = self._run(
            [
                self.ffprobe,
                "-v",
                "error",
                "-show_entries",
                "format=duration",
                "-of",
                "default=noprint_wrappers=1:nokey=1",
                path,
            ]
        )
        try:
            return float((p.stdout or "").strip())
        except ValueError:
            return 0.0

    def reencode(
        self,
        path: str,
        *,
        start: float,
        duration: float,
        bitrate: str,
        output_path: str,
    ) -> str:
        """
        Перекодирует отрезок [start, start+duration) в mp3 (libmp3lame).
        """
        if not self.ffmpeg:
            raise MediaToolError("ffmpeg не найден")
        self._run(
            [
                self.ffmpeg,
                "-y",
                "-ss",
                f"{start:.3f}",
                "-t",
                f"{duration:.3f}",
                "-i",
                path,
                "-vn",
                "-acodec",
                "libmp3lame",
                "-b:a",
                bitrate,
                output_path,
            ]
        )
        return output_path
