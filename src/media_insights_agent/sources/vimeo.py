"""
Клиент видеохостинга (Vimeo API).

Назначение:
- извлечение id видео из ссылки
- список текстовых дорожек и скачивание WebVTT
- выбор самой лёгкой ссылки на скачивание (если дорожек нет)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

import requests

from media_insights_agent.common.config import Settings, get_settings
from media_insights_agent.common.errors import ConfigurationError, ErrCode, ProviderError, ValidationError
from media_insights_agent.common.logging import get_project_logger

from .download import download_to_file

log = get_project_logger()

_VIDEO_ID_RE = re.compile(r"vimeo\.com/(?:video/)?(\d+)")


def extract_video_id(url: str) -> str:
    m = _VIDEO_ID_RE.search(url or "")
    if not m:
        raise ValidationError("Не удалось извлечь id видео из ссылки", {"url": url})
    return m.group(1)


@dataclass(frozen=True)
class VideoDownload:
    link: str
    size: int
    name: str | None = None


class VimeoClient:
    def __init__(self, *, api_base: str, token: str | None, timeout_s: int = 30) -> None:
        self.api_base = api_base.rstrip("/")
        self.token = token
        self.timeout_s = timeout_s

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> VimeoClient:
        s = settings or get_settings()
        return cls(api_base=s.vimeo_api_base, token=s.vimeo_token, timeout_s=s.vimeo_timeout_sec)

    def require_token(self) -> None:
        if not (self.token or "").strip():
            raise ConfigurationError("VIMEO_TOKEN не задан", {"field": "VIMEO_TOKEN"})

    def _get(self, path: str, *, params: dict | None = None) -> dict:
        self.require_token()
        url = f"{self.api_base}{path}"
        try:
            resp = requests.get(
                url,
                headers={"Authorization": f"Bearer {self.token}"},
                params=params,
                timeout=self.timeout_s,
            )
        except requests.RequestException as e:
            raise ProviderError(
                ErrCode.VIDEO_PROVIDER_ERROR, "Ошибка HTTP при вызове Vimeo API", {"err": str(e)}
            ) from e
        if resp.status_code >= 400:
            raise ProviderError(
                ErrCode.VIDEO_PROVIDER_ERROR,
                "Vimeo API вернул ошибку",
                {"status": resp.status_code, "text_head": resp.text[:300]},
            )
        return resp.json()

    def fetch_caption_vtt(self, video_id: str) -> str | None:
        """
        Текст первой дорожки WebVTT или None, если дорожек нет.
        """
        data = self._get(f"/videos/{video_id}/texttracks")
        tracks = data.get("data") or []
        if not tracks:
            return None
        link = tracks[0].get("link")
        if not link:
            return None
        try:
            resp = requests.get(link, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise ProviderError(ErrCode.VIDEO_PROVIDER_ERROR, "Не удалось скачать VTT", {"err": str(e)}) from e
        if resp.status_code >= 400:
            raise ProviderError(
                ErrCode.VIDEO_PROVIDER_ERROR, "Не удалось скачать VTT", {"status": resp.status_code}
            )
        resp.encoding = resp.encoding or "utf-8"
        return resp.text

    def pick_download(self, video_id: str) -> VideoDownload:
        data = self._get(f"/videos/{video_id}", params={"fields": "download,name"})
        options = [d for d in (data.get("download") or []) if d.get("link")]
        if not options:
            raise ProviderError(
                ErrCode.VIDEO_PROVIDER_ERROR,
                "Видео недоступно для скачивания",
                {"video_id": video_id},
            )
        best = min(options, key=lambda d: int(d.get("size") or 0) or 1 << 62)
        return VideoDownload(link=best["link"], size=int(best.get("size") or 0), name=data.get("name"))

    def download_video(self, video_id: str, dest: Path, *, timeout_s: int) -> tuple[Path, str | None]:
        choice = self.pick_download(video_id)
        log.info(
            "vimeo_download_started",
            extra={"payload": {"video_id": video_id, "size_bytes": choice.size}},
        )
        path = download_to_file(choice.link, dest, timeout_s=timeout_s, code=ErrCode.VIDEO_PROVIDER_ERROR)
        return path, choice.name
