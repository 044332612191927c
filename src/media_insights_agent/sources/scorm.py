"""
Клиент контент-API обучающих курсов (SCORM).

Назначение:
- поиск курса по id в content-report
- поиск видео курса (узлы content-video) в /api/_content/query
- сборка единого текста курса (уроки, вопросы, медиа с транскриптами)
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

import requests

from media_insights_agent.common.config import Settings, get_settings
from media_insights_agent.common.errors import ConfigurationError, ErrCode, NotFoundError, ProviderError
from media_insights_agent.common.logging import get_project_logger

log = get_project_logger()


# =============================================================================
# Модели
# =============================================================================
@dataclass(frozen=True)
class ScormVideo:
    id: str
    title: str
    src: str
    original_src: str
    page_path: str | None = None
    page_title: str | None = None


@dataclass
class MediaTranscript:
    id: str
    title: str
    src: str
    lesson_page: int | None
    transcript: str = ""
    structured_transcript: str = ""
    questions_answers: str = ""


@dataclass
class ScormCourse:
    id: str
    title: str
    pages_count: int | None
    lessons: list[dict[str, Any]] = field(default_factory=list)
    questions: list[dict[str, Any]] = field(default_factory=list)
    medias: list[dict[str, Any]] = field(default_factory=list)
    path: str | None = None

    @classmethod
    def from_report(cls, data: dict[str, Any], *, path: str | None = None) -> ScormCourse:
        return cls(
            path=path,
            id=str(data.get("id")),
            title=str(data.get("title") or ""),
            pages_count=data.get("pagesCount"),
            lessons=list((data.get("lessons") or {}).values()),
            questions=list((data.get("questions") or {}).values()),
            medias=list((data.get("medias") or {}).values()),
        )

    def lesson_page_for(self, video: ScormVideo) -> int | None:
        def _norm(src: str | None) -> str:
            return (src or "").lstrip("/")

        for media in self.medias:
            if media.get("src") in (video.original_src, video.src) or (
                media.get("src") and _norm(media.get("src")) == _norm(video.original_src)
            ):
                return media.get("lessonPage")
        for media in self.medias:
            if media.get("id") == video.id:
                return media.get("lessonPage")
        for media in self.medias:
            title = media.get("title")
            if title and title.lower() == video.title.lower():
                return media.get("lessonPage")
        return None


def _page_key(item: dict[str, Any]) -> int:
    try:
        return int(item.get("lessonPage") or 0)
    except (TypeError, ValueError):
        return 0


# =============================================================================
# Текст курса
# =============================================================================
def _find_transcript(media: dict[str, Any], transcripts: list[MediaTranscript]) -> MediaTranscript | None:
    for t in transcripts:
        if t.lesson_page != media.get("lessonPage"):
            continue
        if t.title == media.get("title") or t.id == media.get("id") or t.src == media.get("src"):
            return t
    return None


def build_course_text(course: ScormCourse, transcripts: list[MediaTranscript] | None = None) -> str:
    transcripts = transcripts or []
    lines: list[str] = [f"Título do Curso: {course.title}", "", f"Número de páginas: {course.pages_count}", ""]

    if course.lessons:
        lines += ["=== LIÇÕES ===", ""]
        for lesson in sorted(course.lessons, key=_page_key):
            lines.append(f"Página {lesson.get('lessonPage')}: {lesson.get('lesson')}")
        lines.append("")

    if course.questions:
        lines += ["=== PERGUNTAS E RESPOSTAS ===", ""]
        for q in course.questions:
            lines.append(f"Pergunta (Página {q.get('lessonPage')}): {q.get('question')}")
            for answer in q.get("answers") or []:
                marker = "[CORRETO]" if answer.get("correct") else ""
                lines.append(f"  - {marker} {answer.get('text')}")
            lines.append("")

    if course.medias:
        lines += ["=== MÍDIAS (VÍDEOS) ===", ""]
        for media in sorted(course.medias, key=_page_key):
            lines.append(f"**Vídeo (Página {media.get('lessonPage')}):** {media.get('title') or media.get('id')}")
            if media.get("src"):
                lines.append(f"  URL: {media['src']}")
            t = _find_transcript(media, transcripts)
            if t is not None:
                if t.transcript:
                    lines += [f"  **Transcrição:**\n  {t.transcript}", ""]
                if t.structured_transcript:
                    lines += [f"  **Transcrição Estruturada:**\n  {t.structured_transcript}", ""]
                if t.questions_answers:
                    lines += [f"  **Perguntas e Respostas:**\n  {t.questions_answers}", ""]
            lines.append("")

    return "\n".join(lines).strip()


# =============================================================================
# Поиск видео
# =============================================================================
def normalize_course_path(course_path: str) -> str:
    path = course_path if course_path.startswith("/") else f"/{course_path}"
    if not path.startswith("/course/"):
        path = f"/course/{path.lstrip('/')}"
    return path


def _resolve_src(src: str, assets_path: str | None) -> str:
    if not src or src.startswith(("http://", "https://")) or not assets_path:
        return src
    base = assets_path if assets_path.endswith("/") else assets_path + "/"
    return base + src.lstrip("/")


def _collect_videos(
    children: Any, *, page_path: str, page_title: str, assets_path: str | None
) -> list[ScormVideo]:
    out: list[ScormVideo] = []
    if not isinstance(children, list):
        return out
    for child in children:
        if not isinstance(child, dict):
            continue
        if child.get("tag") == "content-video":
            props = child.get("props") or {}
            src = props.get("src") or ""
            out.append(
                ScormVideo(
                    id=str(props.get("id") or uuid.uuid4()),
                    title=props.get("title") or "Sem título",
                    src=_resolve_src(src, assets_path),
                    original_src=src,
                    page_path=page_path,
                    page_title=page_title,
                )
            )
        out.extend(
            _collect_videos(
                child.get("children"), page_path=page_path, page_title=page_title, assets_path=assets_path
            )
        )
    return out


def find_course_videos(
    items: list[dict[str, Any]], course_path: str, *, base_url: str | None = None
) -> list[ScormVideo]:
    """
    Видео курса из выгрузки /api/_content/query.
    Относительные src достраиваются от _info.assetsPath курса, иначе от base_url.
    """
    normalized = normalize_course_path(course_path)
    course_dir = "/".join(normalized.split("/")[:3])
    info_path = f"{course_dir}/_info"

    info = next((i for i in items if i.get("_path") == info_path), None)
    if info is None:
        info = next((i for i in items if str(i.get("_path") or "").endswith("/_info")), None)
    assets_path = (info or {}).get("assetsPath") or base_url

    videos: list[ScormVideo] = []
    for item in items:
        path = item.get("_path")
        if not path or path.endswith("/_info") or not item.get("body"):
            continue
        if not path.startswith(course_dir):
            continue
        videos.extend(
            _collect_videos(
                (item.get("body") or {}).get("children"),
                page_path=path,
                page_title=item.get("title") or "Sem título",
                assets_path=assets_path,
            )
        )
    return videos


# =============================================================================
# HTTP-клиент
# =============================================================================
class ContentApiClient:
    def __init__(self, *, base_url: str | None, timeout_s: int = 30) -> None:
        self.base_url = (base_url or "").rstrip("/")
        self.timeout_s = timeout_s

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> ContentApiClient:
        s = settings or get_settings()
        return cls(base_url=s.content_api_base, timeout_s=s.content_api_timeout_sec)

    def _get(self, path: str) -> Any:
        if not self.base_url:
            raise ConfigurationError("CONTENT_API_BASE не задан", {"field": "CONTENT_API_BASE"})
        url = f"{self.base_url}{path}"
        try:
            resp = requests.get(url, headers={"Content-Type": "application/json"}, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise ProviderError(
                ErrCode.CONTENT_PROVIDER_ERROR,
                "Ошибка HTTP при вызове контент-API",
                {"url": url, "err": str(e)},
                retryable=True,
            ) from e
        if resp.status_code >= 400:
            raise ProviderError(
                ErrCode.CONTENT_PROVIDER_ERROR,
                "Контент-API вернул ошибку",
                {"url": url, "status": resp.status_code},
                retryable=resp.status_code >= 500,
            )
        return resp.json()

    def get_course(self, scorm_id: str) -> ScormCourse:
        report = self._get("/api/content-report") or {}
        for course_path, info in report.items():
            if isinstance(info, dict) and str(info.get("id")) == str(scorm_id):
                log.info("scorm_course_found", extra={"payload": {"scorm_id": scorm_id, "path": course_path}})
                return ScormCourse.from_report(info, path=course_path)
        raise NotFoundError(f"SCORM не найден: {scorm_id}", {"scorm_id": scorm_id})

    def find_videos(self, course_path: str) -> list[ScormVideo]:
        data = self._get("/api/_content/query")
        items = data if isinstance(data, list) else []
        videos = find_course_videos(items, course_path, base_url=self.base_url)
        log.info(
            "scorm_videos_found",
            extra={"payload": {"course_path": course_path, "items": len(items), "videos": len(videos)}},
        )
        return videos
