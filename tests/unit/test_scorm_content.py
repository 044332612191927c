from __future__ import annotations

import pytest

from media_insights_agent.common.errors import ConfigurationError, NotFoundError
from media_insights_agent.sources.scorm import (
    ContentApiClient,
    MediaTranscript,
    ScormCourse,
    ScormVideo,
    build_course_text,
    find_course_videos,
    normalize_course_path,
)

REPORT = {
    "/course/manejo-pragas": {
        "id": "77",
        "title": "Manejo de Pragas",
        "pagesCount": 3,
        "lessons": {
            "b": {"lessonPage": 2, "lesson": "Monitoramento"},
            "a": {"lessonPage": 1, "lesson": "Introdução"},
        },
        "questions": {
            "q1": {
                "lessonPage": 2,
                "question": "Qual a frequência de monitoramento?",
                "answers": [
                    {"text": "Semanal", "correct": True},
                    {"text": "Anual", "correct": False},
                ],
            }
        },
        "medias": {
            "m1": {"id": "v1", "title": "Vídeo de abertura", "src": "videos/abertura.mp4", "lessonPage": 1},
        },
    }
}


def _course() -> ScormCourse:
    path, info = next(iter(REPORT.items()))
    return ScormCourse.from_report(info, path=path)


def test_course_text_sections_in_order() -> None:
    course = _course()
    transcript = MediaTranscript(
        id="v1",
        title="Vídeo de abertura",
        src="https://cdn.local/assets/videos/abertura.mp4",
        lesson_page=1,
        transcript="Olá a todos",
        questions_answers="P: O que é MIP?",
    )
    text = build_course_text(course, [transcript])

    assert text.startswith("Título do Curso: Manejo de Pragas")
    assert "Número de páginas: 3" in text
    assert text.index("Página 1: Introdução") < text.index("Página 2: Monitoramento")
    assert "Pergunta (Página 2): Qual a frequência de monitoramento?" in text
    assert "  - [CORRETO] Semanal" in text
    assert "  -  Anual" in text
    assert "**Vídeo (Página 1):** Vídeo de abertura" in text
    assert "  URL: videos/abertura.mp4" in text
    assert "**Transcrição:**\n  Olá a todos" in text
    assert "**Perguntas e Respostas:**\n  P: O que é MIP?" in text
    assert "Transcrição Estruturada" not in text
    assert text.index("=== LIÇÕES ===") < text.index("=== PERGUNTAS E RESPOSTAS ===") < text.index(
        "=== MÍDIAS (VÍDEOS) ==="
    )


def test_course_text_without_transcripts() -> None:
    text = build_course_text(_course())
    assert "Transcrição" not in text
    assert not text.endswith("\n")


def test_lesson_page_matching_falls_back_to_title() -> None:
    course = _course()
    by_src = ScormVideo(id="x", title="?", src="https://cdn/x", original_src="/videos/abertura.mp4")
    by_title = ScormVideo(id="x", title="VÍDEO DE ABERTURA", src="https://cdn/y", original_src="y.mp4")
    unknown = ScormVideo(id="x", title="Outro", src="z", original_src="z")
    assert course.lesson_page_for(by_src) == 1
    assert course.lesson_page_for(by_title) == 1
    assert course.lesson_page_for(unknown) is None


def test_normalize_course_path() -> None:
    assert normalize_course_path("manejo-pragas") == "/course/manejo-pragas"
    assert normalize_course_path("/course/manejo-pragas/1.intro") == "/course/manejo-pragas/1.intro"


def test_find_course_videos_resolves_relative_src() -> None:
    items = [
        {"_path": "/course/manejo-pragas/_info", "assetsPath": "https://cdn.local/assets"},
        {
            "_path": "/course/manejo-pragas/1.intro",
            "title": "Introdução",
            "body": {
                "children": [
                    {
                        "tag": "section",
                        "children": [
                            {
                                "tag": "content-video",
                                "props": {"id": "v1", "title": "Abertura", "src": "/videos/abertura.mp4"},
                            }
                        ],
                    },
                    {
                        "tag": "content-video",
                        "props": {"id": "v2", "src": "https://vimeo.com/123"},
                    },
                ]
            },
        },
        {
            "_path": "/course/outro-curso/1.intro",
            "body": {"children": [{"tag": "content-video", "props": {"id": "v9", "src": "x.mp4"}}]},
        },
    ]
    videos = find_course_videos(items, "/course/manejo-pragas")

    assert [v.id for v in videos] == ["v1", "v2"]
    assert videos[0].src == "https://cdn.local/assets/videos/abertura.mp4"
    assert videos[0].original_src == "/videos/abertura.mp4"
    assert videos[0].page_title == "Introdução"
    assert videos[1].src == "https://vimeo.com/123"
    assert videos[1].title == "Sem título"


def test_relative_src_falls_back_to_content_base() -> None:
    items = [
        {
            "_path": "/course/manejo-pragas/1.intro",
            "body": {"children": [{"tag": "content-video", "props": {"id": "v1", "src": "media/a.mp4"}}]},
        }
    ]
    (video,) = find_course_videos(items, "manejo-pragas", base_url="https://content.local")
    assert video.src == "https://content.local/media/a.mp4"


def test_content_api_requires_base_url() -> None:
    with pytest.raises(ConfigurationError):
        ContentApiClient(base_url=None).get_course("77")


class _Resp:
    status_code = 200

    def __init__(self, data) -> None:
        self._data = data

    def json(self):
        return self._data


def test_get_course_by_id(monkeypatch) -> None:
    monkeypatch.setattr("media_insights_agent.sources.scorm.requests.get", lambda *a, **k: _Resp(REPORT))
    client = ContentApiClient(base_url="https://content.local")

    course = client.get_course("77")
    assert course.title == "Manejo de Pragas"
    assert course.path == "/course/manejo-pragas"

    with pytest.raises(NotFoundError) as e:
        client.get_course("78")
    assert e.value.message == "SCORM не найден: 78"
