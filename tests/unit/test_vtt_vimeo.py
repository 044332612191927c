from __future__ import annotations

import pytest

from media_insights_agent.common.errors import ConfigurationError, ProviderError, ValidationError
from media_insights_agent.sources.vimeo import VimeoClient, extract_video_id
from media_insights_agent.sources.vtt import vtt_to_text

VTT = """WEBVTT

1
00:00:01.000 --> 00:00:03.000
Bem-vindos ao curso. Hoje falamos de pragas

2
00:00:03.500 --> 00:00:06.000
e de manejo integrado. bem-vindos ao curso.

NOTE comentário interno
"""


def test_vtt_to_text_strips_cues_and_dedupes_sentences() -> None:
    assert vtt_to_text(VTT) == "Bem-vindos ao curso.\nHoje falamos de pragas e de manejo integrado."


def test_vtt_to_text_empty() -> None:
    assert vtt_to_text("WEBVTT\n\n") == ""
    assert vtt_to_text("") == ""


@pytest.mark.parametrize(
    ("url", "video_id"),
    [
        ("https://vimeo.com/123456789", "123456789"),
        ("https://player.vimeo.com/video/987654?h=abc", "987654"),
    ],
)
def test_extract_video_id(url, video_id) -> None:
    assert extract_video_id(url) == video_id


def test_extract_video_id_rejects_foreign_url() -> None:
    with pytest.raises(ValidationError):
        extract_video_id("https://example.com/watch?v=1")


def test_missing_token_is_configuration_error() -> None:
    client = VimeoClient(api_base="https://api.vimeo.local", token="")
    with pytest.raises(ConfigurationError) as e:
        client.fetch_caption_vtt("1")
    assert e.value.details == {"field": "VIMEO_TOKEN"}


class _Resp:
    def __init__(self, status_code: int, data=None, text: str = "") -> None:
        self.status_code = status_code
        self._data = data
        self.text = text
        self.encoding = "utf-8"

    def json(self):
        return self._data


def test_caption_is_fetched_from_first_track(monkeypatch) -> None:
    calls: list[str] = []

    def _get(url, headers=None, params=None, timeout=None):
        calls.append(url)
        if url.endswith("/texttracks"):
            return _Resp(200, {"data": [{"link": "https://cdn.local/a.vtt"}, {"link": "https://cdn.local/b.vtt"}]})
        return _Resp(200, text=VTT)

    monkeypatch.setattr("media_insights_agent.sources.vimeo.requests.get", _get)
    client = VimeoClient(api_base="https://api.vimeo.local/", token="tok")
    assert client.fetch_caption_vtt("42") == VTT
    assert calls == ["https://api.vimeo.local/videos/42/texttracks", "https://cdn.local/a.vtt"]


def test_no_tracks_returns_none(monkeypatch) -> None:
    monkeypatch.setattr(
        "media_insights_agent.sources.vimeo.requests.get",
        lambda *a, **k: _Resp(200, {"data": []}),
    )
    assert VimeoClient(api_base="https://api.vimeo.local", token="tok").fetch_caption_vtt("42") is None


def test_pick_download_prefers_smallest_rendition(monkeypatch) -> None:
    data = {
        "name": "Aula 1",
        "download": [
            {"link": "https://cdn.local/hd.mp4", "size": 900},
            {"link": "https://cdn.local/sd.mp4", "size": 300},
            {"link": None, "size": 10},
        ],
    }
    monkeypatch.setattr("media_insights_agent.sources.vimeo.requests.get", lambda *a, **k: _Resp(200, data))
    choice = VimeoClient(api_base="https://api.vimeo.local", token="tok").pick_download("42")
    assert choice.link == "https://cdn.local/sd.mp4"
    assert choice.size == 300
    assert choice.name == "Aula 1"


def test_api_error_is_provider_error(monkeypatch) -> None:
    monkeypatch.setattr(
        "media_insights_agent.sources.vimeo.requests.get",
        lambda *a, **k: _Resp(404, text="not found"),
    )
    with pytest.raises(ProviderError) as e:
        VimeoClient(api_base="https://api.vimeo.local", token="tok").pick_download("42")
    assert e.value.details["status"] == 404
