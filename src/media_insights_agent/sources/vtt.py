"""
WebVTT -> простой текст.

- убираем заголовок WEBVTT, номера реплик и таймкоды
- делим на предложения по ".", убираем повторы (без учёта регистра)
"""

from __future__ import annotations

import re

_TIMESTAMP_RE = re.compile(r"^\d{2}:\d{2}(?::\d{2})?[.,]\d{3}\s*-->")
_CUE_NUMBER_RE = re.compile(r"^\d+$")


def vtt_to_text(vtt: str) -> str:
    lines: list[str] = []
    for raw in (vtt or "").splitlines():
        line = raw.strip()
        if not line or line.startswith("WEBVTT") or line.startswith("NOTE"):
            continue
        if _CUE_NUMBER_RE.match(line) or _TIMESTAMP_RE.match(line):
            continue
        lines.append(line)

    joined = " ".join(lines)
    seen: set[str] = set()
    sentences: list[str] = []
    for part in joined.split("."):
        sentence = part.strip()
        if not sentence:
            continue
        key = sentence.lower()
        if key in seen:
            continue
        seen.add(key)
        sentences.append(sentence)
    if not sentences:
        return ""
    return ".\n".join(sentences) + "."
