"""
Улучшение читаемости текста через LLM.

- короче READABILITY_MIN_CHARS: без изменений, без вызовов
- до READABILITY_CHUNK_CHARS: один вызов
- длиннее: части по абзацам (не больше порога), по вызову на часть,
  склейка через пустую строку, пауза между вызовами
"""

from __future__ import annotations

import re
import time
from collections.abc import Callable

from media_insights_agent.common.logging import get_project_logger
from media_insights_agent.llm.orchestrator import LLMOrchestrator

log = get_project_logger()

READABILITY_SYSTEM_PROMPT = (
    "Você é um revisor de textos. Reescreva o texto apenas para melhorar a legibilidade: "
    "corrija pontuação, quebras de linha e frases truncadas. "
    "NÃO resuma, NÃO remova conteúdo, NÃO adicione informações. "
    "Mantenha o mesmo idioma do texto original. Responda apenas com o texto reescrito."
)

_PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")


def _pack(pieces: list[str], limit: int, sep: str) -> list[str]:
    chunks: list[str] = []
    current = ""
    for piece in pieces:
        if not current:
            current = piece
        elif len(current) + len(sep) + len(piece) <= limit:
            current = current + sep + piece
        else:
            chunks.append(current)
            current = piece
    if current:
        chunks.append(current)
    return chunks


def _split_long_paragraph(paragraph: str, limit: int) -> list[str]:
    sentences = [s for s in _SENTENCE_SPLIT_RE.split(paragraph) if s]
    out: list[str] = []
    for chunk in _pack(sentences, limit, " "):
        # Предложение длиннее порога режем жёстко
        while len(chunk) > limit:
            out.append(chunk[:limit])
            chunk = chunk[limit:]
        if chunk:
            out.append(chunk)
    return out


def split_paragraph_chunks(text: str, limit: int) -> list[str]:
    """
    Делит текст на части не длиннее limit, не разрывая абзацы без необходимости.
    """
    paragraphs: list[str] = []
    for raw in _PARAGRAPH_SPLIT_RE.split(text or ""):
        p = raw.strip()
        if not p:
            continue
        if len(p) > limit:
            paragraphs.extend(_split_long_paragraph(p, limit))
        else:
            paragraphs.append(p)
    return _pack(paragraphs, limit, "\n\n")


class ReadabilityImprover:
    def __init__(
        self,
        llm: LLMOrchestrator,
        *,
        min_chars: int,
        chunk_chars: int,
        pause_sec: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.llm = llm
        self.min_chars = min_chars
        self.chunk_chars = chunk_chars
        self.pause_sec = pause_sec
        self._sleep = sleep

    def _rewrite(self, text: str) -> str:
        out = self.llm.complete_text(system=READABILITY_SYSTEM_PROMPT, user=text, temperature=0.2)
        return out or text

    def improve(self, text: str) -> str:
        text = (text or "").strip()
        if len(text) < self.min_chars:
            return text
        if len(text) <= self.chunk_chars:
            return self._rewrite(text)

        chunks = split_paragraph_chunks(text, self.chunk_chars)
        log.info(
            "readability_chunked",
            extra={"payload": {"chars": len(text), "chunks": len(chunks)}},
        )
        results: list[str] = []
        for idx, chunk in enumerate(chunks):
            if idx and self.pause_sec:
                self._sleep(self.pause_sec)
            results.append(self._rewrite(chunk))
        return "\n\n".join(results)
