"""
Извлечение текста из PDF.

Режимы:
- текстовый слой через pypdf
- vision OCR: страницы рендерятся PyMuPDF в PNG и отправляются батчами
  в vision-модель; при ошибке или пустом ответе используется текстовый слой
"""

from __future__ import annotations

import base64
import time
from collections.abc import Callable
from pathlib import Path

import fitz  # PyMuPDF
from pypdf import PdfReader

from media_insights_agent.common.config import Settings, get_settings
from media_insights_agent.common.errors import EmptyResultError, ErrCode, ProviderError
from media_insights_agent.common.logging import get_project_logger
from media_insights_agent.llm.orchestrator import LLMOrchestrator

log = get_project_logger()

VISION_SYSTEM_PROMPT = (
    "Você é um sistema de OCR. Transcreva fielmente todo o texto visível nas imagens, "
    "na ordem de leitura, preservando títulos, listas e tabelas. "
    "Não resuma, não traduza e não adicione comentários."
)


def extract_text_layer(path: str) -> str:
    if not Path(path).is_file():
        raise ProviderError(ErrCode.STORAGE_ERROR, "Файл PDF не найден", {"path": path})
    reader = PdfReader(path)
    pages = [(page.extract_text() or "").strip() for page in reader.pages]
    return "\n\n".join(p for p in pages if p).strip()


def render_pages_png(path: str, *, max_pages: int, dpi: int) -> list[str]:
    """
    PNG страниц в base64 (не больше max_pages).
    """
    doc = fitz.open(path)
    try:
        out: list[str] = []
        for pno in range(min(len(doc), max_pages)):
            pix = doc[pno].get_pixmap(dpi=dpi, alpha=False)
            out.append(base64.b64encode(pix.tobytes("png")).decode("ascii"))
        return out
    finally:
        doc.close()


class PdfTextExtractor:
    def __init__(
        self,
        llm: LLMOrchestrator | None,
        *,
        max_pages: int = 100,
        dpi: int = 108,
        batch_size: int = 4,
        batch_pause_sec: float = 3.0,
        max_tokens: int = 4096,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.llm = llm
        self.max_pages = max_pages
        self.dpi = dpi
        self.batch_size = max(1, batch_size)
        self.batch_pause_sec = batch_pause_sec
        self.max_tokens = max_tokens
        self._sleep = sleep

    @classmethod
    def from_settings(cls, llm: LLMOrchestrator | None, settings: Settings | None = None) -> PdfTextExtractor:
        s = settings or get_settings()
        return cls(
            llm,
            max_pages=s.pdf_vision_max_pages,
            dpi=s.pdf_vision_dpi,
            batch_size=s.pdf_vision_batch_size,
            batch_pause_sec=s.pdf_vision_batch_pause_ms / 1000.0,
            max_tokens=s.pdf_vision_max_tokens,
        )

    def extract_via_vision(self, path: str) -> str:
        if self.llm is None:
            raise ProviderError(ErrCode.LLM_PROVIDER_ERROR, "LLM не настроен для vision OCR")
        images = render_pages_png(path, max_pages=self.max_pages, dpi=self.dpi)
        texts: list[str] = []
        for start in range(0, len(images), self.batch_size):
            if start:
                self._sleep(self.batch_pause_sec)
            batch = images[start : start + self.batch_size]
            first, last = start + 1, start + len(batch)
            text = self.llm.complete_vision(
                system=VISION_SYSTEM_PROMPT,
                prompt=f"Transcreva o texto das páginas {first} a {last} deste documento.",
                images_png_b64=batch,
                max_tokens=self.max_tokens,
            )
            log.info(
                "pdf_vision_batch_done",
                extra={"payload": {"pages": f"{first}-{last}", "chars": len(text)}},
            )
            if text:
                texts.append(text)
        return "\n\n".join(texts).strip()

    def extract(self, path: str, *, force_vision: bool) -> str:
        text = ""
        if force_vision:
            try:
                text = self.extract_via_vision(path)
            except Exception as e:
                log.warning(
                    "pdf_vision_failed_fallback_text",
                    extra={"payload": {"path": path, "err": str(getattr(e, "message", e))[:300]}},
                )
                text = ""
        if not text:
            text = extract_text_layer(path)
        if not text:
            raise EmptyResultError("Из PDF не извлечено ни одного символа текста", {"path": path})
        return text
