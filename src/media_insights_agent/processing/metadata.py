"""
Извлечение метаданных документа (формат "ELY Document").

Назначение:
- LLM возвращает JSON, мы приводим его к фиксированной схеме
- теги (doc_type, specificity) из закрытого словаря, на английском
- жёсткий таймаут; при любой ошибке возвращается fallback с текстом ошибки
  в abstract/purpose (метаданные не блокируют задачу)
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import asdict, dataclass, field
from datetime import date, timedelta

from media_insights_agent.common.logging import get_project_logger
from media_insights_agent.llm.orchestrator import LLMOrchestrator

log = get_project_logger()

DOC_TYPES = (
    "product_label",
    "localized_guidance",
    "product_performance_results",
    "marketing_material",
    "agronomy_best_practices",
    "product_catalog",
    "research_paper",
)
SPECIFICITIES = ("subnational_specific", "country_specific", "global")

METADATA_SYSTEM_PROMPT = (
    "Você é um especialista em extração de metadados de documentos agronômicos. "
    "Responda APENAS com um objeto JSON válido, sem texto adicional."
)


@dataclass
class DocumentMetadata:
    title: str = ""
    version: str = "v1.0"
    date: str = ""
    author: str = ""
    country: str = "BR"
    subnational_codes: list[str] = field(default_factory=list)
    specificity: str = "country_specific"
    doc_type: str = DOC_TYPES[0]
    purpose: str = ""
    language: str = "pt"
    crop: str = ""
    valid_from: str = ""
    valid_to: str = ""
    abstract: str = ""

    def to_dict(self) -> dict:
        return asdict(self)

    def to_text(self) -> str:
        codes = ", ".join(self.subnational_codes) if self.subnational_codes else self.country
        return "\n".join(
            [
                f"ELY Document – {self.country}",
                "",
                f"Document Title: {self.title}",
                "",
                f"Version: {self.version}",
                "",
                f"Date: {self.date}",
                "",
                f"Author: {self.author}",
                "",
                "________________________________________",
                "",
                "ELY Metadata Reference (ISO-compliant / Schema key format)",
                "",
                f"• country: {self.country}",
                f"• subnational_codes: {codes}",
                f"• specificity: {self.specificity}",
                f"• doc_type: {self.doc_type}",
                f"• purpose: {self.purpose}",
                f"• language: {self.language}",
                f"• crop: {self.crop}",
                f"• valid_from: {self.valid_from}",
                f"• valid_to: {self.valid_to}",
                "",
                "Abstract",
                self.abstract,
            ]
        )


def _validity_window(today: date) -> tuple[str, str]:
    try:
        valid_to = today.replace(year=today.year + 1)
    except ValueError:
        # 29 февраля
        valid_to = today + timedelta(days=365)
    return today.isoformat(), valid_to.isoformat()


def _as_str(value) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return ", ".join(str(v) for v in value if v)
    return str(value).strip()


def _as_codes(value) -> list[str]:
    if isinstance(value, list):
        return [str(v).strip() for v in value if str(v).strip()]
    return [c.strip() for c in _as_str(value).split(",") if c.strip()]


def _coerce(value: str, allowed: tuple[str, ...]) -> str:
    v = (value or "").strip().lower()
    return v if v in allowed else allowed[0]


def metadata_from_json(data: dict, *, country: str, today: date) -> DocumentMetadata:
    valid_from, valid_to = _validity_window(today)
    return DocumentMetadata(
        title=_as_str(data.get("title")),
        date=_as_str(data.get("date")) or today.isoformat(),
        author=_as_str(data.get("author")),
        country=country,
        subnational_codes=_as_codes(data.get("subnational_codes")),
        specificity=_coerce(_as_str(data.get("specificity")), SPECIFICITIES),
        doc_type=_coerce(_as_str(data.get("doc_type")), DOC_TYPES),
        purpose=_as_str(data.get("purpose")),
        language=_as_str(data.get("language")) or "pt",
        crop=_as_str(data.get("crop")),
        valid_from=valid_from,
        valid_to=valid_to,
        abstract=_as_str(data.get("abstract")),
    )


def fallback_metadata(error: str, *, file_name: str | None, country: str, today: date) -> DocumentMetadata:
    valid_from, valid_to = _validity_window(today)
    message = f"Не удалось сгенерировать метаданные: {error}"
    return DocumentMetadata(
        title=file_name or "",
        date=today.isoformat(),
        country=country,
        valid_from=valid_from,
        valid_to=valid_to,
        purpose=message,
        abstract=message,
    )


def build_metadata_prompt(text: str, *, file_name: str | None, today: date, limit: int) -> str:
    return f"""Extraia os metadados do documento abaixo e responda com um objeto JSON com as chaves:
title, date, author, subnational_codes, specificity, doc_type, purpose, language, crop, abstract.

Regras:
- country é sempre o código ISO do país; não o inclua no JSON.
- doc_type (hierarquia de autoridade): {", ".join(DOC_TYPES)}.
  Bulas e documentos legais são SEMPRE 'product_label'.
- specificity: {", ".join(SPECIFICITIES)}.
- subnational_codes: lista de códigos ISO das regiões (ex: BR-PR) quando specificity for 'subnational_specific'.
- date no formato YYYY-MM-DD; se não encontrar, use {today.isoformat()}.
- crop em inglês com o nome científico entre parênteses (ex: "acerola (Malpighia emarginata)"), ou vazio.
- title, author, purpose e abstract no MESMO IDIOMA do documento; os demais campos em inglês.
- abstract: resumo do conteúdo principal, objetivos, público-alvo e recomendações técnicas.

Texto do documento:
\"\"\"
{(text or "")[:limit]}
\"\"\"

Nome do arquivo original: {file_name or ""}"""


class MetadataExtractor:
    def __init__(
        self,
        llm: LLMOrchestrator,
        *,
        timeout_sec: float = 60.0,
        text_limit: int = 50000,
        country: str = "BR",
    ) -> None:
        self.llm = llm
        self.timeout_sec = timeout_sec
        self.text_limit = text_limit
        self.country = country

    def _call(self, text: str, file_name: str | None, today: date) -> DocumentMetadata:
        data = self.llm.complete_json(
            system=METADATA_SYSTEM_PROMPT,
            user=build_metadata_prompt(text, file_name=file_name, today=today, limit=self.text_limit),
            temperature=0.1,
        )
        return metadata_from_json(data, country=self.country, today=today)

    def extract(
        self,
        text: str,
        *,
        file_name: str | None = None,
        today: date | None = None,
    ) -> tuple[DocumentMetadata, str | None]:
        """
        Возвращает (metadata, error). Никогда не бросает исключение.
        """
        today = today or date.today()
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="metadata")
        try:
            future = executor.submit(self._call, text, file_name, today)
            return future.result(timeout=self.timeout_sec), None
        except FutureTimeoutError:
            error = f"таймаут {self.timeout_sec:g}s"
        except Exception as e:
            error = getattr(e, "message", None) or str(e) or type(e).__name__
        finally:
            # Зависший HTTP-вызов не ждём: он завершится по своему таймауту
            executor.shutdown(wait=False, cancel_futures=True)

        log.warning(
            "metadata_fallback",
            extra={"payload": {"file_name": file_name, "err": error[:300]}},
        )
        return fallback_metadata(error, file_name=file_name, country=self.country, today=today), error
