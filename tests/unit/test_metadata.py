from __future__ import annotations

import threading
from datetime import date

from media_insights_agent.common.errors import ErrCode, ProviderError
from media_insights_agent.llm.mock import MockLLMProvider
from media_insights_agent.llm.orchestrator import LLMOrchestrator
from media_insights_agent.processing.metadata import (
    MetadataExtractor,
    fallback_metadata,
    metadata_from_json,
)

TODAY = date(2026, 3, 10)


class _JsonLLM:
    def __init__(self, data: dict | None = None, exc: Exception | None = None) -> None:
        self.data = data or {}
        self.exc = exc

    def complete_json(self, *, system: str, user: str, temperature=None) -> dict:
        if self.exc is not None:
            raise self.exc
        return self.data


class _HangingLLM:
    def __init__(self) -> None:
        self.release = threading.Event()

    def complete_json(self, *, system: str, user: str, temperature=None) -> dict:
        self.release.wait(timeout=5)
        return {}


def test_metadata_from_json_coerces_vocabulary() -> None:
    md = metadata_from_json(
        {
            "title": "Manejo de ácaros",
            "doc_type": "Product_Label",
            "specificity": "planet",
            "subnational_codes": "BR-PR, BR-SP",
            "crop": ["cotton (Gossypium hirsutum)"],
        },
        country="BR",
        today=TODAY,
    )
    assert md.doc_type == "product_label"
    assert md.specificity == "subnational_specific"
    assert md.subnational_codes == ["BR-PR", "BR-SP"]
    assert md.crop == "cotton (Gossypium hirsutum)"
    assert md.date == "2026-03-10"
    assert (md.valid_from, md.valid_to) == ("2026-03-10", "2027-03-10")


def test_leap_day_validity_window() -> None:
    md = metadata_from_json({}, country="BR", today=date(2028, 2, 29))
    assert md.valid_to == "2029-02-28"


def test_extract_success() -> None:
    extractor = MetadataExtractor(_JsonLLM({"title": "Bula", "abstract": "Resumo"}), timeout_sec=5)  # type: ignore[arg-type]
    md, error = extractor.extract("texto", file_name="bula.pdf", today=TODAY)
    assert error is None
    assert md.title == "Bula"
    assert "Document Title: Bula" in md.to_text()


def test_extract_failure_returns_fallback_with_error() -> None:
    llm = _JsonLLM(exc=ProviderError(ErrCode.LLM_PROVIDER_ERROR, "LLM вернул невалидный JSON"))
    md, error = MetadataExtractor(llm, timeout_sec=5).extract("texto", file_name="a.pdf", today=TODAY)  # type: ignore[arg-type]
    assert error == "LLM вернул невалидный JSON"
    assert "LLM вернул невалидный JSON" in md.abstract
    assert "LLM вернул невалидный JSON" in md.purpose
    assert md.title == "a.pdf"


def test_extract_timeout_returns_fallback() -> None:
    llm = _HangingLLM()
    try:
        md, error = MetadataExtractor(llm, timeout_sec=0.05).extract("texto", today=TODAY)  # type: ignore[arg-type]
    finally:
        llm.release.set()
    assert error is not None
    assert "таймаут" in error
    assert error in md.abstract


def test_fallback_metadata_shape() -> None:
    md = fallback_metadata("boom", file_name=None, country="BR", today=TODAY)
    assert md.to_dict()["purpose"] == "Не удалось сгенерировать метаданные: boom"
    assert md.country == "BR"


def test_mock_llm_metadata_round() -> None:
    llm = LLMOrchestrator(MockLLMProvider(), retries=0, backoff_ms=0)
    md, error = MetadataExtractor(llm, timeout_sec=5).extract("texto", today=TODAY)
    assert error is None
    assert md.title == "mock_title"
    assert md.doc_type == "agronomy_best_practices"
