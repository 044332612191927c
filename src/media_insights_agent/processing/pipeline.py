"""
Пайплайн обогащения текста.

Стадии (фиксированный порядок):
1) catalog: коррекция по каталогу продуктов
2) dictionary: замена терминов по словарю
3) readability: улучшение читаемости (LLM)
4) structured: структурированный текст по шаблону оператора (LLM)
5) qa: вопросы/ответы по шаблону оператора (LLM)
6) metadata: метаданные документа (LLM, с таймаутом)

Каждая стадия изолирована: ошибка фиксируется как degraded в StageResult,
пайплайн в целом никогда не бросает исключение.

Ограничение: "не выдумывать факты вне текста" обеспечивается только промптом.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from media_insights_agent.common.logging import get_project_logger
from media_insights_agent.common.metrics import PIPELINE_STAGE_TOTAL, track_stage_latency
from media_insights_agent.domain.enums import JobType, StageStatus
from media_insights_agent.llm.orchestrator import LLMOrchestrator

from .catalog import CatalogTerm, correct_text_with_catalog
from .dictionary import DictionaryTerm, apply_dictionary
from .metadata import DocumentMetadata, MetadataExtractor
from .readability import ReadabilityImprover
from .templates import QA_SYSTEM_PROMPT, STRUCTURED_SYSTEM_PROMPT, PromptTemplates

log = get_project_logger()


# =============================================================================
# РЕЗУЛЬТАТЫ
# =============================================================================
@dataclass(frozen=True)
class StageResult:
    name: str
    status: StageStatus
    text: str = ""
    reason: str | None = None

    @classmethod
    def ok(cls, name: str, text: str) -> StageResult:
        return cls(name=name, status=StageStatus.ok, text=text)

    @classmethod
    def degraded(cls, name: str, text: str, reason: str) -> StageResult:
        return cls(name=name, status=StageStatus.degraded, text=text, reason=reason)

    @classmethod
    def skipped(cls, name: str, text: str = "", reason: str | None = None) -> StageResult:
        return cls(name=name, status=StageStatus.skipped, text=text, reason=reason)

    def to_dict(self) -> dict:
        return {"name": self.name, "status": self.status.value, "reason": self.reason}


@dataclass
class EnrichmentResult:
    corrected_text: str
    structured_summary: str = ""
    questions_answers: str = ""
    metadata: DocumentMetadata | None = None
    stages: list[StageResult] = field(default_factory=list)

    @property
    def degraded_stages(self) -> list[str]:
        return [s.name for s in self.stages if s.status is StageStatus.degraded]

    def stage_report(self) -> list[dict]:
        return [s.to_dict() for s in self.stages]


@dataclass(frozen=True)
class PipelineOptions:
    catalog: bool = True
    dictionary: bool = True
    readability: bool = False
    structured: bool = True
    qa: bool = True
    metadata: bool = False

    @classmethod
    def for_job_type(cls, job_type: JobType) -> PipelineOptions:
        if job_type is JobType.pdf:
            return cls(readability=True, metadata=True)
        return cls()


# =============================================================================
# ПАЙПЛАЙН
# =============================================================================
class EnrichmentPipeline:
    def __init__(
        self,
        *,
        llm: LLMOrchestrator,
        templates: PromptTemplates,
        readability: ReadabilityImprover,
        metadata: MetadataExtractor,
        dictionary_loader: Callable[[], list[DictionaryTerm]],
        catalog_loader: Callable[[], list[CatalogTerm]],
        text_limit: int = 60000,
    ) -> None:
        self.llm = llm
        self.templates = templates
        self.readability = readability
        self.metadata = metadata
        self.dictionary_loader = dictionary_loader
        self.catalog_loader = catalog_loader
        self.text_limit = text_limit

    @staticmethod
    def _run_stage(name: str, fn: Callable[[], str], fallback: str) -> StageResult:
        try:
            with track_stage_latency("pipeline", name):
                out = fn()
        except Exception as e:
            reason = getattr(e, "message", None) or str(e) or type(e).__name__
            log.warning(
                "pipeline_stage_degraded",
                extra={"payload": {"stage": name, "err": reason[:300], "err_type": type(e).__name__}},
            )
            result = StageResult.degraded(name, fallback, reason)
        else:
            result = StageResult.ok(name, out)
        PIPELINE_STAGE_TOTAL.labels(stage=name, status=result.status.value).inc()
        return result

    @staticmethod
    def _skip(name: str, text: str = "") -> StageResult:
        PIPELINE_STAGE_TOTAL.labels(stage=name, status=StageStatus.skipped.value).inc()
        return StageResult.skipped(name, text)

    def _generate(self, *, system: str, user: str, temperature: float) -> str:
        out = self.llm.complete_text(system=system, user=user, temperature=temperature)
        if not out:
            raise ValueError("LLM вернул пустой текст")
        return out

    def run(self, text: str, *, options: PipelineOptions, file_name: str | None = None) -> EnrichmentResult:
        stages: list[StageResult] = []
        current = text or ""

        # 1) каталог
        if options.catalog:
            st = self._run_stage(
                "catalog",
                lambda: correct_text_with_catalog(current, self.catalog_loader()),
                current,
            )
        else:
            st = self._skip("catalog", current)
        stages.append(st)
        current = st.text

        # 2) словарь (термины грузим один раз и применяем и к выходам LLM)
        terms: list[DictionaryTerm] = []
        if options.dictionary:

            def _dictionary() -> str:
                terms.extend(self.dictionary_loader())
                return apply_dictionary(current, terms)

            st = self._run_stage("dictionary", _dictionary, current)
        else:
            st = self._skip("dictionary", current)
        stages.append(st)
        current = st.text

        # 3) читаемость
        if options.readability:
            st = self._run_stage("readability", lambda: self.readability.improve(current), current)
        else:
            st = self._skip("readability", current)
        stages.append(st)
        current = st.text

        # 4) структурированный текст
        if options.structured:
            st = self._run_stage(
                "structured",
                lambda: apply_dictionary(
                    self._generate(
                        system=STRUCTURED_SYSTEM_PROMPT,
                        user=self.templates.structured_prompt(current, limit=self.text_limit),
                        temperature=0.3,
                    ),
                    terms,
                ),
                "",
            )
        else:
            st = self._skip("structured")
        stages.append(st)
        structured = st.text

        # 5) Q&A: по структурированному тексту, иначе по исходному
        qa_source = structured or current
        if options.qa:
            st = self._run_stage(
                "qa",
                lambda: apply_dictionary(
                    self._generate(
                        system=QA_SYSTEM_PROMPT,
                        user=self.templates.qa_prompt_for(qa_source, limit=self.text_limit),
                        temperature=0.0,
                    ),
                    terms,
                ),
                "",
            )
        else:
            st = self._skip("qa")
        stages.append(st)
        questions_answers = st.text

        # 6) метаданные (никогда не бросает, при ошибке fallback)
        metadata: DocumentMetadata | None = None
        if options.metadata:
            with track_stage_latency("pipeline", "metadata"):
                metadata, error = self.metadata.extract(current, file_name=file_name)
            if error:
                st = StageResult.degraded("metadata", metadata.to_text(), error)
            else:
                st = StageResult.ok("metadata", metadata.to_text())
            PIPELINE_STAGE_TOTAL.labels(stage="metadata", status=st.status.value).inc()
        else:
            st = self._skip("metadata")
        stages.append(st)

        result = EnrichmentResult(
            corrected_text=current,
            structured_summary=structured,
            questions_answers=questions_answers,
            metadata=metadata,
            stages=stages,
        )
        log.info(
            "pipeline_finished",
            extra={
                "payload": {
                    "file_name": file_name,
                    "chars": len(current),
                    "degraded_stages": result.degraded_stages,
                }
            },
        )
        return result
