"""
Контейнер зависимостей обработчиков задач.

Назначение:
- одна точка сборки провайдеров (LLM/STT/ffmpeg/внешние API) по настройкам
- подмена любых зависимостей в тестах без monkeypatch глобалов
- общие шаги обработчиков: проверка конфигурации, сборка пайплайна
"""

from __future__ import annotations

import time
from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass

from sqlalchemy.orm import Session

from media_insights_agent.common.config import Settings, get_settings, require_provider_config
from media_insights_agent.common.logging import get_project_logger
from media_insights_agent.llm.factory import build_llm
from media_insights_agent.llm.orchestrator import LLMOrchestrator
from media_insights_agent.media.splitter import ChunkSplitter
from media_insights_agent.processing.catalog import CatalogTerm, build_catalog_terms
from media_insights_agent.processing.dictionary import DictionaryTerm
from media_insights_agent.processing.metadata import MetadataExtractor
from media_insights_agent.processing.pipeline import EnrichmentPipeline
from media_insights_agent.processing.readability import ReadabilityImprover
from media_insights_agent.processing.templates import PromptTemplates
from media_insights_agent.sources.pdf import PdfTextExtractor
from media_insights_agent.sources.scorm import ContentApiClient
from media_insights_agent.sources.vimeo import VimeoClient
from media_insights_agent.storage.db import db_session
from media_insights_agent.storage.repositories import (
    CatalogRepository,
    DictionaryRepository,
    EntityRepository,
    PromptSettingsRepository,
)
from media_insights_agent.stt.factory import build_stt_provider
from media_insights_agent.stt.transcriber import Transcriber

log = get_project_logger()

SessionScope = Callable[[], AbstractContextManager[Session]]


@dataclass
class ServiceContext:
    settings: Settings
    llm: LLMOrchestrator
    splitter: ChunkSplitter
    transcriber: Transcriber
    pdf_extractor: PdfTextExtractor
    vimeo: VimeoClient
    content_api: ContentApiClient
    session_scope: SessionScope = db_session
    sleep: Callable[[float], None] = time.sleep

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> ServiceContext:
        s = settings or get_settings()
        llm = build_llm(s)
        return cls(
            settings=s,
            llm=llm,
            splitter=ChunkSplitter.from_settings(s),
            transcriber=Transcriber(build_stt_provider(s)),
            pdf_extractor=PdfTextExtractor.from_settings(llm, s),
            vimeo=VimeoClient.from_settings(s),
            content_api=ContentApiClient.from_settings(s),
        )

    # -------------------------------------------------------------------------
    # Конфигурация
    # -------------------------------------------------------------------------
    def prepare_templates(self) -> PromptTemplates:
        """
        Ключ провайдера и шаблоны промптов проверяются до любой дорогой работы.
        """
        require_provider_config(self.settings)
        with self.session_scope() as session:
            return PromptSettingsRepository(session).load_templates()

    # -------------------------------------------------------------------------
    # Пайплайн
    # -------------------------------------------------------------------------
    def load_dictionary(self) -> list[DictionaryTerm]:
        with self.session_scope() as session:
            return DictionaryRepository(session).list_terms()

    def load_catalog(self) -> list[CatalogTerm]:
        with self.session_scope() as session:
            return build_catalog_terms(CatalogRepository(session).list_entries())

    def build_pipeline(self, templates: PromptTemplates) -> EnrichmentPipeline:
        s = self.settings
        return EnrichmentPipeline(
            llm=self.llm,
            templates=templates,
            readability=ReadabilityImprover(
                self.llm,
                min_chars=s.readability_min_chars,
                chunk_chars=s.readability_chunk_chars,
                pause_sec=s.readability_pause_ms / 1000.0,
                sleep=self.sleep,
            ),
            metadata=MetadataExtractor(
                self.llm,
                timeout_sec=s.metadata_timeout_sec,
                text_limit=s.metadata_text_limit_chars,
                country=s.metadata_country,
            ),
            dictionary_loader=self.load_dictionary,
            catalog_loader=self.load_catalog,
            text_limit=s.llm_text_limit_chars,
        )

    # -------------------------------------------------------------------------
    # Строки сущностей
    # -------------------------------------------------------------------------
    def create_entity(self, model: type, **fields) -> None:
        with self.session_scope() as session:
            EntityRepository(session).create(model, **fields)

    def update_entity(self, model: type, entity_id: str, fields: dict) -> None:
        with self.session_scope() as session:
            EntityRepository(session).update_fields(model, entity_id, fields)
