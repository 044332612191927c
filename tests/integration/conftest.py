from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from media_insights_agent.storage import db as db_module
from media_insights_agent.storage.db import configure_engine, db_session
from media_insights_agent.storage.models import Base
from media_insights_agent.storage.repositories import PromptSettingsRepository


@pytest.fixture()
def sqlite_db():
    """
    In-memory SQLite вместо Postgres: одна связь на весь тест (StaticPool),
    доступ из рабочих потоков очереди разрешён.
    """
    prev_engine, prev_factory = db_module._engine, db_module._session_factory
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    configure_engine(engine)
    try:
        yield engine
    finally:
        engine.dispose()
        db_module._engine, db_module._session_factory = prev_engine, prev_factory


@pytest.fixture()
def seeded_prompts(sqlite_db):
    with db_session() as session:
        PromptSettingsRepository(session).upsert(
            transcript_prompt="Organize o texto abaixo em tópicos:\n{text}",
            qa_prompt="Gere perguntas e respostas sobre o texto.",
            additional_prompt="",
        )
    return sqlite_db
