"""
Сидинг шаблонов промптов (таблица settings, id=1).
Используется для dev-окружения и первичной настройки.

Использование:
    python scripts/seed_prompts.py transcript.txt qa.txt [additional.txt]
"""

from __future__ import annotations

import sys
from pathlib import Path

from media_insights_agent.storage.db import db_session
from media_insights_agent.storage.repositories import PromptSettingsRepository


def main(argv: list[str]) -> int:
    if len(argv) < 2:
        print("usage: seed_prompts.py <transcript_prompt.txt> <qa_prompt.txt> [additional.txt]")
        return 2
    transcript, qa = (Path(p).read_text(encoding="utf-8") for p in argv[:2])
    additional = Path(argv[2]).read_text(encoding="utf-8") if len(argv) > 2 else ""

    with db_session() as s:
        PromptSettingsRepository(s).upsert(
            transcript_prompt=transcript, qa_prompt=qa, additional_prompt=additional
        )
    print("Seeded prompt settings")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
