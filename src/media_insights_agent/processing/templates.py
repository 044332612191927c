"""
Шаблоны промптов, настраиваемые оператором (таблица settings, id=1).

Назначение:
- проверка наличия обязательных шаблонов до любых внешних вызовов
- сборка промптов: подстановка {text} либо ручная склейка текста и инструкций
- "тот же язык, без перевода" добавляется всегда
"""

from __future__ import annotations

from dataclasses import dataclass

from media_insights_agent.common.errors import ConfigurationError

TEXT_PLACEHOLDER = "{text}"

STRUCTURED_SYSTEM_PROMPT = (
    "Você organiza transcrições e documentos seguindo estritamente as instruções. "
    "Não adicione conhecimento externo."
)
QA_SYSTEM_PROMPT = "Você deve seguir estritamente as instruções e não adicionar conhecimento externo."

_SAME_LANGUAGE_STRUCTURED = "OBRIGATÓRIO: Mantenha o texto NO MESMO IDIOMA do original. NUNCA traduza."
_SAME_LANGUAGE_QA = "OBRIGATÓRIO: Gere as perguntas e respostas NO MESMO IDIOMA do texto. NUNCA traduza."


def _additional_block(additional: str) -> str:
    additional = (additional or "").strip()
    if not additional:
        return ""
    return f"\n\nInstruções adicionais:\n{additional}"


@dataclass(frozen=True)
class PromptTemplates:
    transcript_prompt: str
    qa_prompt: str
    additional_prompt: str = ""

    def validate(self) -> PromptTemplates:
        """
        Пустой шаблон = ошибка конфигурации с именем поля.
        """
        if not (self.transcript_prompt or "").strip():
            raise ConfigurationError(
                "Шаблон transcript_prompt не настроен в БД (settings)",
                {"field": "transcript_prompt"},
            )
        if not (self.qa_prompt or "").strip():
            raise ConfigurationError(
                "Шаблон qa_prompt не настроен в БД (settings)",
                {"field": "qa_prompt"},
            )
        return self

    def structured_prompt(self, text: str, *, limit: int) -> str:
        body = (text or "")[:limit]
        additional = _additional_block(self.additional_prompt)
        template = self.transcript_prompt
        if TEXT_PLACEHOLDER in template:
            prompt = template.replace(TEXT_PLACEHOLDER, body)
            return f"{prompt}{additional}\n\n{_SAME_LANGUAGE_STRUCTURED}"
        return (
            f"{template}{additional}\n\n"
            f'Transcrição original:\n"{body}"\n\n'
            "Gere agora a transcrição aprimorada no mesmo formato do exemplo. "
            "MANTENHA O MESMO IDIOMA do texto original. Não traduza."
        )

    def qa_prompt_for(self, text: str, *, limit: int) -> str:
        body = (text or "")[:limit]
        template = self.qa_prompt
        if TEXT_PLACEHOLDER in template:
            prompt = template.replace(TEXT_PLACEHOLDER, body) + f"\n\n{_SAME_LANGUAGE_QA}"
        else:
            prompt = (
                f'{template}\n\nTexto base:\n"""\n{body}\n"""\n\n'
                "Gere o Q&A agora NO MESMO IDIOMA do texto. NUNCA traduza."
            )
        return prompt + _additional_block(self.additional_prompt)
