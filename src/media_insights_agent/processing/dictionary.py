"""
Замена терминов по пользовательскому словарю.

Правила:
- целое слово (\\b...\\b), без учёта регистра
- сначала самые длинные термины (чтобы "ácaro rajado" не перебивался "ácaro")
"""

from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class DictionaryTerm:
    term: str
    replacement: str


def apply_dictionary(text: str, terms: list[DictionaryTerm]) -> str:
    if not text or not terms:
        return text
    result = text
    for item in sorted(terms, key=lambda t: len(t.term), reverse=True):
        term = (item.term or "").strip()
        if not term or not item.replacement:
            continue
        pattern = re.compile(rf"\b{re.escape(term)}\b", re.IGNORECASE)
        replacement = item.replacement
        result = pattern.sub(lambda _m: replacement, result)
    return result
