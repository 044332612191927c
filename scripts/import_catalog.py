"""
Импорт каталога продуктов из CSV.

Колонки (по порядку, первая строка = заголовок):
Nome produto; Culturas registradas; Doenças, pragas e plantas daninhas controladas;
Dose recomendada; Volume calda; Classe; Empresa; Pais

Использование:
    python scripts/import_catalog.py catalogo.csv
"""

from __future__ import annotations

import csv
import io
import sys
from pathlib import Path

from media_insights_agent.processing.catalog import CatalogEntry
from media_insights_agent.storage.db import db_session
from media_insights_agent.storage.repositories import CatalogRepository

FIELDS = (
    "product_name",
    "registered_crops",
    "controlled_targets",
    "recommended_dose",
    "spray_volume",
    "product_class",
    "company",
    "country",
)


def read_text(path: Path) -> str:
    raw = path.read_bytes()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        # CSV из Excel под Windows
        text = raw.decode("latin-1")
    return text.lstrip("\ufeff")


def parse_rows(text: str) -> list[CatalogEntry]:
    delimiter = ";" if ";" in text.splitlines()[0] else ","
    reader = csv.reader(io.StringIO(text), delimiter=delimiter)
    next(reader, None)
    entries: list[CatalogEntry] = []
    for row in reader:
        values = [(v or "").strip() or None for v in row[: len(FIELDS)]]
        values += [None] * (len(FIELDS) - len(values))
        entry = CatalogEntry(**dict(zip(FIELDS, values, strict=True)))
        if entry.product_name:
            entries.append(entry)
    return entries


def main(argv: list[str]) -> int:
    if not argv:
        print("usage: import_catalog.py <catalog.csv>")
        return 2
    entries = parse_rows(read_text(Path(argv[0])))
    with db_session() as s:
        added = CatalogRepository(s).add_entries(entries)
    print(f"Imported {added} catalog products")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
