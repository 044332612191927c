"""
Файловое хранилище.

Назначение:
- папки по дате: <STORAGE_ROOT>/YYYY-MM-DD
- копирование/сохранение исходников под уникальным именем
"""

from __future__ import annotations

import shutil
from datetime import date
from pathlib import Path
from typing import BinaryIO

from media_insights_agent.common.config import get_settings
from media_insights_agent.common.errors import ErrCode, ProviderError
from media_insights_agent.common.ids import new_uuid


def storage_dir_for(day: date | None = None, *, root: str | None = None) -> Path:
    base = Path(root or get_settings().storage_root)
    d = base / (day or date.today()).isoformat()
    d.mkdir(parents=True, exist_ok=True)
    return d


def unique_name(prefix: str, original_name: str | None) -> str:
    ext = Path(original_name or "").suffix.lower()
    return f"{prefix}-{new_uuid()}{ext}"


def copy_into_storage(src: str, *, prefix: str, original_name: str | None = None, root: str | None = None) -> Path:
    source = Path(src)
    if not source.is_file():
        raise ProviderError(ErrCode.STORAGE_ERROR, "Исходный файл не найден", {"path": src})
    dest = storage_dir_for(root=root) / unique_name(prefix, original_name or source.name)
    if source.resolve() != dest.resolve():
        shutil.copyfile(source, dest)
    return dest


def save_stream(stream: BinaryIO, *, prefix: str, original_name: str | None, root: str | None = None) -> Path:
    dest = storage_dir_for(root=root) / unique_name(prefix, original_name)
    with dest.open("wb") as out:
        shutil.copyfileobj(stream, out)
    return dest


def is_in_storage(path: str | Path, *, root: str | None = None) -> bool:
    base = Path(root or get_settings().storage_root).resolve()
    try:
        Path(path).resolve().relative_to(base)
    except ValueError:
        return False
    return True


def ensure_in_storage(
    src: str, *, prefix: str, original_name: str | None = None, root: str | None = None
) -> Path:
    """
    Файл уже в хранилище (загружен через API) используется как есть, иначе копируется.
    """
    if is_in_storage(src, root=root) and Path(src).is_file():
        return Path(src)
    return copy_into_storage(src, prefix=prefix, original_name=original_name, root=root)
