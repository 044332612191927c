"""
Скачивание файлов по HTTP (стриминг на диск).
"""

from __future__ import annotations

from pathlib import Path
from urllib.parse import quote, urlsplit, urlunsplit

import requests

from media_insights_agent.common.errors import ProviderError
from media_insights_agent.common.logging import get_project_logger

log = get_project_logger()

_CHUNK_BYTES = 1024 * 1024


def encode_url_path(url: str) -> str:
    """
    URL-кодирование пути (пробелы/кириллица/акценты в именах файлов).
    """
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, quote(parts.path, safe="/%"), parts.query, parts.fragment))


def download_to_file(
    url: str,
    dest: Path,
    *,
    timeout_s: int,
    code: str,
    headers: dict[str, str] | None = None,
) -> Path:
    dest.parent.mkdir(parents=True, exist_ok=True)
    try:
        with requests.get(encode_url_path(url), headers=headers, stream=True, timeout=timeout_s) as resp:
            if resp.status_code >= 400:
                raise ProviderError(
                    code,
                    "Не удалось скачать файл",
                    {"status": resp.status_code, "url": url},
                    retryable=resp.status_code >= 500,
                )
            with dest.open("wb") as out:
                for chunk in resp.iter_content(chunk_size=_CHUNK_BYTES):
                    if chunk:
                        out.write(chunk)
    except requests.RequestException as e:
        dest.unlink(missing_ok=True)
        raise ProviderError(code, "Ошибка HTTP при скачивании файла", {"url": url, "err": str(e)}) from e
    except ProviderError:
        dest.unlink(missing_ok=True)
        raise

    log.info(
        "file_downloaded",
        extra={"payload": {"url": url, "path": str(dest), "size_bytes": dest.stat().st_size}},
    )
    return dest
