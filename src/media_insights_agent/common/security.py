"""
Утилиты авторизации.

Поддерживаемые режимы (AUTH_MODE):
- none: без авторизации (pass-through gate)
- api_key: проверка X-API-Key или Bearer <key> по списку API_KEYS
"""

from __future__ import annotations

from dataclasses import dataclass

from .config import get_settings
from .errors import UnauthorizedError


def _parse_api_keys(raw: str) -> set[str]:
    """
    Разбор строки API_KEYS из ENV в множество.
    """
    return {k.strip() for k in (raw or "").split(",") if k.strip()}


def _extract_bearer(authorization: str | None) -> str | None:
    if not authorization:
        return None
    prefix = "bearer "
    if authorization.lower().startswith(prefix):
        return authorization[len(prefix) :].strip()
    return None


@dataclass(frozen=True)
class AuthContext:
    subject: str
    auth_type: str


def require_auth(*, authorization: str | None, x_api_key: str | None) -> AuthContext:
    s = get_settings()
    mode = (s.auth_mode or "none").strip().lower()

    if mode == "none":
        return AuthContext(subject="anonymous", auth_type="none")

    if mode != "api_key":
        raise UnauthorizedError(f"Неизвестный AUTH_MODE={mode}")

    keys = _parse_api_keys(s.api_keys)
    if not keys:
        # Ключи не настроены: gate пропускает запросы
        return AuthContext(subject="anonymous", auth_type="none")

    candidate = (x_api_key or "").strip() or (_extract_bearer(authorization) or "")
    if not candidate:
        raise UnauthorizedError("Отсутствует API ключ")
    if candidate not in keys:
        raise UnauthorizedError("Неверный API ключ")
    return AuthContext(subject=f"api_key:{candidate[:4]}***", auth_type="api_key")
