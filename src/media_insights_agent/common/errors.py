"""
Единые ошибки и коды ошибок.

Назначение:
- предсказуемые коды для HTTP/очереди/статуса сущностей
- типизированная классификация ошибок провайдеров (без разбора строк в пайплайне)
- единый стиль исключений по проекту
"""

from __future__ import annotations

from dataclasses import dataclass


class ErrCode:
    # Общие
    UNKNOWN = "unknown"
    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    CONFIGURATION = "configuration"
    EMPTY_RESULT = "empty_result"

    # Провайдеры
    STT_PROVIDER_ERROR = "stt_provider_error"
    LLM_PROVIDER_ERROR = "llm_provider_error"
    VIDEO_PROVIDER_ERROR = "video_provider_error"
    CONTENT_PROVIDER_ERROR = "content_provider_error"
    SIZE_LIMIT_EXCEEDED = "size_limit_exceeded"
    RATE_LIMITED = "rate_limited"

    # Инфра/хранилища
    DB_ERROR = "db_error"
    STORAGE_ERROR = "storage_error"
    MEDIA_TOOL_ERROR = "media_tool_error"


@dataclass
class AppError(Exception):
    """
    Базовая ошибка приложения.
    - code: стабильный код ошибки
    - message: безопасное сообщение
    - details: доп. данные (без секретов/PII)
    """

    code: str
    message: str
    details: dict | None = None

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.code}: {self.message}"


class ValidationError(AppError):
    def __init__(self, message: str = "Ошибка валидации", details: dict | None = None) -> None:
        super().__init__(ErrCode.VALIDATION, message, details)


class UnauthorizedError(AppError):
    def __init__(self, message: str = "Не авторизован", details: dict | None = None) -> None:
        super().__init__(ErrCode.UNAUTHORIZED, message, details)


class NotFoundError(AppError):
    def __init__(self, message: str = "Не найдено", details: dict | None = None) -> None:
        super().__init__(ErrCode.NOT_FOUND, message, details)


class ConfigurationError(AppError):
    """Отсутствует/некорректна конфигурация (ключ API, шаблон промпта)."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(ErrCode.CONFIGURATION, message, details)


class EmptyResultError(AppError):
    """Извлечение/транскрибация ничего не вернули."""

    def __init__(self, message: str = "Пустой результат", details: dict | None = None) -> None:
        super().__init__(ErrCode.EMPTY_RESULT, message, details)


class MediaToolError(AppError):
    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(ErrCode.MEDIA_TOOL_ERROR, message, details)


class ProviderError(AppError):
    """
    Ошибка внешнего провайдера.
    retryable=True означает, что повтор запроса имеет смысл (429/5xx/сеть).
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: dict | None = None,
        *,
        retryable: bool = False,
    ) -> None:
        super().__init__(code, message, details)
        self.retryable = retryable


class RateLimited(ProviderError):
    def __init__(self, message: str = "Провайдер ограничил частоту запросов", details: dict | None = None) -> None:
        super().__init__(ErrCode.RATE_LIMITED, message, details, retryable=True)


class SizeLimitExceeded(ProviderError):
    """Payload больше лимита провайдера. Повтор бессмыслен."""

    def __init__(
        self,
        size_bytes: int,
        *,
        path: str | None = None,
        limit_bytes: int | None = None,
        message: str | None = None,
    ) -> None:
        size_mb = size_bytes / (1024 * 1024)
        msg = message or (
            f"Файл слишком большой для транскрибации: {size_mb:.2f} MB. "
            "Установите ffmpeg или укажите FFMPEG_PATH, чтобы включить разбиение на части."
        )
        super().__init__(
            ErrCode.SIZE_LIMIT_EXCEEDED,
            msg,
            {"size_bytes": size_bytes, "path": path, "limit_bytes": limit_bytes},
            retryable=False,
        )
        self.size_bytes = size_bytes
        self.path = path
