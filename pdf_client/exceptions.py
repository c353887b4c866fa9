"""Исключения клиента PDF Services"""
from __future__ import annotations

from typing import Any, Mapping, Optional


class PdfServicesError(Exception):
    """Базовая ошибка PDF Services"""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        request_id: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.request_id = request_id
        self.details = details

    def __str__(self) -> str:
        parts = [self.message]
        if self.status_code is not None:
            parts.append(f"status={self.status_code}")
        if self.request_id:
            parts.append(f"request-id={self.request_id}")
        return " | ".join(parts)

    @classmethod
    def from_error_body(
        cls,
        body: Any,
        status_code: int,
        headers: Optional[Mapping[str, str]] = None,
    ) -> "PdfServicesError":
        """Создать исключение из тела ошибки API: {error?, error_description?, request-id?}"""
        if not isinstance(body, dict):
            body = {}
        message = body.get("error_description") or body.get("error") or "Unknown API error"
        request_id = body.get("request-id")
        if not request_id and headers is not None:
            request_id = headers.get("x-request-id")
        return cls(
            str(message),
            status_code=status_code,
            request_id=request_id,
            details=body or None,
        )


class ValidationError(PdfServicesError):
    """Ошибка валидации на стороне клиента (до обращения к сети)"""

    pass


class AuthenticationError(PdfServicesError):
    """Отказ в аутентификации (401) или ошибка обмена токена"""

    pass


class ApiError(PdfServicesError):
    """Ответ API со статусом >= 400 (кроме 401) или нечитаемый ответ"""

    pass


class TransportError(PdfServicesError):
    """Сетевая ошибка: ответ не получен после всех попыток"""

    def __init__(self, message: str, *, attempts: int = 1, **kwargs):
        super().__init__(message, **kwargs)
        self.attempts = attempts


class BatchTimeoutError(PdfServicesError, TimeoutError):
    """Истекло время ожидания пакета (локальный дедлайн, не ошибка сервера)"""

    def __init__(self, message: str, *, batch=None, **kwargs):
        super().__init__(message, **kwargs)
        self.batch = batch


class PollCancelledError(PdfServicesError):
    """Ожидание пакета прервано внешним сигналом отмены"""

    def __init__(self, message: str, *, batch=None, **kwargs):
        super().__init__(message, **kwargs)
        self.batch = batch
