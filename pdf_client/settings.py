from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from .exceptions import ValidationError

PRODUCTION_BASE_URL = "https://pdf-services.adobe.io"
ALTERNATE_BASE_URL = "https://pdf-services-ue1.adobe.io"


def _env_float(name: str, default: str) -> float:
    return float(os.getenv(name, default))


def _env_int(name: str, default: str) -> int:
    return int(os.getenv(name, default))


@dataclass(frozen=True)
class Settings:
    """Настройки клиента PDF Services"""

    # Учётные данные
    api_key: str = ""
    client_id: str = ""
    client_secret: str = ""
    organization_id: str = ""

    # production или любой другой регион (staging, ue1, ...)
    environment: str = "production"
    # Если задан, перекрывает URL окружения
    base_url: str = ""
    token_path: str = "/token"
    scope: str = ""

    # HTTP
    timeout: float = 120.0
    max_retries: int = 3  # дополнительные попытки после первой
    backoff_base: float = 1.0
    backoff_max: float = 30.0

    # Запас до истечения токена (сек)
    token_safety_margin: float = 60.0

    # Ожидание пакета
    poll_interval: float = 5.0
    max_wait: float = 300.0
    # Сколько пакетов BatchProcessor помнит до терминального статуса
    max_tracked_batches: int = 1000

    extra_headers: dict = field(default_factory=dict)

    @property
    def resolved_base_url(self) -> str:
        """URL API с учётом окружения"""
        if self.base_url:
            return self.base_url.rstrip("/")
        if self.environment == "production":
            return PRODUCTION_BASE_URL
        return ALTERNATE_BASE_URL

    def validate(self) -> "Settings":
        """Проверить настройки, ValidationError при ошибке"""
        if not self.client_id:
            raise ValidationError("client_id is required (PDF_SERVICES_CLIENT_ID)")
        if not self.client_secret:
            raise ValidationError("client_secret is required (PDF_SERVICES_CLIENT_SECRET)")
        if self.max_retries < 0:
            raise ValidationError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.timeout <= 0:
            raise ValidationError(f"timeout must be positive, got {self.timeout}")
        if self.poll_interval <= 0:
            raise ValidationError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.max_wait <= 0:
            raise ValidationError(f"max_wait must be positive, got {self.max_wait}")
        if self.backoff_base < 0 or self.backoff_max < 0:
            raise ValidationError("backoff_base and backoff_max must be >= 0")
        if self.max_tracked_batches < 1:
            raise ValidationError(
                f"max_tracked_batches must be >= 1, got {self.max_tracked_batches}"
            )
        return self

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        """Прочитать настройки из переменных окружения (и .env)"""
        if dotenv:
            load_dotenv()
        return cls(
            api_key=os.getenv("PDF_SERVICES_API_KEY", ""),
            client_id=os.getenv("PDF_SERVICES_CLIENT_ID", ""),
            client_secret=os.getenv("PDF_SERVICES_CLIENT_SECRET", ""),
            organization_id=os.getenv("PDF_SERVICES_ORGANIZATION_ID", ""),
            environment=os.getenv("PDF_SERVICES_ENVIRONMENT", "production"),
            base_url=os.getenv("PDF_SERVICES_BASE_URL", ""),
            token_path=os.getenv("PDF_SERVICES_TOKEN_PATH", "/token"),
            scope=os.getenv("PDF_SERVICES_SCOPE", ""),
            timeout=_env_float("PDF_SERVICES_TIMEOUT", "120"),
            max_retries=_env_int("PDF_SERVICES_MAX_RETRIES", "3"),
            backoff_base=_env_float("PDF_SERVICES_BACKOFF_BASE", "1.0"),
            backoff_max=_env_float("PDF_SERVICES_BACKOFF_MAX", "30"),
            token_safety_margin=_env_float("PDF_SERVICES_TOKEN_SAFETY_MARGIN", "60"),
            poll_interval=_env_float("PDF_SERVICES_POLL_INTERVAL", "5"),
            max_wait=_env_float("PDF_SERVICES_MAX_WAIT", "300"),
            max_tracked_batches=_env_int("PDF_SERVICES_MAX_TRACKED_BATCHES", "1000"),
        )
