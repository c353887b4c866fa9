"""Клиент PDF Services: сборка токена, транспорта и оркестратора пакетов"""
from __future__ import annotations

import logging
from typing import Callable, Optional

import httpx

from .batch_processor import BatchProcessor
from .credentials import CredentialManager
from .exceptions import PdfServicesError, TransportError
from .settings import Settings
from .transport import RequestEvent, RetryPolicy, Transport


class PdfServicesClient:
    """
    Точка входа SDK.

    Использование:
        with PdfServicesClient(Settings.from_env()) as client:
            batch = client.batch().create_and_execute_batch(operations)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        http_client: Optional[httpx.Client] = None,
        on_request: Optional[Callable[[RequestEvent], None]] = None,
        logger: Optional[logging.Logger] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        """
        Args:
            settings: настройки; по умолчанию из окружения
            http_client: готовый httpx.Client (например, с MockTransport)
            on_request: хук, вызываемый на каждую HTTP попытку
            logger: логгер для всех компонентов клиента
            sleep: функция паузы между ретраями
        """
        self.settings = (settings or Settings.from_env()).validate()
        self._logger = logger or logging.getLogger(__name__)

        transport_kwargs = {}
        if sleep is not None:
            transport_kwargs["sleep"] = sleep
        self._transport = Transport(
            self.settings.resolved_base_url,
            retry_policy=RetryPolicy(
                max_retries=self.settings.max_retries,
                backoff_base=self.settings.backoff_base,
                backoff_max=self.settings.backoff_max,
            ),
            timeout=self.settings.timeout,
            api_key=self.settings.api_key or None,
            extra_headers=self._extra_headers(),
            http_client=http_client,
            on_request=on_request,
            logger=logger,
            **transport_kwargs,
        )
        self._credentials = CredentialManager(
            self._exchange_token,
            safety_margin=self.settings.token_safety_margin,
            logger=logger,
        )
        self._transport.credentials = self._credentials
        self._batch = BatchProcessor(
            self._transport,
            poll_interval=self.settings.poll_interval,
            max_wait=self.settings.max_wait,
            max_tracked_batches=self.settings.max_tracked_batches,
            logger=logger,
        )

        self._logger.info(
            f"PdfServicesClient initialized: base_url={self.settings.resolved_base_url}, "
            f"client_id={self.settings.client_id}, "
            f"api_key={'***' if self.settings.api_key else 'None'}"
        )

    def __enter__(self) -> "PdfServicesClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def close(self) -> None:
        self._transport.close()

    @property
    def credentials(self) -> CredentialManager:
        return self._credentials

    @property
    def transport(self) -> Transport:
        return self._transport

    def batch(self) -> BatchProcessor:
        """Сервис пакетной обработки"""
        return self._batch

    def health(self) -> bool:
        """Проверить, что учётные данные принимаются сервисом"""
        try:
            self._credentials.get_token()
            return True
        except TransportError as e:
            self._logger.debug(f"Health check network error: {e}")
            return False
        except PdfServicesError as e:
            self._logger.warning(f"Health check failed: {e}")
            return False

    def _extra_headers(self) -> dict:
        headers = dict(self.settings.extra_headers)
        if self.settings.organization_id:
            headers["x-organization-id"] = self.settings.organization_id
        return headers

    def _exchange_token(self) -> dict:
        """Обмен client credentials на токен (без Authorization)"""
        form = {
            "grant_type": "client_credentials",
            "client_id": self.settings.client_id,
            "client_secret": self.settings.client_secret,
        }
        if self.settings.scope:
            form["scope"] = self.settings.scope
        return self._transport.send(
            "POST", self.settings.token_path, form=form, authenticate=False
        )
