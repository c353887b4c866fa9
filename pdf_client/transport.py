"""HTTP транспорт: один логический запрос к API с ретраями и классификацией ошибок"""
from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import httpx

from .credentials import Credential, CredentialManager
from .exceptions import ApiError, AuthenticationError, PdfServicesError, TransportError
from .http_pool import create_http_client

# Ошибки, при которых ответ не получен вовсе
NETWORK_ERRORS = (
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.ReadTimeout,
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)


def is_transient_status(status_code: int) -> bool:
    """429 и 5xx - временные ошибки, их можно повторить"""
    return status_code == 429 or status_code >= 500


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff с jitter"""

    max_retries: int = 3
    backoff_base: float = 1.0
    backoff_max: float = 30.0

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def compute_delay(self, attempt: int, retry_after: Optional[float] = None) -> float:
        """Задержка перед следующей попыткой (attempt - номер неудачной попытки, с 1)"""
        if retry_after is not None:
            return max(0.0, min(retry_after, self.backoff_max))
        delay = min(self.backoff_max, self.backoff_base * 2 ** (attempt - 1))
        return delay * random.uniform(0.5, 1.0)


@dataclass(frozen=True)
class RequestEvent:
    """Одна попытка HTTP запроса (для внешнего хука наблюдения)"""

    method: str
    path: str
    attempt: int
    elapsed: float
    outcome: str  # ok | retry | auth_retry | error | network_error
    status_code: Optional[int] = None
    request_id: Optional[str] = None


def _parse_retry_after(response: httpx.Response) -> Optional[float]:
    value = response.headers.get("retry-after")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _is_absolute_url(location: str) -> bool:
    return location.startswith("http://") or location.startswith("https://")


class Transport:
    """
    Выполняет запросы к API PDF Services.

    - добавляет Authorization из CredentialManager (кроме запроса обмена токена)
    - 401 -> AuthenticationError, остальные >= 400 -> ApiError
    - повторяет сетевые ошибки, 429 и 5xx с exponential backoff
    - на 401 один раз обновляет токен и повторяет запрос
    """

    def __init__(
        self,
        base_url: str,
        *,
        credentials: Optional[CredentialManager] = None,
        retry_policy: Optional[RetryPolicy] = None,
        timeout: float = 120.0,
        api_key: Optional[str] = None,
        extra_headers: Optional[dict] = None,
        http_client: Optional[httpx.Client] = None,
        on_request: Optional[Callable[[RequestEvent], None]] = None,
        logger: Optional[logging.Logger] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.credentials = credentials
        self.retry_policy = retry_policy or RetryPolicy()
        self.timeout = timeout
        self.api_key = api_key
        self.extra_headers = dict(extra_headers or {})
        self._owns_client = http_client is None
        self._client = http_client or create_http_client(self.base_url, timeout)
        self._on_request = on_request
        self._logger = logger or logging.getLogger(__name__)
        self._sleep = sleep

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def close(self) -> None:
        """Закрыть пул соединений, если он создан транспортом"""
        if self._owns_client:
            self._client.close()

    def _headers(
        self,
        credential: Optional[Credential],
        headers: Optional[dict],
        service_headers: bool = True,
    ) -> dict:
        """Получить заголовки для запроса"""
        result = {"Accept": "application/json"}
        if not service_headers:
            # Чужой хост (pre-signed URL): ни ключа, ни заголовков сервиса
            return result
        if self.api_key:
            result["x-api-key"] = self.api_key
        result.update(self.extra_headers)
        if headers:
            result.update(headers)
        if credential is not None:
            result["Authorization"] = credential.authorization_header
        return result

    def send(
        self,
        method: str,
        path: str,
        payload: Optional[dict] = None,
        headers: Optional[dict] = None,
        *,
        form: Optional[dict] = None,
        params: Optional[dict] = None,
        authenticate: bool = True,
        idempotent: bool = True,
    ) -> dict:
        """
        Выполнить запрос и вернуть декодированное JSON тело ответа.

        Args:
            method: HTTP метод
            path: путь относительно base_url
            payload: JSON тело
            headers: дополнительные заголовки
            form: form-urlencoded тело (для обмена токена)
            params: query параметры
            authenticate: добавлять ли Authorization
            idempotent: можно ли повторять запрос при временных ошибках

        Raises:
            AuthenticationError, ApiError, TransportError
        """
        kwargs = {}
        if payload is not None:
            kwargs["json"] = payload
        if form is not None:
            kwargs["data"] = form
        if params:
            kwargs["params"] = params

        response = self._execute(
            method,
            path,
            headers=headers,
            authenticate=authenticate,
            idempotent=idempotent,
            **kwargs,
        )
        return self._decode(response)

    def download(self, location: str) -> Tuple[bytes, Optional[str]]:
        """
        Скачать результат по адресу из ответа API.

        Абсолютные URL считаются pre-signed и запрашиваются без Authorization,
        x-api-key и дополнительных заголовков. Относительные пути - от base_url
        с токеном.

        Returns:
            (содержимое, content-type)
        """
        external = _is_absolute_url(location)
        response = self._execute(
            "GET", location, authenticate=not external, service_headers=not external
        )
        return response.content, response.headers.get("content-type")

    def _execute(
        self,
        method: str,
        path: str,
        *,
        headers: Optional[dict] = None,
        authenticate: bool = True,
        idempotent: bool = True,
        service_headers: bool = True,
        **kwargs,
    ) -> httpx.Response:
        """Цикл попыток. Возвращает ответ со статусом < 400"""
        method = method.upper()
        retries_left = self.retry_policy.max_retries if idempotent else 0
        auth_retry_used = False
        failures = 0
        attempt = 0

        while True:
            attempt += 1
            credential = None
            if authenticate and self.credentials is not None:
                credential = self.credentials.get_token()

            started = time.monotonic()
            try:
                response = self._client.request(
                    method,
                    path,
                    headers=self._headers(credential, headers, service_headers),
                    timeout=self.timeout,
                    **kwargs,
                )
            except NETWORK_ERRORS as e:
                elapsed = time.monotonic() - started
                failures += 1
                self._emit(RequestEvent(method, path, attempt, elapsed, "network_error"))
                if retries_left > 0:
                    retries_left -= 1
                    delay = self.retry_policy.compute_delay(failures)
                    self._logger.warning(
                        f"Сетевая ошибка {method} {path}: {e}, ретрай через {delay:.2f}с",
                        extra={"method": method, "path": path, "attempt": attempt, "retry_delay": delay},
                    )
                    self._sleep(delay)
                    continue
                self._logger.error(
                    f"Все попытки {method} {path} исчерпаны: {e}",
                    extra={"method": method, "path": path, "attempt": attempt},
                )
                raise TransportError(
                    f"{method} {path} failed after {attempt} attempt(s): {e}",
                    attempts=attempt,
                ) from e

            elapsed = time.monotonic() - started
            status = response.status_code

            if status < 400:
                self._emit(
                    RequestEvent(
                        method, path, attempt, elapsed, "ok", status,
                        response.headers.get("x-request-id"),
                    )
                )
                return response

            error = self._classify_error(response)

            if status == 401 and credential is not None and not auth_retry_used:
                # Токен мог быть отозван раньше срока - один раз берём новый
                auth_retry_used = True
                self._emit(
                    RequestEvent(method, path, attempt, elapsed, "auth_retry", status, error.request_id)
                )
                self._logger.info(
                    f"{method} {path}: 401, обновляем токен и повторяем",
                    extra={"method": method, "path": path, "request_id": error.request_id},
                )
                self.credentials.invalidate(credential)
                continue

            if is_transient_status(status) and retries_left > 0:
                retries_left -= 1
                failures += 1
                delay = self.retry_policy.compute_delay(failures, _parse_retry_after(response))
                self._emit(
                    RequestEvent(method, path, attempt, elapsed, "retry", status, error.request_id)
                )
                self._logger.warning(
                    f"Сервер вернул {status} на {method} {path}, ретрай через {delay:.2f}с",
                    extra={
                        "method": method,
                        "path": path,
                        "attempt": attempt,
                        "status_code": status,
                        "retry_delay": delay,
                    },
                )
                self._sleep(delay)
                continue

            self._emit(RequestEvent(method, path, attempt, elapsed, "error", status, error.request_id))
            self._logger.error(
                f"{method} {path} error response: {status} {error.message}",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": status,
                    "request_id": error.request_id,
                },
            )
            raise error

    def _classify_error(self, response: httpx.Response) -> PdfServicesError:
        """401 -> AuthenticationError, прочие >= 400 -> ApiError"""
        try:
            body = response.json()
        except ValueError:
            body = {}
        error_cls = AuthenticationError if response.status_code == 401 else ApiError
        return error_cls.from_error_body(body, response.status_code, response.headers)

    def _decode(self, response: httpx.Response) -> dict:
        """Декодировать успешный ответ. Ошибка декодирования не повторяется"""
        if not response.content:
            return {}
        request_id = response.headers.get("x-request-id")
        try:
            data = response.json()
        except ValueError as e:
            raise ApiError(
                f"Invalid JSON in response: {e}",
                status_code=response.status_code,
                request_id=request_id,
            ) from e
        if not isinstance(data, dict):
            raise ApiError(
                f"Unexpected response payload type: {type(data).__name__}",
                status_code=response.status_code,
                request_id=request_id,
            )
        return data

    def _emit(self, event: RequestEvent) -> None:
        self._logger.debug(
            f"{event.method} {event.path} -> {event.outcome} "
            f"(attempt {event.attempt}, {event.elapsed * 1000:.0f}ms)",
            extra={
                "method": event.method,
                "path": event.path,
                "attempt": event.attempt,
                "elapsed_ms": round(event.elapsed * 1000, 1),
                "outcome": event.outcome,
                "status_code": event.status_code,
                "request_id": event.request_id,
            },
        )
        if self._on_request is not None:
            self._on_request(event)
