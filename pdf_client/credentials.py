"""Токен доступа и его жизненный цикл"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from .exceptions import ApiError, AuthenticationError

DEFAULT_EXPIRES_IN = 3600
DEFAULT_SAFETY_MARGIN = 60.0

# Статусы ответа на обмен токена, означающие отказ в учётных данных
AUTH_FAILURE_STATUSES = (400, 401, 403)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Credential:
    """Токен доступа. При обновлении заменяется целиком"""

    token: str
    expires_at: datetime
    scheme: str = "Bearer"

    @property
    def authorization_header(self) -> str:
        return f"{self.scheme} {self.token}"

    def is_valid(self, now: datetime, safety_margin: float = DEFAULT_SAFETY_MARGIN) -> bool:
        """Токен пригоден, если до истечения больше safety_margin секунд"""
        return now < self.expires_at - timedelta(seconds=safety_margin)

    @classmethod
    def from_token_response(
        cls, data: dict, now: Optional[datetime] = None
    ) -> "Credential":
        """Создать из ответа {access_token, token_type?, expires_in?}"""
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise AuthenticationError("Token response does not contain access_token")
        now = now or _utcnow()
        expires_in = data.get("expires_in") or DEFAULT_EXPIRES_IN
        return cls(
            token=str(token),
            expires_at=now + timedelta(seconds=float(expires_in)),
            scheme=data.get("token_type") or "Bearer",
        )


class CredentialManager:
    """
    Кэширует токен и обновляет его не чаще одного раза одновременно.

    Потоки, увидевшие отсутствующий или просроченный токен, ждут одно и то же
    обновление и получают один и тот же результат (или одно и то же исключение).
    """

    def __init__(
        self,
        fetch_token: Callable[[], dict],
        safety_margin: float = DEFAULT_SAFETY_MARGIN,
        clock: Optional[Callable[[], datetime]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Args:
            fetch_token: обмен учётных данных на токен, возвращает тело ответа
            safety_margin: запас до истечения токена в секундах
            clock: источник текущего времени (UTC)
            logger: логгер; по умолчанию логгер модуля
        """
        self._fetch_token = fetch_token
        self.safety_margin = safety_margin
        self._clock = clock or _utcnow
        self._logger = logger or logging.getLogger(__name__)

        self._lock = threading.Lock()
        self._credential: Optional[Credential] = None
        self._inflight: Optional[Future] = None
        self._refresh_count = 0

    @property
    def refresh_count(self) -> int:
        """Сколько обменов токена выполнено"""
        return self._refresh_count

    @property
    def current(self) -> Optional[Credential]:
        return self._credential

    def get_token(self) -> Credential:
        """Получить действующий токен, при необходимости обновив его"""
        with self._lock:
            credential = self._credential
            if credential is not None and credential.is_valid(self._clock(), self.safety_margin):
                return credential

            future = self._inflight
            owner = future is None
            if owner:
                future = Future()
                self._inflight = future

        if not owner:
            # Обновление уже идёт в другом потоке
            return future.result()

        try:
            credential = self._refresh()
        except BaseException as e:
            with self._lock:
                self._inflight = None
            future.set_exception(e)
            raise

        with self._lock:
            self._credential = credential
            self._inflight = None
        future.set_result(credential)
        return credential

    def invalidate(self, stale: Optional[Credential] = None) -> None:
        """Сбросить кэш. Если задан stale - только если в кэше именно он"""
        with self._lock:
            if stale is None or self._credential == stale:
                self._credential = None

    def _refresh(self) -> Credential:
        self._logger.debug("Обмен учётных данных на токен")
        try:
            data = self._fetch_token()
        except ApiError as e:
            if e.status_code in AUTH_FAILURE_STATUSES:
                raise AuthenticationError(
                    f"Token exchange rejected: {e.message}",
                    status_code=e.status_code,
                    request_id=e.request_id,
                    details=e.details,
                ) from e
            raise

        credential = Credential.from_token_response(data, now=self._clock())
        self._refresh_count += 1
        self._logger.info(f"Токен обновлён, истекает {credential.expires_at.isoformat()}")
        return credential
