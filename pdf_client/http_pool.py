"""HTTP connection pooling для клиента PDF Services"""
from __future__ import annotations

import httpx
from httpx import Limits

from ._metadata import get_user_agent

DEFAULT_LIMITS = Limits(max_connections=10, max_keepalive_connections=5)


def create_http_client(base_url: str, timeout: float = 120.0) -> httpx.Client:
    """Создать HTTP клиент с connection pooling.

    Клиент потокобезопасен, один экземпляр разделяется всеми потоками Transport.
    """
    return httpx.Client(
        base_url=base_url,
        limits=DEFAULT_LIMITS,
        timeout=timeout,
        headers={"User-Agent": get_user_agent()},
    )
