"""
Pytest configuration and fixtures for pdf_client tests.

HTTP goes through httpx.MockTransport, no test touches the network.
"""

import json
from collections import defaultdict
from typing import Callable, Dict, List, Tuple

import httpx
import pytest

from pdf_client import PdfServicesClient, Settings

BASE_URL = "https://pdf.test"


def respond(status: int = 200, body=None, headers=None, content: bytes = None) -> Callable:
    """Фабрика ответа: каждый вызов создаёт новый httpx.Response."""

    def factory(request: httpx.Request) -> httpx.Response:
        if content is not None:
            return httpx.Response(status, content=content, headers=headers)
        if body is None:
            return httpx.Response(status, headers=headers)
        return httpx.Response(status, json=body, headers=headers)

    return factory


def fail(exc_factory: Callable[[httpx.Request], Exception]) -> Callable:
    """Фабрика сетевой ошибки."""

    def factory(request: httpx.Request) -> httpx.Response:
        raise exc_factory(request)

    return factory


class FakeApi:
    """
    Программируемый сервер PDF Services.

    Ответы на (method, path) выдаются по очереди; последний повторяется.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self._routes: Dict[Tuple[str, str], List[Callable]] = defaultdict(list)
        self.token_counter = 0
        self.on("POST", "/token", self._issue_token)

    def _issue_token(self, request: httpx.Request) -> httpx.Response:
        self.token_counter += 1
        return httpx.Response(
            200,
            json={
                "access_token": f"token-{self.token_counter}",
                "token_type": "Bearer",
                "expires_in": 3600,
            },
        )

    def on(self, method: str, path: str, *responses: Callable) -> "FakeApi":
        self._routes[(method.upper(), path)] = list(responses)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self._routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"error": "not_found"})
        factory = queue.pop(0) if len(queue) > 1 else queue[0]
        return factory(request)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method.upper() and r.url.path == path
        ]

    def json_body(self, request: httpx.Request) -> dict:
        return json.loads(request.content.decode("utf-8"))

    @property
    def token_calls(self) -> List[httpx.Request]:
        return self.calls("POST", "/token")


@pytest.fixture
def api():
    return FakeApi()


@pytest.fixture
def settings():
    return Settings(
        client_id="client-id",
        client_secret="client-secret",
        api_key="api-key",
        base_url=BASE_URL,
        max_retries=3,
        backoff_base=0.0,
        backoff_max=0.0,
        poll_interval=0.01,
        max_wait=2.0,
    )


@pytest.fixture
def http_client(api):
    client = httpx.Client(base_url=BASE_URL, transport=httpx.MockTransport(api.handler))
    yield client
    client.close()


@pytest.fixture
def events():
    return []


@pytest.fixture
def client(settings, http_client, events):
    with PdfServicesClient(
        settings,
        http_client=http_client,
        on_request=events.append,
        sleep=lambda seconds: None,
    ) as pdf_client:
        yield pdf_client


@pytest.fixture
def processor(client):
    return client.batch()


def batch_response(batch_id="batch-1", status="processing", results=None, **extra) -> dict:
    """Тело ответа GET /operation/batch/{id}."""
    body = {
        "batchId": batch_id,
        "status": status,
        "created": "2026-01-10T12:00:00Z",
    }
    if results is not None:
        body["results"] = results
    body.update(extra)
    return body
