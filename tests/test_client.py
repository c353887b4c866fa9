"""
Tests for Settings and PdfServicesClient wiring.
"""

from dataclasses import replace
from urllib.parse import parse_qs

import httpx
import pytest

from conftest import fail, respond
from pdf_client import PdfServicesClient, Settings, __version__
from pdf_client.exceptions import ValidationError
from pdf_client.settings import ALTERNATE_BASE_URL, PRODUCTION_BASE_URL


class TestSettings:
    def test_defaults(self):
        settings = Settings(client_id="id", client_secret="secret")
        assert settings.timeout == 120.0
        assert settings.max_retries == 3
        assert settings.poll_interval == 5.0
        assert settings.max_wait == 300.0
        assert settings.token_safety_margin == 60.0
        assert settings.max_tracked_batches == 1000
        assert settings.resolved_base_url == PRODUCTION_BASE_URL

    def test_environment_selects_base_url(self):
        assert Settings(environment="staging").resolved_base_url == ALTERNATE_BASE_URL
        assert Settings(base_url="https://custom.test/").resolved_base_url == "https://custom.test"

    @pytest.mark.parametrize("overrides", [
        {"client_id": ""},
        {"client_secret": ""},
        {"max_retries": -1},
        {"timeout": 0},
        {"poll_interval": 0},
        {"max_wait": -5},
        {"backoff_base": -1},
        {"max_tracked_batches": 0},
    ])
    def test_validate(self, overrides):
        settings = replace(Settings(client_id="id", client_secret="secret"), **overrides)
        with pytest.raises(ValidationError):
            settings.validate()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("PDF_SERVICES_CLIENT_ID", "env-id")
        monkeypatch.setenv("PDF_SERVICES_CLIENT_SECRET", "env-secret")
        monkeypatch.setenv("PDF_SERVICES_API_KEY", "env-key")
        monkeypatch.setenv("PDF_SERVICES_ENVIRONMENT", "ue1")
        monkeypatch.setenv("PDF_SERVICES_MAX_RETRIES", "5")
        monkeypatch.setenv("PDF_SERVICES_POLL_INTERVAL", "2.5")
        monkeypatch.setenv("PDF_SERVICES_MAX_TRACKED_BATCHES", "50")

        settings = Settings.from_env(dotenv=False)

        assert settings.client_id == "env-id"
        assert settings.client_secret == "env-secret"
        assert settings.api_key == "env-key"
        assert settings.max_retries == 5
        assert settings.poll_interval == 2.5
        assert settings.max_tracked_batches == 50
        assert settings.resolved_base_url == ALTERNATE_BASE_URL

    def test_client_rejects_missing_credentials(self, http_client):
        with pytest.raises(ValidationError):
            PdfServicesClient(Settings(), http_client=http_client)


class TestClient:
    def test_token_exchange_form(self, api, client):
        assert client.health() is True

        request = api.token_calls[0]
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        form = parse_qs(request.content.decode())
        assert form == {
            "grant_type": ["client_credentials"],
            "client_id": ["client-id"],
            "client_secret": ["client-secret"],
        }
        assert "Authorization" not in request.headers

    def test_scope_and_organization(self, api, settings, http_client):
        settings = replace(settings, scope="pdf_services", organization_id="org-1", token_path="/ims/token")
        api.on("POST", "/ims/token", respond(200, {"access_token": "ims", "expires_in": 60}))
        api.on("GET", "/ping", respond(200, {}))

        with PdfServicesClient(settings, http_client=http_client) as pdf_client:
            pdf_client.transport.send("GET", "/ping")

        token_form = parse_qs(api.calls("POST", "/ims/token")[0].content.decode())
        assert token_form["scope"] == ["pdf_services"]
        ping = api.calls("GET", "/ping")[0]
        assert ping.headers["x-organization-id"] == "org-1"
        assert ping.headers["Authorization"] == "Bearer ims"

    def test_health_false_on_rejected_credentials(self, api, client):
        api.on("POST", "/token", respond(401, {"error": "invalid_client"}))
        assert client.health() is False

    def test_health_false_on_network_error(self, api, client):
        api.on("POST", "/token", fail(lambda r: httpx.ConnectError("down", request=r)))
        assert client.health() is False

    def test_request_hook_sees_every_attempt(self, api, client, events):
        api.on("GET", "/ping", respond(503, {}), respond(200, {}))

        client.transport.send("GET", "/ping")

        assert [(e.method, e.path, e.outcome) for e in events] == [
            ("POST", "/token", "ok"),
            ("GET", "/ping", "retry"),
            ("GET", "/ping", "ok"),
        ]

    def test_batch_returns_shared_processor(self, client):
        assert client.batch() is client.batch()
        assert client.batch().max_tracked_batches == client.settings.max_tracked_batches

    def test_version(self):
        assert __version__ == "0.1.0"
