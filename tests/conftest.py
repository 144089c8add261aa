"""Shared fixtures: isolated home directory and an in-memory secret store API."""
import itertools
import re
from pathlib import Path
from typing import Dict, Tuple
from urllib.parse import parse_qs

import httpx
import pytest

from product_describer.platform_client import PlatformAPIClient
from product_describer.secrets.domains import preferences
from product_describer.secrets.domains.secret_store import SecretStoreClient

PLATFORM_URL = "https://api.platform.test"
SECRETS_URL_PATTERN = re.compile(r"https://api\.platform\.test/v1/apps/secrets.*")


@pytest.fixture
def temp_home(tmp_path, monkeypatch):
    """Fixture to create a temporary home directory for testing."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()
    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setattr(Path, "home", lambda: fake_home)

    fake_config_dir = fake_home / ".config" / "product-describer"
    monkeypatch.setattr(preferences, "PREFERENCES_DIR", fake_config_dir)
    monkeypatch.setattr(preferences, "PREFERENCES_FILE", fake_config_dir / "preferences.json")

    return fake_home


class FakeSecretStoreAPI:
    """In-memory stand-in for the secret store endpoints, served via httpx_mock."""

    def __init__(self):
        self.secrets: Dict[Tuple, dict] = {}
        self._ids = itertools.count(1)

    def _fields(self, request: httpx.Request) -> Dict[str, str]:
        if request.method == "GET":
            return dict(request.url.params)
        return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}

    def _public(self, secret: dict, include_payload: bool) -> dict:
        data = dict(secret)
        if not include_payload:
            data["payload"] = None
        return data

    def _not_found(self, name: str) -> httpx.Response:
        return httpx.Response(404, json={
            "error": {
                "type": "invalid_request_error",
                "code": "resource_missing",
                "message": f"No such secret: '{name}'",
            }
        })

    def __call__(self, request: httpx.Request) -> httpx.Response:
        fields = self._fields(request)
        scope = {"type": fields.get("scope[type]")}
        if fields.get("scope[user]"):
            scope["user"] = fields["scope[user]"]
        scope_key = (scope["type"], scope.get("user"))
        name = fields.get("name")
        path = request.url.path

        if path == "/v1/apps/secrets" and request.method == "POST":
            secret = {
                "id": f"appsecret_{next(self._ids)}",
                "object": "apps.secret",
                "name": name,
                "payload": fields["payload"],
                "expires_at": int(fields["expires_at"]) if "expires_at" in fields else None,
                "scope": scope,
                "livemode": False,
            }
            self.secrets[scope_key + (name,)] = secret
            return httpx.Response(200, json=self._public(secret, False))

        if path == "/v1/apps/secrets/find":
            secret = self.secrets.get(scope_key + (name,))
            if secret is None:
                return self._not_found(name)
            return httpx.Response(200, json=self._public(secret, fields.get("expand[]") == "payload"))

        if path == "/v1/apps/secrets/delete":
            secret = self.secrets.pop(scope_key + (name,), None)
            if secret is None:
                return self._not_found(name)
            return httpx.Response(200, json={**self._public(secret, False), "deleted": True})

        if path == "/v1/apps/secrets":
            expand_payload = fields.get("expand[]") == "data.payload"
            data = [
                self._public(secret, expand_payload)
                for key, secret in self.secrets.items()
                if key[:2] == scope_key
            ]
            return httpx.Response(200, json={"object": "list", "data": data, "has_more": False})

        return httpx.Response(400, json={"error": {"message": f"Unhandled path {path}"}})


@pytest.fixture
def fake_store_api(httpx_mock):
    fake = FakeSecretStoreAPI()
    httpx_mock.add_callback(fake, url=SECRETS_URL_PATTERN, is_reusable=True)
    return fake


@pytest.fixture
def platform_api():
    return PlatformAPIClient("sk_test_platform", base_url=PLATFORM_URL, timeout=5.0)


@pytest.fixture
def store(platform_api):
    return SecretStoreClient(platform_api)
