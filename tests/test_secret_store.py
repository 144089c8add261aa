"""Tests for the scope-partitioned secret store client.

Covers:
- create / find round trip, including expiry
- NotFound for never-created and deleted secrets
- Scope isolation between users
- Request construction (auth header, form encoding, payload expansion)
- Error translation to NotFound / RemoteError
- list pagination
"""
import re
from urllib.parse import parse_qs

import httpx
import pytest
from pytest_httpx import HTTPXMock

from product_describer.errors import NotFound, RemoteError
from product_describer.secrets.domains.models import CREDENTIAL_NAME, Scope, Secret

SECRETS_URL_PATTERN = re.compile(r"https://api\.platform\.test/v1/apps/secrets.*")


class TestLifecycle:
    """Create, find, delete and list against the in-memory store."""

    @pytest.mark.asyncio
    async def test_create_then_find_returns_payload(self, store, fake_store_api):
        scope = Scope.for_user("usr_1")

        created = await store.create(scope, CREDENTIAL_NAME, "sk-abc123")
        found = await store.find(scope, CREDENTIAL_NAME)

        assert created.payload is None
        assert found.name == CREDENTIAL_NAME
        assert found.payload == "sk-abc123"
        assert found.scope == scope

    @pytest.mark.asyncio
    async def test_create_with_expiry_is_reported_back(self, store, fake_store_api):
        scope = Scope.for_user("usr_1")

        created = await store.create(scope, CREDENTIAL_NAME, "sk-abc123", expires_at=1893456000)
        found = await store.find(scope, CREDENTIAL_NAME)

        assert created.expires_at == 1893456000
        assert found.expires_at == 1893456000

    @pytest.mark.asyncio
    async def test_create_again_replaces_payload(self, store, fake_store_api):
        scope = Scope.for_user("usr_1")

        await store.create(scope, CREDENTIAL_NAME, "sk-old")
        await store.create(scope, CREDENTIAL_NAME, "sk-new")

        found = await store.find(scope, CREDENTIAL_NAME)
        assert found.payload == "sk-new"

    @pytest.mark.asyncio
    async def test_find_never_created_raises_not_found(self, store, fake_store_api):
        with pytest.raises(NotFound) as exc_info:
            await store.find(Scope.for_user("usr_1"), CREDENTIAL_NAME)

        assert CREDENTIAL_NAME in exc_info.value.message

    @pytest.mark.asyncio
    async def test_secret_is_invisible_to_other_users(self, store, fake_store_api):
        await store.create(Scope.for_user("usr_1"), CREDENTIAL_NAME, "sk-abc123")

        with pytest.raises(NotFound):
            await store.find(Scope.for_user("usr_2"), CREDENTIAL_NAME)
        with pytest.raises(NotFound):
            await store.find(Scope.account(), CREDENTIAL_NAME)

    @pytest.mark.asyncio
    async def test_delete_where_removes_secret(self, store, fake_store_api):
        scope = Scope.for_user("usr_1")
        await store.create(scope, CREDENTIAL_NAME, "sk-abc123")

        deleted = await store.delete_where(scope, CREDENTIAL_NAME)

        assert deleted.name == CREDENTIAL_NAME
        with pytest.raises(NotFound):
            await store.find(scope, CREDENTIAL_NAME)

    @pytest.mark.asyncio
    async def test_delete_where_missing_raises_not_found(self, store, fake_store_api):
        with pytest.raises(NotFound):
            await store.delete_where(Scope.for_user("usr_1"), CREDENTIAL_NAME)

    @pytest.mark.asyncio
    async def test_list_returns_only_scope_secrets_without_payload(self, store, fake_store_api):
        await store.create(Scope.for_user("usr_1"), CREDENTIAL_NAME, "sk-1")
        await store.create(Scope.for_user("usr_1"), "other_key", "x")
        await store.create(Scope.for_user("usr_2"), CREDENTIAL_NAME, "sk-2")

        secrets = await store.list(Scope.for_user("usr_1"))

        assert [s.name for s in secrets] == [CREDENTIAL_NAME, "other_key"]
        assert all(s.payload is None for s in secrets)


class TestRequestConstruction:
    """HTTP request shape sent to the secret store."""

    @pytest.mark.asyncio
    async def test_create_sends_form_encoded_scope_and_auth(self, store, httpx_mock: HTTPXMock):
        httpx_mock.add_response(
            method="POST",
            url="https://api.platform.test/v1/apps/secrets",
            json={"id": "appsecret_1", "name": CREDENTIAL_NAME, "expires_at": 1893456000},
        )

        await store.create(Scope.for_user("usr_1"), CREDENTIAL_NAME, "sk-abc", expires_at=1893456000)

        request = httpx_mock.get_request()
        assert request.headers["Authorization"] == "Bearer sk_test_platform"
        form = parse_qs(request.content.decode())
        assert form == {
            "name": [CREDENTIAL_NAME],
            "payload": ["sk-abc"],
            "scope[type]": ["user"],
            "scope[user]": ["usr_1"],
            "expires_at": ["1893456000"],
        }

    @pytest.mark.asyncio
    async def test_find_expands_payload(self, store, httpx_mock: HTTPXMock):
        httpx_mock.add_response(
            method="GET",
            url=SECRETS_URL_PATTERN,
            json={"id": "appsecret_1", "name": CREDENTIAL_NAME, "payload": "sk-abc"},
        )

        secret = await store.find(Scope.for_user("usr_1"), CREDENTIAL_NAME)

        request = httpx_mock.get_request()
        assert request.url.path == "/v1/apps/secrets/find"
        assert request.url.params["expand[]"] == "payload"
        assert request.url.params["scope[user]"] == "usr_1"
        assert secret.payload == "sk-abc"
        # Response carries no scope, so the request scope is kept
        assert secret.scope == Scope.for_user("usr_1")

    @pytest.mark.asyncio
    async def test_account_scope_sends_no_user(self, store, httpx_mock: HTTPXMock):
        httpx_mock.add_response(method="GET", url=SECRETS_URL_PATTERN, json={"data": [], "has_more": False})

        await store.list(Scope.account())

        request = httpx_mock.get_request()
        assert request.url.params["scope[type]"] == "account"
        assert "scope[user]" not in request.url.params

    @pytest.mark.asyncio
    async def test_list_with_payload_expands_data_payload(self, store, httpx_mock: HTTPXMock):
        httpx_mock.add_response(
            method="GET",
            url=SECRETS_URL_PATTERN,
            json={
                "data": [{"id": "appsecret_1", "name": CREDENTIAL_NAME, "payload": "sk-abc"}],
                "has_more": False,
            },
        )

        secrets = await store.list(Scope.for_user("usr_1"), include_payload=True)

        request = httpx_mock.get_request()
        assert request.url.params["expand[]"] == "data.payload"
        assert [s.payload for s in secrets] == ["sk-abc"]

    @pytest.mark.asyncio
    async def test_list_without_payload_sends_no_expand(self, store, httpx_mock: HTTPXMock):
        httpx_mock.add_response(method="GET", url=SECRETS_URL_PATTERN, json={"data": [], "has_more": False})

        await store.list(Scope.for_user("usr_1"))

        assert "expand[]" not in httpx_mock.get_request().url.params


class TestErrorTranslation:
    """Store errors surface as NotFound or RemoteError."""

    @pytest.mark.asyncio
    async def test_server_error_raises_remote_error(self, store, httpx_mock: HTTPXMock):
        httpx_mock.add_response(
            method="GET",
            url=SECRETS_URL_PATTERN,
            status_code=500,
            json={"error": {"message": "Something went wrong"}},
        )

        with pytest.raises(RemoteError) as exc_info:
            await store.find(Scope.for_user("usr_1"), CREDENTIAL_NAME)

        assert exc_info.value.status == 500
        assert exc_info.value.message == "Something went wrong"

    @pytest.mark.asyncio
    async def test_auth_error_without_body_uses_status_text(self, store, httpx_mock: HTTPXMock):
        httpx_mock.add_response(method="GET", url=SECRETS_URL_PATTERN, status_code=401, text="nope")

        with pytest.raises(RemoteError) as exc_info:
            await store.find(Scope.for_user("usr_1"), CREDENTIAL_NAME)

        assert exc_info.value.status == 401
        assert "Unauthorized" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_connection_error_raises_remote_error(self, store, httpx_mock: HTTPXMock):
        httpx_mock.add_exception(httpx.ConnectError("connection refused"), url=SECRETS_URL_PATTERN)

        with pytest.raises(RemoteError) as exc_info:
            await store.find(Scope.for_user("usr_1"), CREDENTIAL_NAME)

        assert exc_info.value.status is None
        assert "connection refused" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_timeout_raises_remote_error(self, store, httpx_mock: HTTPXMock):
        httpx_mock.add_exception(httpx.ReadTimeout("slow"), url=SECRETS_URL_PATTERN)

        with pytest.raises(RemoteError) as exc_info:
            await store.delete_where(Scope.for_user("usr_1"), CREDENTIAL_NAME)

        assert "timed out" in exc_info.value.message

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {},
        [],
        {"name": CREDENTIAL_NAME, "scope": {"type": "user"}},
        {"name": CREDENTIAL_NAME, "scope": {"type": "galaxy"}},
    ])
    async def test_malformed_find_body_raises_remote_error(self, store, httpx_mock: HTTPXMock, body):
        httpx_mock.add_response(method="GET", url=SECRETS_URL_PATTERN, json=body)

        with pytest.raises(RemoteError):
            await store.find(Scope.for_user("usr_1"), CREDENTIAL_NAME)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {"data": {"name": CREDENTIAL_NAME}, "has_more": False},
        {"data": ["not-a-secret"], "has_more": False},
        {"data": [{"id": "appsecret_1"}], "has_more": False},
    ])
    async def test_malformed_list_body_raises_remote_error(self, store, httpx_mock: HTTPXMock, body):
        httpx_mock.add_response(method="GET", url=SECRETS_URL_PATTERN, json=body)

        with pytest.raises(RemoteError) as exc_info:
            await store.list(Scope.for_user("usr_1"))

        assert "Malformed" in exc_info.value.message


class TestPagination:

    @pytest.mark.asyncio
    async def test_list_follows_has_more(self, store, httpx_mock: HTTPXMock):
        list_url = re.compile(r"https://api\.platform\.test/v1/apps/secrets\?.*")
        httpx_mock.add_response(
            method="GET",
            url=list_url,
            json={"data": [{"id": "appsecret_1", "name": "a"}], "has_more": True},
        )
        httpx_mock.add_response(
            method="GET",
            url=list_url,
            json={"data": [{"id": "appsecret_2", "name": "b"}], "has_more": False},
        )

        secrets = await store.list(Scope.for_user("usr_1"), limit=1)

        assert [s.name for s in secrets] == ["a", "b"]
        second = httpx_mock.get_requests()[1]
        assert second.url.params["starting_after"] == "appsecret_1"
        assert second.url.params["limit"] == "1"


class TestModels:

    def test_user_scope_requires_user(self):
        with pytest.raises(ValueError):
            Scope(type="user")

    def test_unknown_scope_type_rejected(self):
        with pytest.raises(ValueError):
            Scope(type="team", user="usr_1")

    def test_masked_payload_keeps_last_four(self):
        secret = Secret(scope=Scope.for_user("usr_1"), name=CREDENTIAL_NAME, payload="sk-abcdef1234")
        assert secret.masked_payload() == "****1234"

    def test_masked_payload_for_short_or_missing_value(self):
        scope = Scope.for_user("usr_1")
        assert Secret(scope=scope, name="n", payload="abc").masked_payload() == "****"
        assert Secret(scope=scope, name="n").masked_payload() == ""
