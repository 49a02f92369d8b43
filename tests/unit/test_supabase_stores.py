"""Tests for the Supabase client and the per-user stores."""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from zhaomu.core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    NotFoundError,
    UpstreamError,
)
from zhaomu.services.stores import NoteStore, TodoStore
from zhaomu.services.supabase_client import SupabaseClient, bearer_token

pytestmark = pytest.mark.unit

SUPABASE_URL = "https://proj.supabase.co"


class RecordingBackend:
    """MockTransport handler that records requests and replays canned responses."""

    def __init__(self, *responses: httpx.Response) -> None:
        self.requests: list[httpx.Request] = []
        self._responses = list(responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responses.pop(0)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


class TestBearerToken:
    """Tests for bearer_token()."""

    def test_bearer_token_when_valid_then_token(self) -> None:
        assert bearer_token("Bearer abc.def") == "abc.def"

    def test_bearer_token_when_lowercase_scheme_then_accepted(self) -> None:
        assert bearer_token("bearer abc") == "abc"

    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer ", "Bearer"])
    def test_bearer_token_when_malformed_then_none(self, header) -> None:
        assert bearer_token(header) is None


class TestSupabaseClient:
    """Tests for SupabaseClient."""

    def test_init_when_not_configured_then_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            SupabaseClient(httpx.AsyncClient(), None, "anon")

    async def test_get_user_when_token_then_headers_carry_key_and_token(self) -> None:
        backend = RecordingBackend(httpx.Response(200, json={"id": "u1", "email": "a@b.cn"}))

        async with backend.client() as http:
            user = await SupabaseClient(http, SUPABASE_URL, "anon", "tok").get_user()

        request = backend.requests[0]
        assert user["id"] == "u1"
        assert request.url.path == "/auth/v1/user"
        assert request.headers["apikey"] == "anon"
        assert request.headers["Authorization"] == "Bearer tok"

    async def test_get_user_when_no_token_then_authentication_error(self) -> None:
        backend = RecordingBackend()

        async with backend.client() as http:
            with pytest.raises(AuthenticationError):
                await SupabaseClient(http, SUPABASE_URL, "anon").get_user()

        assert backend.requests == []

    async def test_get_user_when_rejected_then_authentication_error(self) -> None:
        backend = RecordingBackend(httpx.Response(401, json={"msg": "JWT expired"}))

        async with backend.client() as http:
            with pytest.raises(AuthenticationError, match="JWT expired"):
                await SupabaseClient(http, SUPABASE_URL, "anon", "tok").get_user()

    async def test_send_magic_link_when_redirect_then_query_and_body(self) -> None:
        backend = RecordingBackend(httpx.Response(200, json={}))

        async with backend.client() as http:
            await SupabaseClient(http, SUPABASE_URL, "anon").send_magic_link(
                "a@b.cn", "https://example.app/zhaomu"
            )

        request = backend.requests[0]
        assert request.method == "POST"
        assert request.url.params["redirect_to"] == "https://example.app/zhaomu"
        assert json.loads(request.content) == {"email": "a@b.cn", "create_user": True}
        assert request.headers["Authorization"] == "Bearer anon"

    async def test_select_when_filters_then_postgrest_params(self) -> None:
        backend = RecordingBackend(httpx.Response(200, json=[{"id": "1"}]))

        async with backend.client() as http:
            rows = await SupabaseClient(http, SUPABASE_URL, "anon", "tok").select(
                "todos", [("user_id", "eq", "u1")], order="created_at.desc"
            )

        params = backend.requests[0].url.params
        assert rows == [{"id": "1"}]
        assert params["select"] == "*"
        assert params["user_id"] == "eq.u1"
        assert params["order"] == "created_at.desc"

    async def test_request_when_server_error_then_upstream_error(self) -> None:
        backend = RecordingBackend(httpx.Response(500, json={"message": "db down"}))

        async with backend.client() as http:
            with pytest.raises(UpstreamError, match="db down"):
                await SupabaseClient(http, SUPABASE_URL, "anon", "tok").select("todos")

    async def test_request_when_connect_fails_then_network_error_and_client_error_recorded(self) -> None:
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            with patch("zhaomu.services.supabase_client.record_client_error", new=AsyncMock()) as recorded:
                with pytest.raises(UpstreamError) as exc_info:
                    await SupabaseClient(http, SUPABASE_URL, "anon", "tok").get_user()

        assert exc_info.value.reason == "network_error"
        recorded.assert_awaited_once_with(http)


class TestStores:
    """Tests for TodoStore and NoteStore."""

    async def test_todo_list_when_bounds_then_created_at_filters(self) -> None:
        backend = RecordingBackend(httpx.Response(200, json=[]))

        async with backend.client() as http:
            store = TodoStore(SupabaseClient(http, SUPABASE_URL, "anon", "tok"), "u1")
            await store.list("2024-04-30T16:00:00Z", "2024-05-01T15:59:59.999999Z")

        params = backend.requests[0].url.params
        assert params.get_list("created_at") == [
            "gte.2024-04-30T16:00:00Z",
            "lte.2024-05-01T15:59:59.999999Z",
        ]
        assert params["user_id"] == "eq.u1"

    async def test_todo_add_when_called_then_row_owned_by_user(self) -> None:
        backend = RecordingBackend(httpx.Response(201, json=[{"id": "t1", "title": "买牛奶"}]))

        async with backend.client() as http:
            store = TodoStore(SupabaseClient(http, SUPABASE_URL, "anon", "tok"), "u1")
            row = await store.add("买牛奶")

        request = backend.requests[0]
        assert row["id"] == "t1"
        assert json.loads(request.content) == {"title": "买牛奶", "user_id": "u1"}
        assert request.headers["Prefer"] == "return=representation"

    async def test_set_complete_when_no_row_then_not_found(self) -> None:
        backend = RecordingBackend(httpx.Response(200, json=[]))

        async with backend.client() as http:
            store = TodoStore(SupabaseClient(http, SUPABASE_URL, "anon", "tok"), "u1")
            with pytest.raises(NotFoundError):
                await store.set_complete("missing", True)

    async def test_note_remove_when_deleted_then_scoped_to_user(self) -> None:
        backend = RecordingBackend(httpx.Response(200, json=[{"id": "n1"}]))

        async with backend.client() as http:
            store = NoteStore(SupabaseClient(http, SUPABASE_URL, "anon", "tok"), "u1")
            await store.remove("n1")

        request = backend.requests[0]
        assert request.method == "DELETE"
        assert request.url.path == "/rest/v1/daily_notes"
        assert request.url.params["id"] == "eq.n1"
        assert request.url.params["user_id"] == "eq.u1"
