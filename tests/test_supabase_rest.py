"""Tests for planner.adapters.supabase_rest — PostgREST client over httpx."""

import httpx
import pytest
from unittest.mock import AsyncMock, patch

from planner.adapters.supabase_rest import SupabaseRestClient, create_resource_client
from planner.core.errors import MutationError
from planner.core.sync_coordinator import PlannerSync
from planner.ports.query import embed, eq, gt, ilike, order_by, select_fields
from planner.ports.resource_port import ResourceError


def _mock_http(response=None, side_effect=None):
    """An httpx.AsyncClient stand-in whose request() returns ``response``."""
    mock_client = AsyncMock()
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client.request = AsyncMock(return_value=response, side_effect=side_effect)
    return mock_client


def _client():
    return SupabaseRestClient("https://example.supabase.co/", "anon-key", timeout=3)


class TestQueryHelpers:
    def test_filters(self):
        assert eq(12) == "eq.12"
        assert eq(True) == "eq.true"
        assert gt(40) == "gt.40"
        assert ilike("*Google*") == "ilike.*Google*"

    def test_order(self):
        assert order_by("created_at", descending=True) == "created_at.desc"
        assert order_by("username") == "username.asc"

    def test_embed_and_select(self):
        fragment = embed("profiles", "added_by", ["username", "display_name"])
        assert fragment == "profiles:added_by(username,display_name)"
        assert select_fields(["id", "title"], fragment) == (
            "id,title,profiles:added_by(username,display_name)"
        )


class TestList:
    @pytest.mark.asyncio
    async def test_builds_request(self):
        http = _mock_http(httpx.Response(200, json=[{"id": 1}]))
        with patch("planner.adapters.supabase_rest.httpx.AsyncClient", return_value=http) as ctor:
            rows = await _client().list(
                "chore_statuses",
                select="id,task",
                filters={"week_number": "eq.10"},
                order="task.asc",
                limit=5,
            )

        assert rows == [{"id": 1}]
        ctor.assert_called_once_with(timeout=3)
        method, url = http.request.call_args.args
        kwargs = http.request.call_args.kwargs
        assert method == "GET"
        assert url == "https://example.supabase.co/rest/v1/chore_statuses"
        assert kwargs["params"] == {
            "select": "id,task", "week_number": "eq.10", "order": "task.asc", "limit": "5",
        }
        assert kwargs["headers"]["apikey"] == "anon-key"
        assert kwargs["headers"]["Authorization"] == "Bearer anon-key"

    @pytest.mark.asyncio
    async def test_error_message_from_body(self):
        http = _mock_http(httpx.Response(400, json={"message": "column does not exist"}))
        with patch("planner.adapters.supabase_rest.httpx.AsyncClient", return_value=http):
            with pytest.raises(ResourceError, match="column does not exist") as excinfo:
                await _client().list("profiles")
        assert excinfo.value.status_code == 400

    @pytest.mark.asyncio
    async def test_error_field_used_when_no_message(self):
        http = _mock_http(httpx.Response(401, json={"error": "Invalid API key"}))
        with patch("planner.adapters.supabase_rest.httpx.AsyncClient", return_value=http):
            with pytest.raises(ResourceError, match="Invalid API key"):
                await _client().list("profiles")

    @pytest.mark.asyncio
    async def test_error_falls_back_to_text(self):
        http = _mock_http(httpx.Response(502, text="Bad gateway"))
        with patch("planner.adapters.supabase_rest.httpx.AsyncClient", return_value=http):
            with pytest.raises(ResourceError, match="Bad gateway"):
                await _client().list("profiles")

    @pytest.mark.asyncio
    async def test_empty_error_body(self):
        http = _mock_http(httpx.Response(500))
        with patch("planner.adapters.supabase_rest.httpx.AsyncClient", return_value=http):
            with pytest.raises(ResourceError, match="Ukjent feil fra Supabase"):
                await _client().list("profiles")

    @pytest.mark.asyncio
    async def test_network_error_becomes_resource_error(self):
        http = _mock_http(side_effect=httpx.ConnectError("Connection refused"))
        with patch("planner.adapters.supabase_rest.httpx.AsyncClient", return_value=http):
            with pytest.raises(ResourceError, match="Connection refused") as excinfo:
                await _client().list("profiles")
        assert excinfo.value.status_code is None


class TestMutations:
    @pytest.mark.asyncio
    async def test_insert_asks_for_representation(self):
        http = _mock_http(httpx.Response(201, json=[{"id": 5, "title": "Melk"}]))
        with patch("planner.adapters.supabase_rest.httpx.AsyncClient", return_value=http):
            rows = await _client().insert("shopping_items", {"title": "Melk"})

        assert rows == [{"id": 5, "title": "Melk"}]
        kwargs = http.request.call_args.kwargs
        assert http.request.call_args.args[0] == "POST"
        assert kwargs["json"] == {"title": "Melk"}
        assert kwargs["headers"]["Prefer"] == "return=representation"

    @pytest.mark.asyncio
    async def test_update_encodes_match_as_eq_filters(self):
        http = _mock_http(httpx.Response(200, json=[]))
        with patch("planner.adapters.supabase_rest.httpx.AsyncClient", return_value=http):
            rows = await _client().update(
                "chore_statuses",
                {"completed": True},
                {"task": "Vaske/rydde stua", "week_number": 10, "year": 2026},
            )

        assert rows == []
        kwargs = http.request.call_args.kwargs
        assert http.request.call_args.args[0] == "PATCH"
        assert kwargs["params"] == {
            "task": "eq.Vaske/rydde stua", "week_number": "eq.10", "year": "eq.2026",
        }

    @pytest.mark.asyncio
    async def test_payload_datetimes_are_serialized(self):
        from datetime import datetime, timezone

        http = _mock_http(httpx.Response(200, json=[{"id": 1}]))
        moment = datetime(2026, 3, 4, 12, 0, tzinfo=timezone.utc)
        with patch("planner.adapters.supabase_rest.httpx.AsyncClient", return_value=http):
            await _client().update("chore_statuses", {"completed_at": moment}, {"id": 1})

        assert http.request.call_args.kwargs["json"] == {"completed_at": "2026-03-04T12:00:00Z"}

    @pytest.mark.asyncio
    async def test_remove(self):
        http = _mock_http(httpx.Response(204))
        with patch("planner.adapters.supabase_rest.httpx.AsyncClient", return_value=http):
            assert await _client().remove("wishlist_items", {"id": 3}) is None

        assert http.request.call_args.args[0] == "DELETE"
        assert http.request.call_args.kwargs["params"] == {"id": "eq.3"}

    @pytest.mark.asyncio
    async def test_remove_failure(self):
        http = _mock_http(httpx.Response(403, json={"message": "permission denied"}))
        with patch("planner.adapters.supabase_rest.httpx.AsyncClient", return_value=http):
            with pytest.raises(ResourceError, match="permission denied"):
                await _client().remove("wishlist_items", {"id": 3})


class TestCreateResourceClient:
    def test_requires_url_and_key(self):
        assert create_resource_client("", "key") is None
        assert create_resource_client("https://x.supabase.co", "") is None
        assert create_resource_client(None, None) is None

    def test_returns_client(self):
        client = create_resource_client("https://x.supabase.co", "key")
        assert isinstance(client, SupabaseRestClient)


class TestNonJsonSuccessBody:
    @pytest.mark.asyncio
    async def test_list_raises_resource_error(self):
        http = _mock_http(httpx.Response(200, text="<html>proxy</html>"))
        with patch("planner.adapters.supabase_rest.httpx.AsyncClient", return_value=http):
            with pytest.raises(ResourceError, match="Ukjent feil fra Supabase") as excinfo:
                await _client().list("profiles")
        assert excinfo.value.status_code == 200

    @pytest.mark.asyncio
    async def test_insert_surfaces_as_mutation_error(self):
        http = _mock_http(httpx.Response(201, text="<html>proxy</html>"))
        sync = PlannerSync(_client())
        with patch("planner.adapters.supabase_rest.httpx.AsyncClient", return_value=http):
            with pytest.raises(MutationError):
                await sync.add_shopping_item({"title": "Melk"})
        assert sync.shopping_items == ()
