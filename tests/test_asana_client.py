"""Tests for the Asana REST client (agents_os.mcp_servers.asana_client)."""

from __future__ import annotations

import json

import httpx
import pytest

from agents_os.mcp_servers.asana_client import AsanaClient


class Recorder:
    """MockTransport handler that records requests and replays canned responses."""

    def __init__(self, responder=None) -> None:
        self.requests: list[httpx.Request] = []
        self.responder = responder or (lambda request: httpx.Response(200, json={"data": {}}))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    def body(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)


def _client(recorder: Recorder) -> AsanaClient:
    return AsanaClient("tok", transport=httpx.MockTransport(recorder))


# ── Request Shape ───────────────────────────────────────────────────


class TestRequests:
    """Tests for URLs, auth and the data envelope."""

    async def test_bearer_token_and_unwrap(self) -> None:
        recorder = Recorder(lambda r: httpx.Response(200, json={"data": {"gid": "1"}}))
        async with _client(recorder) as client:
            task = await client.get_task("1", {"opt_fields": "name"})

        request = recorder.requests[0]
        assert task == {"gid": "1"}
        assert request.headers["Authorization"] == "Bearer tok"
        assert request.url.path == "/api/1.0/tasks/1"
        assert request.url.params["opt_fields"] == "name"

    async def test_search_sends_exact_query(self) -> None:
        recorder = Recorder(lambda r: httpx.Response(200, json={"data": []}))
        async with _client(recorder) as client:
            await client.search_tasks("999", {"projects.any": "1,2", "completed": False})

        request = recorder.requests[0]
        assert request.url.path == "/api/1.0/workspaces/999/tasks/search"
        assert dict(request.url.params) == {"projects.any": "1,2", "completed": "false"}

    async def test_search_simplifies_custom_fields(self) -> None:
        tasks = [
            {"gid": "1", "custom_fields": [{"gid": "7", "name": "Size", "display_value": "L"}]},
            {"gid": "2"},
        ]
        recorder = Recorder(lambda r: httpx.Response(200, json={"data": tasks}))
        async with _client(recorder) as client:
            result = await client.search_tasks("1", {})

        assert result == [{"gid": "1", "custom_fields": {"Size (7)": "L"}}, {"gid": "2"}]

    async def test_http_errors_propagate(self) -> None:
        recorder = Recorder(lambda r: httpx.Response(429, headers={"Retry-After": "10"}))
        async with _client(recorder) as client:
            with pytest.raises(httpx.HTTPStatusError) as exc_info:
                await client.get_task("1")
        assert exc_info.value.response.status_code == 429
        assert len(recorder.requests) == 1


# ── Operations ──────────────────────────────────────────────────────


class TestOperations:
    """Tests for operations with client-side behavior."""

    async def test_create_task_adds_project_and_default_subtype(self) -> None:
        recorder = Recorder()
        async with _client(recorder) as client:
            await client.create_task("10", {"name": "Write docs", "projects": ["20"]})

        assert recorder.body() == {
            "data": {"name": "Write docs", "projects": ["20", "10"], "resource_subtype": "default_task"}
        }

    async def test_search_projects_filters_by_pattern(self) -> None:
        projects = [{"gid": "1", "name": "Roadmap Q1"}, {"gid": "2", "name": "Hiring"}]
        recorder = Recorder(lambda r: httpx.Response(200, json={"data": projects}))
        async with _client(recorder) as client:
            result = await client.search_projects("5", "road", archived=False)

        assert result == [{"gid": "1", "name": "Roadmap Q1"}]
        assert recorder.requests[0].url.params["archived"] == "false"

    async def test_multiple_tasks_keep_input_order(self) -> None:
        def responder(request: httpx.Request) -> httpx.Response:
            gid = request.url.path.rsplit("/", 1)[-1]
            return httpx.Response(200, json={"data": {"gid": gid}})

        recorder = Recorder(responder)
        async with _client(recorder) as client:
            result = await client.get_multiple_tasks(["3", "1", "2"])

        assert [task["gid"] for task in result] == ["3", "1", "2"]

    async def test_batch_lowercases_methods(self) -> None:
        recorder = Recorder(lambda r: httpx.Response(200, json={"data": [{"status_code": 200}]}))
        async with _client(recorder) as client:
            result = await client.execute_batch(
                [{"method": "PUT", "relative_path": "/tasks/1", "data": {"completed": True}}]
            )

        assert result == [{"status_code": 200}]
        assert recorder.requests[0].url.path == "/api/1.0/batch"
        assert recorder.body() == {
            "data": {
                "actions": [
                    {"method": "put", "relative_path": "/tasks/1", "data": {"completed": True}}
                ]
            }
        }

    async def test_update_multiple_tasks_is_one_batch(self) -> None:
        recorder = Recorder(lambda r: httpx.Response(200, json={"data": []}))
        async with _client(recorder) as client:
            await client.update_multiple_tasks(["1", "2"], {"completed": True})

        assert len(recorder.requests) == 1
        actions = recorder.body()["data"]["actions"]
        assert [a["relative_path"] for a in actions] == ["/tasks/1", "/tasks/2"]

    async def test_paginated_keeps_next_page(self) -> None:
        next_page = {"offset": "abc", "path": "/tags?offset=abc", "uri": "https://x"}
        recorder = Recorder(
            lambda r: httpx.Response(200, json={"data": [{"gid": "1"}], "next_page": next_page})
        )
        async with _client(recorder) as client:
            result = await client.get_tags_for_workspace("9", {"limit": 20})

        assert result == {"data": [{"gid": "1"}], "next_page": next_page}
        assert recorder.requests[0].url.params["limit"] == "20"

    async def test_delete_returns_empty_data(self) -> None:
        recorder = Recorder(lambda r: httpx.Response(200, json={"data": {}}))
        async with _client(recorder) as client:
            assert await client.delete_project_status("4") == {}
        assert recorder.requests[0].method == "DELETE"

    async def test_portfolio_members_sent_as_comma_list(self) -> None:
        recorder = Recorder()
        async with _client(recorder) as client:
            await client.add_portfolio_members("8", ["1", "me"])

        assert recorder.body() == {"data": {"members": "1,me"}}
