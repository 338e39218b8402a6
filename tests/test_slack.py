"""Tests for the Slack client and MCP server (agents_os.mcp_servers.slack_*)."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from agents_os.exceptions import (
    AuthenticationFailure,
    NotFound,
    PermissionFailure,
    ReadOnlyViolation,
    VendorApiFailure,
)
from agents_os.mcp_servers.slack_client import SlackClient, slack_error
from agents_os.mcp_servers.slack_server import build_tools
from agents_os.mcp_servers.tooling import AppContext, dispatch_tool, execute_tool, visible_tools


def _transport(requests: list, body: dict) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=body)

    return httpx.MockTransport(handler)


def _app(client, *, channel_ids=(), read_only: bool = False) -> AppContext:
    return AppContext(
        client=client, tools=build_tools(channel_ids), actor="slack_mcp", read_only=read_only
    )


# ── Error Codes ─────────────────────────────────────────────────────


class TestSlackError:
    """Tests for mapping Slack error codes onto connector errors."""

    @pytest.mark.parametrize(
        ("code", "kind"),
        [
            ("invalid_auth", AuthenticationFailure),
            ("missing_scope", PermissionFailure),
            ("channel_not_found", NotFound),
            ("is_archived", VendorApiFailure),
        ],
    )
    def test_codes(self, code: str, kind: type) -> None:
        error = slack_error(code)
        assert isinstance(error, kind)
        assert error.message == f"Slack API error: {code}"

    def test_needed_scope_in_message(self) -> None:
        error = slack_error("missing_scope", {"ok": False, "needed": "chat:write"})
        assert "needed scope: chat:write" in error.message


# ── Client ──────────────────────────────────────────────────────────


class TestSlackClient:
    """Tests for Slack Web API request shapes."""

    async def test_list_channels_query(self) -> None:
        requests: list[httpx.Request] = []
        transport = _transport(requests, {"ok": True, "channels": []})
        async with SlackClient("xoxb", team_id="T1", transport=transport) as client:
            await client.list_channels(50)

        request = requests[0]
        assert request.url.path == "/api/conversations.list"
        assert request.headers["Authorization"] == "Bearer xoxb"
        assert dict(request.url.params) == {
            "limit": "50", "types": "public_channel", "team_id": "T1"
        }

    async def test_post_message_body(self) -> None:
        requests: list[httpx.Request] = []
        transport = _transport(requests, {"ok": True, "ts": "1.2"})
        async with SlackClient("xoxb", transport=transport) as client:
            await client.post_message("C1", "hello", thread_ts="1.0")

        assert requests[0].method == "POST"
        assert json.loads(requests[0].content) == {
            "channel": "C1", "text": "hello", "thread_ts": "1.0"
        }

    async def test_reaction_sent_as_name(self) -> None:
        requests: list[httpx.Request] = []
        transport = _transport(requests, {"ok": True})
        async with SlackClient("xoxb", transport=transport) as client:
            await client.add_reaction("C1", "1.2", "thumbsup")

        assert json.loads(requests[0].content)["name"] == "thumbsup"

    async def test_not_ok_raises_mapped_error(self) -> None:
        transport = _transport([], {"ok": False, "error": "channel_not_found"})
        async with SlackClient("xoxb", transport=transport) as client:
            with pytest.raises(NotFound, match="channel_not_found"):
                await client.channel_history("C404", 10)


# ── Server Tools ────────────────────────────────────────────────────


class TestSlackTools:
    """Tests for Slack tool handlers and read-only mode."""

    async def test_channels_filtered_to_allowed_ids(self) -> None:
        client = AsyncMock()
        client.list_channels.return_value = {
            "ok": True,
            "channels": [
                {"id": "C1", "name": "general", "topic": {"value": "news"}},
                {"id": "C2", "name": "random"},
            ],
        }
        result = await dispatch_tool(_app(client, channel_ids=("C1",)), "slack_list_channels", {})

        assert [c["id"] for c in result["channels"]] == ["C1"]
        assert result["channels"][0]["topic"] == "news"
        client.list_channels.assert_awaited_once_with(100, None)

    async def test_reply_uses_thread_ts(self) -> None:
        client = AsyncMock()
        client.post_message.return_value = {
            "ok": True, "channel": "C1", "ts": "2.0", "message": {"thread_ts": "1.0"}
        }
        result = await dispatch_tool(
            _app(client),
            "slack_reply_to_thread",
            {"channel_id": "C1", "thread_ts": "1.0", "text": "on it"},
        )

        client.post_message.assert_awaited_once_with("C1", "on it", thread_ts="1.0")
        assert result == {"ok": True, "channel": "C1", "ts": "2.0", "thread_ts": "1.0"}

    @pytest.mark.parametrize("limit", [500, True])
    async def test_history_limit_validated(self, limit) -> None:
        client = AsyncMock()
        result = await execute_tool(
            _app(client), "slack_get_channel_history", {"channel_id": "C1", "limit": limit}
        )
        assert json.loads(result.content[0].text)["error"]["kind"] == "ValidationFailure"
        client.channel_history.assert_not_awaited()

    async def test_read_only_blocks_posting(self) -> None:
        client = AsyncMock()
        with pytest.raises(ReadOnlyViolation):
            await dispatch_tool(
                _app(client, read_only=True), "slack_post_message", {"channel_id": "C1"}
            )
        client.post_message.assert_not_awaited()

    def test_read_only_hides_write_tools(self) -> None:
        names = {tool.name for tool in visible_tools(_app(AsyncMock(), read_only=True))}
        assert "slack_get_users" in names
        assert names.isdisjoint({"slack_post_message", "slack_reply_to_thread", "slack_add_reaction"})

    async def test_vendor_error_payload(self) -> None:
        client = AsyncMock()
        client.user_profile.side_effect = slack_error("user_not_found")
        result = await execute_tool(_app(client), "slack_get_user_profile", {"user_id": "U9"})

        assert result.isError
        assert json.loads(result.content[0].text)["error"]["kind"] == "NotFound"
