"""Slack MCP Server: exposes Slack tools via Model Context Protocol.

Registers channel, message, reaction, thread and user tools and
communicates via stdio transport. ``slack_list_channels`` is restricted
to ``SLACK_CHANNEL_IDS`` when that variable is set.

Usage:
    uv run python -m agents_os.mcp_servers.slack_server
    uv run slack-mcp-server
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import AsyncIterator, Collection
from contextlib import asynccontextmanager
from functools import partial
from typing import Annotated, Any

from mcp.server import Server
from pydantic import BaseModel, ConfigDict, Field

from agents_os.config import SlackSettings, load_slack_settings
from agents_os.exceptions import ConfigError
from agents_os.mcp_servers.slack_client import SlackClient
from agents_os.mcp_servers.tooling import (
    AppContext,
    ToolSpec,
    create_server,
    serve_stdio,
    tool_table,
)
from agents_os.mcp_servers.validation import Count
from agents_os.utils.logging_utils import configure_logging

logger = logging.getLogger(__name__)

ACTOR = "slack_mcp"

SlackId = Annotated[str, Field(min_length=1, pattern=r"^\S+$")]


# ── Inputs ──────────────────────────────────────────────────────────


class SlackInput(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ListChannelsInput(SlackInput):
    limit: Count = Field(100, ge=1, le=200, description="Maximum number of channels to return")
    cursor: str | None = Field(None, description="Pagination cursor for next page")


class PostMessageInput(SlackInput):
    channel_id: SlackId
    text: str = Field(min_length=1, description="The message text to post")


class ReplyToThreadInput(SlackInput):
    channel_id: SlackId
    thread_ts: SlackId = Field(description="Timestamp of the parent message")
    text: str = Field(min_length=1, description="The reply text")


class AddReactionInput(SlackInput):
    channel_id: SlackId
    timestamp: SlackId = Field(description="Message timestamp to react to")
    reaction: str = Field(min_length=1, description="Emoji name without colons")


class ChannelHistoryInput(SlackInput):
    channel_id: SlackId
    limit: Count = Field(10, ge=1, le=100, description="Number of messages to retrieve")


class ThreadRepliesInput(SlackInput):
    channel_id: SlackId
    thread_ts: SlackId = Field(description="Timestamp of the parent message")


class ListUsersInput(SlackInput):
    limit: Count = Field(100, ge=1, le=200, description="Maximum users to return")
    cursor: str | None = Field(None, description="Pagination cursor for next page")


class UserProfileInput(SlackInput):
    user_id: SlackId


# ── Handlers ────────────────────────────────────────────────────────

PROFILE_FIELDS = (
    "avatar_hash", "status_text", "status_emoji", "real_name", "display_name",
    "real_name_normalized", "display_name_normalized", "email",
    "image_24", "image_32", "image_48", "image_72", "image_192", "image_512",
)


def _message(message: dict[str, Any], *extra: str) -> dict[str, Any]:
    fields = ("type", "user", "text", "ts", "thread_ts", *extra)
    return {name: message.get(name) for name in fields}


async def list_channels(
    client: SlackClient, p: ListChannelsInput, *, allowed: Collection[str] = ()
) -> dict[str, Any]:
    result = await client.list_channels(p.limit, p.cursor)
    channels = result.get("channels") or []
    if allowed:
        channels = [c for c in channels if c.get("id") in allowed]
    return {
        "channels": [
            {
                "id": c.get("id"),
                "name": c.get("name"),
                "topic": (c.get("topic") or {}).get("value", ""),
                "purpose": (c.get("purpose") or {}).get("value", ""),
                "num_members": c.get("num_members"),
                "is_archived": c.get("is_archived"),
            }
            for c in channels
        ],
        "response_metadata": result.get("response_metadata"),
    }


async def post_message(client: SlackClient, p: PostMessageInput) -> dict[str, Any]:
    result = await client.post_message(p.channel_id, p.text)
    message = result.get("message") or {}
    return {
        "ok": result.get("ok"),
        "channel": result.get("channel"),
        "ts": result.get("ts"),
        "message": {key: message.get(key) for key in ("text", "user", "ts")},
    }


async def reply_to_thread(client: SlackClient, p: ReplyToThreadInput) -> dict[str, Any]:
    result = await client.post_message(p.channel_id, p.text, thread_ts=p.thread_ts)
    return {
        "ok": result.get("ok"),
        "channel": result.get("channel"),
        "ts": result.get("ts"),
        "thread_ts": (result.get("message") or {}).get("thread_ts"),
    }


async def add_reaction(client: SlackClient, p: AddReactionInput) -> dict[str, Any]:
    result = await client.add_reaction(p.channel_id, p.timestamp, p.reaction)
    return {"ok": result.get("ok"), "message": "Reaction added successfully"}


async def get_channel_history(client: SlackClient, p: ChannelHistoryInput) -> dict[str, Any]:
    result = await client.channel_history(p.channel_id, p.limit)
    return {
        "messages": [_message(m, "reply_count") for m in result.get("messages") or []],
        "has_more": result.get("has_more"),
        "response_metadata": result.get("response_metadata"),
    }


async def get_thread_replies(client: SlackClient, p: ThreadRepliesInput) -> dict[str, Any]:
    result = await client.thread_replies(p.channel_id, p.thread_ts)
    return {
        "messages": [_message(m) for m in result.get("messages") or []],
        "has_more": result.get("has_more"),
    }


async def get_users(client: SlackClient, p: ListUsersInput) -> dict[str, Any]:
    result = await client.list_users(p.limit, p.cursor)
    members = []
    for member in result.get("members") or []:
        profile = member.get("profile") or {}
        members.append(
            {
                "id": member.get("id"),
                "name": member.get("name"),
                "real_name": member.get("real_name"),
                "display_name": profile.get("display_name"),
                "email": profile.get("email"),
                "is_bot": member.get("is_bot"),
                "is_app_user": member.get("is_app_user"),
                "deleted": member.get("deleted"),
            }
        )
    return {"members": members, "response_metadata": result.get("response_metadata")}


async def get_user_profile(client: SlackClient, p: UserProfileInput) -> dict[str, Any]:
    result = await client.user_profile(p.user_id)
    profile = result.get("profile") or {}
    return {"profile": {name: profile.get(name) for name in PROFILE_FIELDS}}


# ── Tool table ──────────────────────────────────────────────────────


def build_tools(channel_ids: Collection[str] = ()) -> dict[str, ToolSpec]:
    """The Slack tool table; ``channel_ids`` restricts channel listing."""
    return tool_table(
        ToolSpec("slack_list_channels", "List public or pre-defined channels in the workspace",
                 ListChannelsInput, partial(list_channels, allowed=frozenset(channel_ids)),
                 read_only=True),
        ToolSpec("slack_post_message", "Post a new message to a Slack channel",
                 PostMessageInput, post_message, target="channel_id"),
        ToolSpec("slack_reply_to_thread", "Reply to a specific message thread in Slack",
                 ReplyToThreadInput, reply_to_thread, target="channel_id"),
        ToolSpec("slack_add_reaction", "Add an emoji reaction to a message",
                 AddReactionInput, add_reaction, target="channel_id"),
        ToolSpec("slack_get_channel_history", "Get recent messages from a channel",
                 ChannelHistoryInput, get_channel_history, read_only=True, target="channel_id"),
        ToolSpec("slack_get_thread_replies", "Get all replies in a message thread",
                 ThreadRepliesInput, get_thread_replies, read_only=True, target="channel_id"),
        ToolSpec("slack_get_users", "Get list of workspace users with basic profile information",
                 ListUsersInput, get_users, read_only=True),
        ToolSpec("slack_get_user_profile", "Get detailed profile information for a specific user",
                 UserProfileInput, get_user_profile, read_only=True, target="user_id"),
    )


# ── Lifespan ────────────────────────────────────────────────────────


def build_app_context(settings: SlackSettings, client: SlackClient) -> AppContext:
    return AppContext(
        client=client,
        tools=build_tools(settings.channel_ids),
        actor=ACTOR,
        read_only=settings.read_only,
        audit_log_dir=settings.audit_log_dir,
    )


def create_slack_server(settings: SlackSettings) -> Server:
    """Build the Slack MCP server for ``settings``."""

    @asynccontextmanager
    async def app_lifespan(server: Server) -> AsyncIterator[AppContext]:
        client = SlackClient(
            settings.bot_token,
            team_id=settings.team_id,
            base_url=settings.base_url,
            timeout=settings.timeout,
        )
        logger.info(
            "Slack MCP server started (team=%s, read_only=%s, channels=%s)",
            settings.team_id,
            settings.read_only,
            ",".join(settings.channel_ids) or "all public",
        )
        try:
            yield build_app_context(settings, client)
        finally:
            await client.aclose()
            logger.info("Slack MCP server shutting down")

    return create_server("slack-mcp-server", app_lifespan)


# ── Entry Point ─────────────────────────────────────────────────────


def main() -> None:
    """CLI entry point for the Slack MCP server."""
    try:
        settings = load_slack_settings()
    except ConfigError as exc:
        configure_logging()
        logger.error("Configuration error: %s", exc)
        sys.exit(1)

    configure_logging(settings.log_level)
    asyncio.run(serve_stdio(create_slack_server(settings)))


if __name__ == "__main__":
    main()
