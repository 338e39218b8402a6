"""Slack Web API client for the Slack MCP server.

Slack answers most failures with HTTP 200 and ``{"ok": false, "error":
"<code>"}``. ``SlackClient`` turns those codes into connector errors so
they share the taxonomy of HTTP-level failures, which are left to
propagate as ``httpx`` exceptions.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from agents_os.config import DEFAULT_TIMEOUT_SECONDS, SLACK_BASE_URL
from agents_os.exceptions import (
    AuthenticationFailure,
    ConnectorError,
    NotFound,
    PermissionFailure,
    RateLimited,
    VendorApiFailure,
)

logger = logging.getLogger(__name__)

ERROR_CODES: dict[str, type[ConnectorError]] = {
    "invalid_auth": AuthenticationFailure,
    "not_authed": AuthenticationFailure,
    "token_revoked": AuthenticationFailure,
    "token_expired": AuthenticationFailure,
    "account_inactive": AuthenticationFailure,
    "missing_scope": PermissionFailure,
    "not_in_channel": PermissionFailure,
    "channel_not_found": NotFound,
    "user_not_found": NotFound,
    "thread_not_found": NotFound,
    "message_not_found": NotFound,
    "ratelimited": RateLimited,
}


def slack_error(code: str, body: Mapping[str, Any] | None = None) -> ConnectorError:
    """Map a Slack ``error`` code onto the connector error taxonomy."""
    error_cls = ERROR_CODES.get(code, VendorApiFailure)
    message = f"Slack API error: {code}"
    needed = (body or {}).get("needed")
    if needed:
        message += f" (needed scope: {needed})"
    return error_cls(message, original=dict(body or {}))


def _clean(params: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in params.items() if value is not None}


class SlackClient:
    """Async Slack Web API client authenticated with a bot token."""

    def __init__(
        self,
        bot_token: str,
        *,
        team_id: str | None = None,
        base_url: str = SLACK_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.team_id = team_id
        self._http = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Authorization": f"Bearer {bot_token}"},
        )

    async def __aenter__(self) -> SlackClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _call(
        self,
        method: str,
        *,
        params: Mapping[str, Any] | None = None,
        payload: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        logger.debug("Slack %s", method)
        if payload is not None:
            response = await self._http.post(f"/{method}", json=_clean(payload))
        else:
            response = await self._http.get(f"/{method}", params=_clean(params or {}))
        response.raise_for_status()
        body = response.json()
        if not body.get("ok"):
            raise slack_error(str(body.get("error", "unknown_error")), body)
        return body

    async def list_channels(self, limit: int, cursor: str | None = None) -> dict[str, Any]:
        return await self._call(
            "conversations.list",
            params={
                "limit": limit,
                "cursor": cursor,
                "types": "public_channel",
                "team_id": self.team_id,
            },
        )

    async def post_message(
        self, channel_id: str, text: str, thread_ts: str | None = None
    ) -> dict[str, Any]:
        return await self._call(
            "chat.postMessage",
            payload={"channel": channel_id, "text": text, "thread_ts": thread_ts},
        )

    async def add_reaction(self, channel_id: str, timestamp: str, reaction: str) -> dict[str, Any]:
        return await self._call(
            "reactions.add",
            payload={"channel": channel_id, "timestamp": timestamp, "name": reaction},
        )

    async def channel_history(self, channel_id: str, limit: int) -> dict[str, Any]:
        return await self._call(
            "conversations.history", params={"channel": channel_id, "limit": limit}
        )

    async def thread_replies(self, channel_id: str, thread_ts: str) -> dict[str, Any]:
        return await self._call(
            "conversations.replies", params={"channel": channel_id, "ts": thread_ts}
        )

    async def list_users(self, limit: int, cursor: str | None = None) -> dict[str, Any]:
        return await self._call(
            "users.list",
            params={"limit": limit, "cursor": cursor, "team_id": self.team_id},
        )

    async def user_profile(self, user_id: str) -> dict[str, Any]:
        return await self._call("users.profile.get", params={"user": user_id})
