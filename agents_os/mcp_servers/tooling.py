"""Tool registry, dispatch and audit plumbing shared by the MCP servers.

A server is a table of ``ToolSpec`` entries plus a vendor client. Every
call runs the same pipeline: lookup, read-only gate, argument decoding and
validation, the tool handler, then an audit entry. Failures of any kind
come back as a structured error payload flagged ``isError`` so the server
keeps serving.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Awaitable, Callable, Collection, Mapping
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import CallToolResult, TextContent, Tool
from pydantic import BaseModel

from agents_os.exceptions import (
    ConnectorError,
    ReadOnlyViolation,
    UnexpectedFailure,
    UnknownToolFailure,
)
from agents_os.mcp_servers.errors import classify_error
from agents_os.mcp_servers.validation import decode_json_object, validate
from agents_os.utils.audit import audit_entry, correlation_id, log_action

logger = logging.getLogger(__name__)

Handler = Callable[[Any, Any], Awaitable[Any]]


@dataclass(frozen=True)
class ToolSpec:
    """One tool: its name, input model, handler and read-only status.

    ``handler`` is awaited with the vendor client and the validated input
    model. ``target`` names the argument recorded as the audit target;
    ``json_fields`` lists arguments that may arrive as JSON strings.
    """

    name: str
    description: str
    model: type[BaseModel]
    handler: Handler
    read_only: bool = False
    target: str | None = None
    json_fields: tuple[str, ...] = ()

    def definition(self) -> Tool:
        return Tool(
            name=self.name,
            description=self.description,
            inputSchema=self.model.model_json_schema(by_alias=True),
        )


@dataclass
class AppContext:
    """Shared state injected into the MCP request handlers."""

    client: Any
    tools: Mapping[str, ToolSpec]
    actor: str
    read_only: bool = False
    audit_log_dir: str = ""
    read_tools: frozenset[str] = field(init=False)

    def __post_init__(self) -> None:
        self.read_tools = frozenset(name for name, spec in self.tools.items() if spec.read_only)


def tool_table(*specs: ToolSpec) -> dict[str, ToolSpec]:
    return {spec.name: spec for spec in specs}


# ── Read-only gate ──────────────────────────────────────────────────


def read_only_gate(name: str, read_only: bool, read_tools: Collection[str]) -> None:
    """Reject ``name`` when read-only mode is on and it is not a read tool.

    Raises:
        ReadOnlyViolation: Before any validation or network call happens.
    """
    if read_only and name not in read_tools:
        raise ReadOnlyViolation(name)


def visible_tools(app: AppContext) -> list[Tool]:
    """Tool definitions to advertise; read tools only in read-only mode."""
    return [
        spec.definition()
        for spec in app.tools.values()
        if not app.read_only or spec.name in app.read_tools
    ]


# ── Dispatch ────────────────────────────────────────────────────────


async def dispatch_tool(app: AppContext, name: str, arguments: Mapping[str, Any] | None) -> Any:
    """Run one tool call and return its JSON-serializable result.

    Raises:
        UnknownToolFailure: If ``name`` is not registered.
        ReadOnlyViolation: If a mutating tool is called in read-only mode.
        MalformedInput: If a JSON-string argument cannot be decoded.
        ValidationFailure: If the arguments fail the tool's input model.
    """
    spec = app.tools.get(name)
    if spec is None:
        raise UnknownToolFailure(name)
    read_only_gate(name, app.read_only, app.read_tools)

    raw = dict(arguments or {})
    for key in spec.json_fields:
        raw = decode_json_object(raw, key)
    params = validate(spec.model, raw, tool=name)
    return await spec.handler(app.client, params)


def _log_tool_action(
    app: AppContext,
    action_type: str,
    target: str,
    result: str,
    cid: str,
    duration_ms: int = 0,
    parameters: Mapping[str, Any] | None = None,
) -> None:
    """Write an audit log entry; disabled when no audit directory is configured."""
    if not app.audit_log_dir:
        return
    try:
        log_action(
            app.audit_log_dir,
            audit_entry(
                actor=app.actor,
                action_type=action_type,
                target=target,
                result=result,
                cid=cid,
                duration_ms=duration_ms,
                parameters=parameters,
            ),
        )
    except (OSError, ValueError):
        # A corrupt or half-written daily file must not fail the call.
        logger.exception("Failed to write audit log")


def error_result(error: ConnectorError) -> CallToolResult:
    return CallToolResult(
        content=[TextContent(type="text", text=json.dumps(error.to_payload(), indent=2, default=str))],
        isError=True,
    )


def success_result(payload: Any) -> CallToolResult:
    return CallToolResult(
        content=[TextContent(type="text", text=json.dumps(payload, indent=2, default=str))],
    )


async def execute_tool(
    app: AppContext, name: str, arguments: Mapping[str, Any] | None
) -> CallToolResult:
    """Dispatch a call, audit it, and wrap the outcome as a tool result."""
    cid = correlation_id()
    arguments = arguments or {}
    spec = app.tools.get(name)
    target = str(arguments.get(spec.target, "")) if spec and spec.target else ""
    started = time.monotonic()

    try:
        payload = await dispatch_tool(app, name, arguments)
    except Exception as exc:
        error = classify_error(exc)
        duration_ms = int((time.monotonic() - started) * 1000)
        if isinstance(error, UnexpectedFailure) and not isinstance(exc, ConnectorError):
            logger.exception("Unexpected error in %s", name)
        else:
            logger.warning("%s failed [%s]: %s", name, error.kind, error.message)
        _log_tool_action(app, name, target, error.kind, cid, duration_ms, arguments)
        return error_result(error)

    duration_ms = int((time.monotonic() - started) * 1000)
    logger.info("%s succeeded in %dms", name, duration_ms)
    _log_tool_action(app, name, target, "success", cid, duration_ms, arguments)
    return success_result(payload)


# ── Server wiring ───────────────────────────────────────────────────


def create_server(
    name: str,
    lifespan: Callable[[Server], AbstractAsyncContextManager[AppContext]],
    instructions: str | None = None,
) -> Server:
    """Build a low-level MCP server whose handlers read the lifespan's AppContext."""
    server: Server = Server(name, instructions=instructions, lifespan=lifespan)

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        return visible_tools(server.request_context.lifespan_context)

    # Arguments are validated by the tool's input model, not the advertised schema.
    @server.call_tool(validate_input=False)
    async def call_tool(tool_name: str, arguments: dict[str, Any] | None) -> CallToolResult:
        return await execute_tool(server.request_context.lifespan_context, tool_name, arguments)

    return server


async def serve_stdio(server: Server) -> None:
    """Run ``server`` over stdio until the client disconnects."""
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())
