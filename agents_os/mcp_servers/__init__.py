"""Vendor adapters for the Agents OS runtime.

Each server exposes one SaaS API (Asana, Slack) as Model Context Protocol
tools. Calls are validated, optionally refused in read-only mode,
forwarded to the vendor REST API and answered with JSON. Failures are
returned as structured error payloads rather than raised.

Servers communicate over the MCP stdio transport.
"""
