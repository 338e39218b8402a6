"""Agents OS connectors: MCP servers for third-party SaaS APIs."""

__version__ = "0.1.0"
