"""Operator surfaces: MCP server and CLI."""
