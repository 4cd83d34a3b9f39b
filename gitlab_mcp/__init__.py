"""Efficient GitLab MCP server with progressive tool disclosure."""

__version__ = "3.0.0"
