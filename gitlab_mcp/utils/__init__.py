"""Utility modules for the GitLab MCP server."""
