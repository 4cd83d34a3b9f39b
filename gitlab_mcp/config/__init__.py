"""Configuration for the GitLab MCP server."""

from .settings import ServerSettings, load_settings, normalize_gitlab_api_url

__all__ = [
    'ServerSettings',
    'load_settings',
    'normalize_gitlab_api_url',
]
