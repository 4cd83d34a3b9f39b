"""
Server configuration and feature flags.

Settings are read from environment variables so deployments can toggle
behavior without code changes.

Usage:
    from gitlab_mcp.config.settings import load_settings

    settings = load_settings()
    if settings.is_enabled('use_pipeline'):
        register_pipeline_operations(adapter, client)

Environment Variables:
    GITLAB_API_URL                 - GitLab base URL (default https://gitlab.com)
    GITLAB_PERSONAL_ACCESS_TOKEN   - Token sent as PRIVATE-TOKEN
    GITLAB_READ_ONLY_MODE=true     - Only register read-only operations
    GITLAB_STRICT_CATEGORIES=true  - Reject operations in unknown categories
    GITLAB_REQUEST_TIMEOUT         - HTTP timeout in seconds (default 30)
    USE_PIPELINE=true              - Register pipeline operations
    USE_MILESTONE=true             - Milestone operations flag
    USE_GITLAB_WIKI=true           - Wiki operations flag
    LOG_LEVEL                      - debug, info, warning, error (default info)
    LOG_FORMAT                     - pretty or json (default pretty)
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

SERVER_NAME = "efficient-gitlab-mcp-server"
SERVER_VERSION = "3.0.0"

DEFAULT_GITLAB_URL = "https://gitlab.com"
LOG_LEVELS = ("debug", "info", "warning", "error")
LOG_FORMATS = ("pretty", "json")


@dataclass
class ServerSettings:
    """Resolved server configuration."""
    gitlab_api_url: str = f"{DEFAULT_GITLAB_URL}/api/v4"
    gitlab_token: Optional[str] = None
    read_only_mode: bool = False
    strict_categories: bool = False
    request_timeout: float = 30.0
    log_level: str = "info"
    log_format: str = "pretty"
    feature_flags: Dict[str, bool] = field(default_factory=lambda: {
        'use_pipeline': False,
        'use_milestone': False,
        'use_gitlab_wiki': False,
    })
    server_name: str = SERVER_NAME
    server_version: str = SERVER_VERSION

    def is_enabled(self, flag: str) -> bool:
        """
        Check if a feature flag is enabled.

        Args:
            flag: Feature flag name (e.g., 'use_pipeline')

        Returns:
            True if flag is enabled, False otherwise

        Raises:
            KeyError: If flag name is not recognized
        """
        if flag not in self.feature_flags:
            available = ', '.join(self.feature_flags.keys())
            raise KeyError(
                f"Unknown feature flag: '{flag}'. "
                f"Available flags: {available}"
            )

        return self.feature_flags[flag]


def normalize_gitlab_api_url(url: Optional[str]) -> str:
    """
    Normalize a GitLab URL to its REST API v4 root.

    Example:
        >>> normalize_gitlab_api_url("https://gitlab.example.com/")
        'https://gitlab.example.com/api/v4'
    """
    if not url or not url.strip():
        return f"{DEFAULT_GITLAB_URL}/api/v4"

    normalized = url.strip().rstrip('/')
    if not normalized.endswith('/api/v4'):
        normalized = f"{normalized}/api/v4"
    return normalized


def _flag(env: Mapping[str, str], name: str) -> bool:
    return env.get(name, 'false').strip().lower() == 'true'


def _choice(env: Mapping[str, str], name: str, default: str, allowed: tuple) -> str:
    value = env.get(name, default).strip().lower()
    if value == 'warn':
        value = 'warning'
    if value not in allowed:
        raise ValueError(
            f"Invalid {name}: '{value}'. Expected one of: {', '.join(allowed)}"
        )
    return value


def load_settings(environ: Optional[Mapping[str, str]] = None) -> ServerSettings:
    """
    Load settings from environment variables.

    Args:
        environ: Mapping to read instead of os.environ (for testing)

    Returns:
        ServerSettings

    Raises:
        ValueError: If a value cannot be parsed
    """
    env = os.environ if environ is None else environ

    timeout_raw = env.get('GITLAB_REQUEST_TIMEOUT', '30')
    try:
        request_timeout = float(timeout_raw)
    except ValueError as e:
        raise ValueError(f"Invalid GITLAB_REQUEST_TIMEOUT: '{timeout_raw}'") from e

    return ServerSettings(
        gitlab_api_url=normalize_gitlab_api_url(env.get('GITLAB_API_URL')),
        gitlab_token=env.get('GITLAB_PERSONAL_ACCESS_TOKEN') or None,
        read_only_mode=_flag(env, 'GITLAB_READ_ONLY_MODE'),
        strict_categories=_flag(env, 'GITLAB_STRICT_CATEGORIES'),
        request_timeout=request_timeout,
        log_level=_choice(env, 'LOG_LEVEL', 'info', LOG_LEVELS),
        log_format=_choice(env, 'LOG_FORMAT', 'pretty', LOG_FORMATS),
        feature_flags={
            'use_pipeline': _flag(env, 'USE_PIPELINE'),
            'use_milestone': _flag(env, 'USE_MILESTONE'),
            'use_gitlab_wiki': _flag(env, 'USE_GITLAB_WIKI'),
        },
    )
