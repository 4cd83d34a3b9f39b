"""
GitLab operation registrations.

Registers every GitLab domain operation with the registry, one adapter per
category.
"""

import logging
from typing import Callable, List, Tuple

from ...config.settings import ServerSettings
from ...utils.gitlab_client import GitLabClient
from ..adapter import RegistrationTarget, create_registry_adapter
from ..operation_registry import OperationRegistry
from .commits import register_commit_operations
from .issues import register_issue_operations
from .merge_requests import register_merge_request_operations
from .namespaces import register_namespace_operations
from .pipelines import register_pipeline_operations
from .projects import register_project_operations
from .repositories import register_repository_operations
from .search import register_search_operations
from .users import register_user_operations

logger = logging.getLogger(__name__)

Registrar = Callable[[RegistrationTarget, GitLabClient], None]


def _registrars(settings: ServerSettings) -> List[Tuple[str, Registrar]]:
    registrars: List[Tuple[str, Registrar]] = [
        ("repositories", register_repository_operations),
        ("merge-requests", register_merge_request_operations),
        ("issues", register_issue_operations),
    ]
    if settings.is_enabled("use_pipeline"):
        registrars.append(("pipelines", register_pipeline_operations))
    registrars.extend([
        ("projects", register_project_operations),
        ("commits", register_commit_operations),
        ("namespaces", register_namespace_operations),
        ("users", register_user_operations),
        ("search", register_search_operations),
    ])
    return registrars


def register_all_operations(
    registry: OperationRegistry,
    client: GitLabClient,
    settings: ServerSettings
) -> List[str]:
    """
    Register all GitLab operations.

    Args:
        registry: Registry to populate
        client: GitLab client shared by all handlers
        settings: Server settings (read-only mode, feature flags)

    Returns:
        Names of operations skipped because of read-only mode
    """
    skipped: List[str] = []
    for category, register in _registrars(settings):
        adapter = create_registry_adapter(registry, category, read_only=settings.read_only_mode)
        register(adapter, client)
        skipped.extend(adapter.skipped)

    logger.info(
        f"Registered {len(registry)} GitLab operations "
        f"({len(skipped)} skipped in read-only mode)"
    )
    return skipped


__all__ = [
    'register_all_operations',
    'register_commit_operations',
    'register_issue_operations',
    'register_merge_request_operations',
    'register_namespace_operations',
    'register_pipeline_operations',
    'register_project_operations',
    'register_repository_operations',
    'register_search_operations',
    'register_user_operations',
]
