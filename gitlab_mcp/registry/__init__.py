"""
Operation Registry for the GitLab MCP server.

Provides a category-indexed, searchable catalog of GitLab operations.
"""

from .adapter import (
    RegistrationTarget,
    RegistryAdapter,
    ToolConfig,
    create_registry_adapter,
)
from .operation_registry import (
    DEFAULT_CATEGORIES,
    CategoryInfo,
    OperationDescriptor,
    OperationRegistry,
    OperationSummary,
    # Exceptions
    InvalidOperationDescriptor,
    OperationAlreadyRegistered,
    OperationRegistryError,
    UnknownCategory,
)
from .schema_introspector import SchemaKind, SchemaView, classify, introspect

__all__ = [
    'DEFAULT_CATEGORIES',
    'CategoryInfo',
    'OperationDescriptor',
    'OperationRegistry',
    'OperationSummary',
    'RegistrationTarget',
    'RegistryAdapter',
    'ToolConfig',
    'create_registry_adapter',
    # Schema introspection
    'SchemaKind',
    'SchemaView',
    'classify',
    'introspect',
    # Exceptions
    'InvalidOperationDescriptor',
    'OperationAlreadyRegistered',
    'OperationRegistryError',
    'UnknownCategory',
]
