"""
Registration Adapter - Category-bound facade over the OperationRegistry.

Each domain module receives an adapter bound to its category and only ever
calls ``register_tool``; it never sees the registry itself.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Protocol, Union

from pydantic import BaseModel

from .operation_registry import OperationHandler, OperationRegistry

logger = logging.getLogger(__name__)

SchemaSource = Union[Mapping[str, Any], type, None]


@dataclass
class ToolConfig:
    """Registration config supplied by a domain module."""
    title: str
    description: str
    input_schema: SchemaSource = None
    output_schema: SchemaSource = None
    annotations: Dict[str, Any] = field(default_factory=dict)


class RegistrationTarget(Protocol):
    """The narrow capability handed to domain modules."""

    def register_tool(
        self,
        name: str,
        config: Union[ToolConfig, Mapping[str, Any]],
        handler: OperationHandler
    ) -> None:
        ...


def schema_fields(schema: SchemaSource) -> Dict[str, Any]:
    """
    Normalize a schema source to a field mapping.

    Args:
        schema: Field mapping, pydantic model class, or None

    Returns:
        Field name to schema-description mapping (empty when omitted)
    """
    if schema is None:
        return {}
    if isinstance(schema, type) and issubclass(schema, BaseModel):
        return {info.alias or name: info for name, info in schema.model_fields.items()}
    return dict(schema)


class RegistryAdapter:
    """Forwards registrations to the registry with the bound category."""

    def __init__(self, registry: OperationRegistry, category: str, read_only: bool = False):
        """
        Initialize adapter.

        Args:
            registry: Registry shared by every adapter
            category: Category injected into every registration
            read_only: Skip operations not annotated with readOnlyHint
        """
        self.registry = registry
        self.category = category
        self.read_only = read_only
        self.skipped: List[str] = []

    def register_tool(
        self,
        name: str,
        config: Union[ToolConfig, Mapping[str, Any]],
        handler: OperationHandler
    ) -> None:
        """
        Register one operation under the adapter's category.

        Args:
            name: Unique operation name
            config: ToolConfig or mapping with title, description,
                input_schema, optional output_schema and annotations
            handler: Async callable taking the params mapping
        """
        if not isinstance(config, ToolConfig):
            config = ToolConfig(
                title=config["title"],
                description=config["description"],
                input_schema=config.get("input_schema"),
                output_schema=config.get("output_schema"),
                annotations=dict(config.get("annotations") or {}),
            )

        if self.read_only and not config.annotations.get("readOnlyHint"):
            self.skipped.append(name)
            logger.debug(f"Read-only mode: skipping {name}")
            return

        self.registry.register(
            name,
            self.category,
            config.title,
            config.description,
            schema_fields(config.input_schema),
            schema_fields(config.output_schema),
            handler,
            annotations=config.annotations or None,
        )


def create_registry_adapter(
    registry: OperationRegistry,
    category: str,
    read_only: bool = False
) -> RegistryAdapter:
    """Create an adapter bound to ``category``."""
    return RegistryAdapter(registry, category, read_only=read_only)
