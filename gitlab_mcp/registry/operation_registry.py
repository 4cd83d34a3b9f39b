"""
Operation Registry - Category-indexed catalog of GitLab operations.

Instead of advertising every GitLab operation to the agent individually, the
server advertises five meta tools that discover and execute operations from
this registry on demand.

Provides:
- Operation descriptors (name, title, description, category, schemas)
- Category bookkeeping over a fixed, seeded category list
- Keyword search with weighted ranking
- Schema serialization through the schema introspector
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from .schema_introspector import introspect

logger = logging.getLogger(__name__)

# Type aliases
SchemaMapping = Mapping[str, Any]
OperationHandler = Callable[[Dict[str, Any]], Awaitable[Any]]


# ============================================================================
# Seeded Categories
# ============================================================================

DEFAULT_CATEGORIES: List[Dict[str, str]] = [
    {
        "name": "repositories",
        "description": "Search, create, fork repositories. Get file contents, push files, manage branches.",
    },
    {
        "name": "merge-requests",
        "description": "Create, update, merge MRs. List MRs, get diffs, manage discussions and threads.",
    },
    {
        "name": "issues",
        "description": "Create, update, delete issues. List issues, manage issue links and discussions.",
    },
    {
        "name": "pipelines",
        "description": "List, create, retry, cancel pipelines. Get pipeline jobs and their output.",
    },
    {
        "name": "projects",
        "description": "Get project details, list projects, manage project members and labels.",
    },
    {
        "name": "commits",
        "description": "List commits, get commit details and diffs.",
    },
    {
        "name": "namespaces",
        "description": "List, get, and verify namespaces (groups and users).",
    },
    {
        "name": "milestones",
        "description": "Create, edit, delete milestones. Get milestone issues and merge requests.",
    },
    {
        "name": "wiki",
        "description": "List, create, update, delete wiki pages.",
    },
    {
        "name": "releases",
        "description": "List, create, update, delete releases. Download release assets.",
    },
    {
        "name": "users",
        "description": "Get user details by username.",
    },
    {
        "name": "search",
        "description": "Global, project, and group search across issues, merge requests, code, commits, and more.",
    },
    {
        "name": "notes",
        "description": "Create and manage notes (comments) on issues and merge requests. Draft notes for MRs.",
    },
    {
        "name": "events",
        "description": "List user and project events/activity.",
    },
    {
        "name": "groups",
        "description": "List group projects and iterations.",
    },
]

# Search weights per matched field
NAME_MATCH_SCORE = 3
TITLE_MATCH_SCORE = 2
DESCRIPTION_MATCH_SCORE = 1


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class OperationDescriptor:
    """
    Identity and contract of one catalog entry.

    Schemas map field names to schema-description values (pydantic field
    infos, type annotations or pydantic-core schemas). They are never
    executed here, only introspected for display.
    """
    name: str
    title: str
    description: str
    category: str
    input_schema: Dict[str, Any] = field(default_factory=dict)
    output_schema: Dict[str, Any] = field(default_factory=dict)
    annotations: Optional[Dict[str, Any]] = None


@dataclass
class RegisteredOperation:
    """Descriptor plus the handler that executes it."""
    descriptor: OperationDescriptor
    handler: OperationHandler


@dataclass
class CategoryInfo:
    """A discovery category and the number of operations filed under it."""
    name: str
    description: str
    tool_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "toolCount": self.tool_count,
        }


@dataclass
class OperationSummary:
    """Short listing entry for an operation."""
    name: str
    description: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "description": self.description}


# ============================================================================
# Exceptions
# ============================================================================

class OperationRegistryError(Exception):
    """Base exception for registry errors."""
    pass


class OperationAlreadyRegistered(OperationRegistryError):
    """Operation already registered."""
    pass


class UnknownCategory(OperationRegistryError):
    """Category is not one of the seeded categories."""
    pass


class InvalidOperationDescriptor(OperationRegistryError):
    """Invalid operation descriptor."""
    pass


# ============================================================================
# Operation Registry
# ============================================================================

class OperationRegistry:
    """
    In-memory catalog of operations grouped by category.

    Populated synchronously at startup, then read-only while serving.
    """

    def __init__(
        self,
        categories: Optional[List[Dict[str, str]]] = None,
        strict_categories: bool = False
    ):
        """
        Initialize registry.

        Args:
            categories: Category definitions to seed (default: GitLab categories)
            strict_categories: Reject operations filed under unseeded categories
        """
        self._category_defs = list(categories if categories is not None else DEFAULT_CATEGORIES)
        self.strict_categories = strict_categories

        self._operations: Dict[str, RegisteredOperation] = {}
        self._categories: Dict[str, CategoryInfo] = {}
        self._category_index: Dict[str, List[str]] = {}

        self._seed_categories()
        logger.debug(f"OperationRegistry initialized with {len(self._categories)} categories")

    def _seed_categories(self) -> None:
        for definition in self._category_defs:
            name = definition["name"]
            self._categories[name] = CategoryInfo(
                name=name,
                description=definition.get("description", ""),
            )
            self._category_index[name] = []

    def reset(self) -> None:
        """Discard every registered operation and re-seed empty categories."""
        self._operations.clear()
        self._categories.clear()
        self._category_index.clear()
        self._seed_categories()
        logger.debug("OperationRegistry reset")

    # ========================================================================
    # Registration
    # ========================================================================

    def register(
        self,
        name: str,
        category: str,
        title: str,
        description: str,
        input_schema: Optional[SchemaMapping],
        output_schema: Optional[SchemaMapping],
        handler: OperationHandler,
        annotations: Optional[Dict[str, Any]] = None
    ) -> OperationDescriptor:
        """
        Register a new operation.

        Args:
            name: Unique operation name (e.g., "create_issue")
            category: Category the operation is listed under
            title: Human-readable title
            description: Human-readable description
            input_schema: Field name to schema-description mapping
            output_schema: Field name to schema-description mapping
            handler: Async callable taking the params mapping
            annotations: Optional MCP tool hints (readOnlyHint, ...)

        Returns:
            The stored OperationDescriptor

        Raises:
            InvalidOperationDescriptor: If name or handler is missing
            OperationAlreadyRegistered: If the name already exists
            UnknownCategory: If strict and the category was never seeded
        """
        if not name:
            raise InvalidOperationDescriptor("Operation name is required")
        if not callable(handler):
            raise InvalidOperationDescriptor(f"Operation '{name}' handler is not callable")

        if name in self._operations:
            raise OperationAlreadyRegistered(f"Operation '{name}' already registered")

        known_category = category in self._category_index
        if not known_category and self.strict_categories:
            available = ', '.join(self._categories.keys())
            raise UnknownCategory(
                f"Unknown category '{category}' for operation '{name}'. "
                f"Available categories: {available}"
            )

        descriptor = OperationDescriptor(
            name=name,
            title=title,
            description=description,
            category=category,
            input_schema=dict(input_schema or {}),
            output_schema=dict(output_schema or {}),
            annotations=dict(annotations) if annotations else None,
        )
        self._operations[name] = RegisteredOperation(descriptor=descriptor, handler=handler)

        if known_category:
            self._category_index[category].append(name)
            self._categories[category].tool_count += 1
        else:
            logger.warning(
                f"Operation '{name}' registered under unknown category '{category}'; "
                "it will not appear in category listings"
            )

        logger.debug(f"Registered operation: {name} (category: {category})")
        return descriptor

    # ========================================================================
    # Discovery
    # ========================================================================

    def list_categories(self) -> List[CategoryInfo]:
        """List categories that hold at least one operation."""
        return [info for info in self._categories.values() if info.tool_count > 0]

    def list_operations(self, category: str) -> List[OperationSummary]:
        """
        List operations in a category, in registration order.

        Args:
            category: Category name (case-insensitive)

        Returns:
            Operation summaries; empty for unknown categories
        """
        names = self._category_index.get(category.lower(), [])
        return [
            OperationSummary(name=name, description=self._operations[name].descriptor.description)
            for name in names
        ]

    def search(self, query: str, limit: int = 20) -> List[OperationSummary]:
        """
        Search operations by keyword.

        Case-insensitive substring match scored name=3, title=2,
        description=1. Results are ordered by descending score; equal scores
        keep registration order.

        Args:
            query: Search term
            limit: Maximum results to return

        Returns:
            Ranked operation summaries
        """
        needle = query.lower()
        scored = []

        for name, registered in self._operations.items():
            descriptor = registered.descriptor
            score = 0
            if needle in name.lower():
                score += NAME_MATCH_SCORE
            if needle in descriptor.title.lower():
                score += TITLE_MATCH_SCORE
            if needle in descriptor.description.lower():
                score += DESCRIPTION_MATCH_SCORE

            if score > 0:
                scored.append((score, OperationSummary(name=name, description=descriptor.description)))

        scored.sort(key=lambda item: item[0], reverse=True)
        return [summary for _, summary in scored[:limit]]

    # ========================================================================
    # Retrieval
    # ========================================================================

    def get_schema(self, name: str) -> Optional[OperationDescriptor]:
        """Full descriptor for an operation, or None if not found."""
        registered = self._operations.get(name)
        return registered.descriptor if registered else None

    def get_handler(self, name: str) -> Optional[OperationHandler]:
        """Handler for an operation, or None if not found."""
        registered = self._operations.get(name)
        return registered.handler if registered else None

    def has_operation(self, name: str) -> bool:
        """Check if operation exists."""
        return name in self._operations

    def all_names(self) -> List[str]:
        """All registered operation names, in registration order."""
        return list(self._operations.keys())

    def __len__(self) -> int:
        return len(self._operations)

    def __contains__(self, name: object) -> bool:
        return name in self._operations

    # ========================================================================
    # Schema Serialization
    # ========================================================================

    def serialize(self, schema: Optional[SchemaMapping]) -> Dict[str, Any]:
        """
        Serialize a schema mapping to a JSON-compatible mapping.

        Args:
            schema: Field name to schema-description mapping

        Returns:
            Field name to shape descriptor mapping
        """
        return {key: introspect(value) for key, value in (schema or {}).items()}
