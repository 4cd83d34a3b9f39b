"""Meta tools for progressive disclosure of the GitLab operation catalog.

These five tools are the only tools advertised to the agent. They let it
discover, inspect and execute any registered operation on demand instead of
loading every operation definition up front.
"""

import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from mcp.types import CallToolResult, Tool, ToolAnnotations
from pydantic import BaseModel, Field, ValidationError

from ..registry.operation_registry import OperationRegistry
from ..utils.response import error_result, text_result

logger = logging.getLogger(__name__)

META_TOOL_NAMES = (
    "list_categories",
    "list_tools",
    "search_tools",
    "get_tool_schema",
    "execute_tool",
)


# ============================================================================
# Argument Models
# ============================================================================

class ListCategoriesArgs(BaseModel):
    pass


class ListToolsArgs(BaseModel):
    category: str = Field(
        description="Category name (e.g., 'repositories', 'merge-requests', 'issues')"
    )


class SearchToolsArgs(BaseModel):
    query: str = Field(description="Search term (e.g., 'merge', 'pipeline', 'issue')")
    limit: int = Field(20, ge=1, le=50, description="Maximum results to return")


class GetToolSchemaArgs(BaseModel):
    toolName: str = Field(
        description="Tool name (e.g., 'create_merge_request', 'list_issues')"
    )


class ExecuteToolArgs(BaseModel):
    toolName: str = Field(description="Tool name to execute")
    params: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Tool parameters as key-value pairs",
    )


def _read_only_hints() -> ToolAnnotations:
    return ToolAnnotations(
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )


def _format_validation_error(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "arguments"
        problems.append(f"{location}: {item['msg']}")
    return "; ".join(problems)


class MetaTools:
    """Provides the five progressive-disclosure tools over a registry."""

    def __init__(self, registry: OperationRegistry):
        """Initialize with the registry the domain modules registered into."""
        self.registry = registry

    def get_tools(self) -> List[Tool]:
        """Return the meta tools advertised to the agent."""
        return [
            Tool(
                name="list_categories",
                title="List Tool Categories",
                description="List all available GitLab tool categories. Start here to discover what operations are available.",
                inputSchema=ListCategoriesArgs.model_json_schema(),
                annotations=_read_only_hints(),
            ),
            Tool(
                name="list_tools",
                title="List Tools in Category",
                description="List all tools available in a specific category. Use list_categories first to see available categories.",
                inputSchema=ListToolsArgs.model_json_schema(),
                annotations=_read_only_hints(),
            ),
            Tool(
                name="search_tools",
                title="Search Tools",
                description="Search for tools by keyword across all categories. Useful when you know what you want to do but not which category it's in.",
                inputSchema=SearchToolsArgs.model_json_schema(),
                annotations=_read_only_hints(),
            ),
            Tool(
                name="get_tool_schema",
                title="Get Tool Schema",
                description="Get the full input/output schema for a specific tool. Use this before calling execute_tool to understand required parameters.",
                inputSchema=GetToolSchemaArgs.model_json_schema(),
                annotations=_read_only_hints(),
            ),
            Tool(
                name="execute_tool",
                title="Execute GitLab Tool",
                description="Execute a GitLab tool by name with the provided parameters. Use get_tool_schema first to see required parameters.",
                inputSchema=ExecuteToolArgs.model_json_schema(),
                annotations=ToolAnnotations(
                    readOnlyHint=False,
                    destructiveHint=True,
                    idempotentHint=False,
                    openWorldHint=True,
                ),
            ),
        ]

    async def handle_tool(self, name: str, arguments: Optional[Dict[str, Any]]) -> CallToolResult:
        """Route a meta tool call to its handler."""
        handlers: Dict[str, Callable[[Dict[str, Any]], Awaitable[CallToolResult]]] = {
            "list_categories": self._list_categories,
            "list_tools": self._list_tools,
            "search_tools": self._search_tools,
            "get_tool_schema": self._get_tool_schema,
            "execute_tool": self._execute_tool,
        }

        handler = handlers.get(name)
        if not handler:
            return error_result(
                f"Unknown tool: {name}. Available tools: {', '.join(META_TOOL_NAMES)}"
            )

        try:
            return await handler(arguments or {})
        except ValidationError as e:
            message = _format_validation_error(e)
            logger.warning(f"Invalid arguments for {name}: {message}")
            return error_result(f"Invalid arguments for {name}: {message}")

    # ========================================================================
    # Handlers
    # ========================================================================

    async def _list_categories(self, arguments: Dict[str, Any]) -> CallToolResult:
        """List non-empty categories."""
        categories = [info.to_dict() for info in self.registry.list_categories()]
        logger.info(f"Listed {len(categories)} categories")

        lines = [
            f"- **{c['name']}** ({c['toolCount']} tools): {c['description']}"
            for c in categories
        ]
        return text_result(
            "Available categories:\n" + "\n".join(lines),
            {"categories": categories},
        )

    async def _list_tools(self, arguments: Dict[str, Any]) -> CallToolResult:
        """List operations in one category."""
        args = ListToolsArgs.model_validate(arguments)
        tools = [summary.to_dict() for summary in self.registry.list_operations(args.category)]

        if not tools:
            available = ", ".join(info.name for info in self.registry.list_categories())
            return error_result(
                f"Category '{args.category}' not found or has no tools. "
                f"Available categories: {available}",
                {"tools": []},
            )

        logger.info(f"Listed {len(tools)} tools in {args.category}")
        lines = [f"- **{t['name']}**: {t['description']}" for t in tools]
        return text_result(
            f"Tools in {args.category}:\n" + "\n".join(lines),
            {"tools": tools},
        )

    async def _search_tools(self, arguments: Dict[str, Any]) -> CallToolResult:
        """Keyword search across every category."""
        args = SearchToolsArgs.model_validate(arguments)
        tools = [summary.to_dict() for summary in self.registry.search(args.query, args.limit)]
        logger.info(f"Searched tools for '{args.query}': {len(tools)} results")

        if not tools:
            return text_result(
                f"No tools found matching '{args.query}'. "
                "Try a different search term or use list_categories to browse.",
                {"tools": []},
            )

        lines = [f"- **{t['name']}**: {t['description']}" for t in tools]
        return text_result(
            f"Found {len(tools)} tool(s) matching '{args.query}':\n" + "\n".join(lines),
            {"tools": tools},
        )

    async def _get_tool_schema(self, arguments: Dict[str, Any]) -> CallToolResult:
        """Full descriptor of one operation with introspected schemas."""
        args = GetToolSchemaArgs.model_validate(arguments)
        descriptor = self.registry.get_schema(args.toolName)

        if descriptor is None:
            return error_result(
                f"Tool '{args.toolName}' not found. "
                "Use search_tools or list_tools to find valid tool names."
            )

        logger.info(f"Got tool schema for {args.toolName}")
        input_schema = self.registry.serialize(descriptor.input_schema)
        output_schema = self.registry.serialize(descriptor.output_schema)

        text = (
            f"## {descriptor.title}\n\n"
            f"{descriptor.description}\n\n"
            f"**Category:** {descriptor.category}\n\n"
            f"**Input Parameters:**\n```json\n{json.dumps(input_schema, indent=2)}\n```\n\n"
            f"**Output:**\n```json\n{json.dumps(output_schema, indent=2)}\n```"
        )
        return text_result(text, {
            "name": descriptor.name,
            "title": descriptor.title,
            "description": descriptor.description,
            "category": descriptor.category,
            "inputSchema": input_schema,
            "outputSchema": output_schema,
        })

    async def _execute_tool(self, arguments: Dict[str, Any]) -> CallToolResult:
        """Execute a registered operation; the fault-containment boundary."""
        args = ExecuteToolArgs.model_validate(arguments)
        handler = self.registry.get_handler(args.toolName)

        if handler is None:
            return error_result(
                f"Tool '{args.toolName}' not found. "
                "Use search_tools or list_tools to find valid tool names.",
                {"success": False, "error": f"Tool '{args.toolName}' not found"},
            )

        logger.info(f"Executing tool {args.toolName}")
        logger.debug(f"Parameters for {args.toolName}: {args.params}")

        try:
            return await handler(args.params or {})
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error(f"Tool execution failed: {args.toolName}: {message}")
            return error_result(
                f"Tool execution failed: {message}",
                {"success": False, "error": message},
            )
