"""
Tests for MetaTools - Progressive disclosure over the operation registry

Tests cover:
1. The five advertised tools
2. Category listing and per-category tool listing
3. Keyword search
4. Schema retrieval with introspected schemas
5. Execution, including fault containment of failing handlers
6. Argument validation and unknown tool names
"""

from typing import Optional

import pytest
from mcp.types import CallToolResult
from pydantic import BaseModel, Field

from gitlab_mcp.registry.adapter import ToolConfig, create_registry_adapter
from gitlab_mcp.registry.operation_registry import OperationRegistry
from gitlab_mcp.tools.meta_tools import META_TOOL_NAMES, MetaTools
from gitlab_mcp.utils.response import is_error, result_text, text_result


class PipelineArgs(BaseModel):
    project_id: str = Field(min_length=1, description="Project path")
    status: Optional[str] = Field(None, description="Pipeline status")


class PipelineOutput(BaseModel):
    id: int


A_RESULT = text_result("A ran", {"ok": True})


async def failing(params):
    raise RuntimeError("GitLab API error: 500 Internal Server Error")


# ============================================================================
# Test Fixtures
# ============================================================================

@pytest.fixture
def calls():
    """Parameters seen by the operation handlers."""
    return []


@pytest.fixture
def registry(calls):
    """Registry with operation A in issues and B in pipelines."""
    registry = OperationRegistry()

    async def handler_a(params):
        calls.append(("A", params))
        return A_RESULT

    async def handler_b(params):
        calls.append(("B", params))
        return text_result("B ran")

    create_registry_adapter(registry, "issues").register_tool(
        "A",
        ToolConfig(title="First Op", description="Runs the first step"),
        handler_a,
    )
    pipelines = create_registry_adapter(registry, "pipelines")
    pipelines.register_tool(
        "B",
        ToolConfig(
            title="Second Op",
            description="Runs the second step",
            input_schema=PipelineArgs,
            output_schema=PipelineOutput,
        ),
        handler_b,
    )
    return registry


@pytest.fixture
def meta_tools(registry):
    return MetaTools(registry)


# ============================================================================
# Tool Surface
# ============================================================================

class TestToolSurface:
    """Test the advertised meta tools."""

    def test_five_tools(self, meta_tools):
        tools = meta_tools.get_tools()

        assert tuple(tool.name for tool in tools) == META_TOOL_NAMES
        assert all(tool.inputSchema["type"] == "object" for tool in tools)

    def test_only_execute_tool_is_destructive(self, meta_tools):
        hints = {tool.name: tool.annotations for tool in meta_tools.get_tools()}

        assert hints["execute_tool"].destructiveHint is True
        for name in META_TOOL_NAMES[:-1]:
            assert hints[name].readOnlyHint is True

    def test_search_limit_bounds_in_schema(self, meta_tools):
        search = next(t for t in meta_tools.get_tools() if t.name == "search_tools")
        limit = search.inputSchema["properties"]["limit"]

        assert limit["default"] == 20
        assert limit["minimum"] == 1
        assert limit["maximum"] == 50
        assert search.inputSchema["required"] == ["query"]

    @pytest.mark.asyncio
    async def test_unknown_meta_tool(self, meta_tools):
        result = await meta_tools.handle_tool("create_issue", {})

        assert is_error(result)
        assert "Unknown tool: create_issue" in result_text(result)
        assert "list_categories" in result_text(result)


# ============================================================================
# End-to-end
# ============================================================================

@pytest.mark.asyncio
async def test_progressive_disclosure_flow(meta_tools, registry, calls):
    """Discover, inspect and execute operations through the meta tools only."""
    categories = await meta_tools.handle_tool("list_categories", {})
    assert [c["name"] for c in categories.structuredContent["categories"]] == ["issues", "pipelines"]
    assert [c["toolCount"] for c in categories.structuredContent["categories"]] == [1, 1]

    found = await meta_tools.handle_tool("search_tools", {"query": "A"})
    assert [t["name"] for t in found.structuredContent["tools"]] == ["A"]

    schema = await meta_tools.handle_tool("get_tool_schema", {"toolName": "B"})
    assert schema.structuredContent["inputSchema"] == registry.serialize(
        registry.get_schema("B").input_schema
    )
    assert schema.structuredContent["outputSchema"] == {"id": {"type": "integer"}}

    executed = await meta_tools.handle_tool("execute_tool", {"toolName": "A", "params": {}})
    assert executed is A_RESULT
    assert calls == [("A", {})]


# ============================================================================
# Discovery
# ============================================================================

class TestDiscovery:
    """Test list_categories, list_tools and search_tools."""

    @pytest.mark.asyncio
    async def test_list_categories_text(self, meta_tools):
        result = await meta_tools.handle_tool("list_categories", {})

        assert not is_error(result)
        text = result_text(result)
        assert text.startswith("Available categories:")
        assert "- **issues** (1 tools):" in text

    @pytest.mark.asyncio
    async def test_list_tools(self, meta_tools):
        result = await meta_tools.handle_tool("list_tools", {"category": "pipelines"})

        assert not is_error(result)
        assert result.structuredContent == {
            "tools": [{"name": "B", "description": "Runs the second step"}]
        }
        assert "- **B**: Runs the second step" in result_text(result)

    @pytest.mark.asyncio
    async def test_list_tools_unknown_category(self, meta_tools):
        result = await meta_tools.handle_tool("list_tools", {"category": "wiki"})

        assert is_error(result)
        assert result.structuredContent == {"tools": []}
        assert "Category 'wiki' not found or has no tools" in result_text(result)
        assert "Available categories: issues, pipelines" in result_text(result)

    @pytest.mark.asyncio
    async def test_list_tools_missing_category(self, meta_tools):
        result = await meta_tools.handle_tool("list_tools", {})

        assert is_error(result)
        assert result_text(result).startswith("Invalid arguments for list_tools: category")

    @pytest.mark.asyncio
    async def test_search_no_results_is_not_an_error(self, meta_tools):
        result = await meta_tools.handle_tool("search_tools", {"query": "zzz"})

        assert not is_error(result)
        assert result.structuredContent == {"tools": []}
        assert "No tools found matching 'zzz'" in result_text(result)

    @pytest.mark.asyncio
    async def test_search_limit_out_of_range(self, meta_tools):
        result = await meta_tools.handle_tool("search_tools", {"query": "step", "limit": 500})

        assert is_error(result)
        assert "limit" in result_text(result)

    @pytest.mark.asyncio
    async def test_search_respects_limit(self, meta_tools):
        result = await meta_tools.handle_tool("search_tools", {"query": "step", "limit": 1})

        assert len(result.structuredContent["tools"]) == 1
        assert result_text(result).startswith("Found 1 tool(s) matching 'step':")


# ============================================================================
# Schema and Execution
# ============================================================================

class TestSchemaAndExecution:
    """Test get_tool_schema and execute_tool."""

    @pytest.mark.asyncio
    async def test_get_tool_schema(self, meta_tools):
        result = await meta_tools.handle_tool("get_tool_schema", {"toolName": "B"})

        assert not is_error(result)
        assert result.structuredContent["category"] == "pipelines"
        assert result.structuredContent["inputSchema"] == {
            "project_id": {"type": "string", "minLength": 1, "description": "Project path"},
            "status": {"type": "string", "optional": True, "description": "Pipeline status"},
        }
        assert "## Second Op" in result_text(result)
        assert "**Category:** pipelines" in result_text(result)

    @pytest.mark.asyncio
    async def test_get_tool_schema_unknown(self, meta_tools):
        result = await meta_tools.handle_tool("get_tool_schema", {"toolName": "nope"})

        assert is_error(result)
        assert "Tool 'nope' not found" in result_text(result)

    @pytest.mark.asyncio
    async def test_execute_passes_params(self, meta_tools, calls):
        await meta_tools.handle_tool(
            "execute_tool", {"toolName": "B", "params": {"project_id": "group/app"}}
        )

        assert calls == [("B", {"project_id": "group/app"})]

    @pytest.mark.asyncio
    async def test_execute_without_params_sends_empty_mapping(self, meta_tools, calls):
        await meta_tools.handle_tool("execute_tool", {"toolName": "B"})

        assert calls == [("B", {})]

    @pytest.mark.asyncio
    async def test_execute_unknown_tool(self, registry, meta_tools, calls):
        names_before = registry.all_names()
        categories_before = [c.to_dict() for c in registry.list_categories()]

        result = await meta_tools.handle_tool("execute_tool", {"toolName": "nope"})

        assert is_error(result)
        assert result.isError is True
        assert result.structuredContent == {"success": False, "error": "Tool 'nope' not found"}
        assert calls == []
        assert registry.all_names() == names_before
        assert [c.to_dict() for c in registry.list_categories()] == categories_before
        assert not registry.has_operation("nope")

    @pytest.mark.asyncio
    async def test_execute_contains_handler_failure(self, registry, meta_tools):
        """A raising handler becomes an error-flagged result."""
        create_registry_adapter(registry, "issues").register_tool(
            "explode",
            ToolConfig(title="Explode", description="Always fails"),
            failing,
        )

        result = await meta_tools.handle_tool("execute_tool", {"toolName": "explode"})

        assert isinstance(result, CallToolResult)
        assert is_error(result)
        assert result_text(result) == "Tool execution failed: GitLab API error: 500 Internal Server Error"
        assert result.structuredContent == {
            "success": False,
            "error": "GitLab API error: 500 Internal Server Error",
        }

    @pytest.mark.asyncio
    async def test_execute_contains_validation_failure(self, registry, meta_tools):
        """Handler-side pydantic validation errors are contained too."""
        async def strict(params):
            return PipelineArgs.model_validate(params)

        create_registry_adapter(registry, "pipelines").register_tool(
            "strict", ToolConfig(title="Strict", description="Validates"), strict
        )

        result = await meta_tools.handle_tool("execute_tool", {"toolName": "strict", "params": {}})

        assert is_error(result)
        assert result_text(result).startswith("Tool execution failed:")
        assert "project_id" in result_text(result)
