"""Standardized result utilities for MCP tools."""

import json
from typing import Any, Dict, Optional

from mcp.types import CallToolResult, TextContent
from pydantic_core import to_jsonable_python


def text_result(
    text: str,
    structured: Optional[Dict[str, Any]] = None
) -> CallToolResult:
    """Create a successful result with a text summary.

    Args:
        text: Rendered summary for direct display
        structured: Optional structured payload

    Returns:
        CallToolResult with a single text content block
    """
    return CallToolResult(
        content=[TextContent(type="text", text=text)],
        structuredContent=structured,
    )


def error_result(
    message: str,
    structured: Optional[Dict[str, Any]] = None
) -> CallToolResult:
    """Create an error-flagged result.

    The result is returned normally, never raised, so the agent can read the
    message and retry with corrected input.

    Args:
        message: Error message
        structured: Optional structured payload

    Returns:
        CallToolResult with isError set
    """
    return CallToolResult(
        content=[TextContent(type="text", text=message)],
        structuredContent=structured,
        isError=True,
    )


def json_result(data: Any) -> CallToolResult:
    """Render a GitLab API payload as pretty JSON text."""
    text = json.dumps(to_jsonable_python(data, fallback=str), indent=2)
    return text_result(text)


def is_error(result: CallToolResult) -> bool:
    """Check if a tool result is error-flagged."""
    return bool(result.isError)


def result_text(result: CallToolResult) -> str:
    """Concatenate the text blocks of a result."""
    return "\n".join(
        block.text for block in result.content if isinstance(block, TextContent)
    )
