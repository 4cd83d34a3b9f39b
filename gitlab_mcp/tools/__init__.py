"""MCP tool implementations."""

from .meta_tools import META_TOOL_NAMES, MetaTools

__all__ = ['META_TOOL_NAMES', 'MetaTools']
