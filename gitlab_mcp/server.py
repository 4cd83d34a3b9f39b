"""Main MCP server implementation for GitLab."""

import asyncio
import logging
from typing import Any, Dict, Optional

from mcp import Tool
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions
from mcp.types import CallToolResult

from .config.settings import ServerSettings, load_settings
from .registry.operation_registry import OperationRegistry
from .registry.operations import register_all_operations
from .tools.meta_tools import MetaTools
from .utils.gitlab_client import GitLabClient
from .utils.log_config import configure_logging

logger = logging.getLogger(__name__)


class GitLabMCPServer:
    """MCP server exposing the GitLab operation catalog through meta tools."""

    def __init__(self, settings: ServerSettings, client: Optional[GitLabClient] = None):
        """
        Initialize the server and populate the operation registry.

        Args:
            settings: Resolved server settings
            client: GitLab client (built from settings when omitted)
        """
        self.settings = settings
        self.client = client or GitLabClient(
            settings.gitlab_api_url,
            token=settings.gitlab_token,
            timeout=settings.request_timeout,
        )

        self.registry = OperationRegistry(strict_categories=settings.strict_categories)
        self.skipped = register_all_operations(self.registry, self.client, settings)
        self.meta_tools = MetaTools(self.registry)

        # Create MCP server instance
        self.server = Server(settings.server_name, version=settings.server_version)

        # Register handlers
        self._register_handlers()

        logger.info(
            f"{settings.server_name} ready: {len(self.registry)} operations in "
            f"{len(self.registry.list_categories())} categories"
        )

    def _register_handlers(self):
        """Register all MCP handlers."""

        @self.server.list_tools()
        async def handle_list_tools() -> list[Tool]:
            """Only the meta tools are advertised."""
            return self.meta_tools.get_tools()

        @self.server.call_tool()
        async def handle_call_tool(name: str, arguments: Dict[str, Any]) -> CallToolResult:
            """Route tool calls to the meta tools."""
            return await self.meta_tools.handle_tool(name, arguments)

    def initialization_options(self) -> InitializationOptions:
        return InitializationOptions(
            server_name=self.settings.server_name,
            server_version=self.settings.server_version,
            capabilities=self.server.get_capabilities(
                notification_options=NotificationOptions(),
                experimental_capabilities={}
            )
        )

    async def run(self):
        """Run the MCP server over stdio."""
        from mcp.server.stdio import stdio_server

        try:
            async with stdio_server() as (read_stream, write_stream):
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.initialization_options(),
                )
        finally:
            await self.client.aclose()


def main():
    """Main entry point for the MCP server."""
    settings = load_settings()
    configure_logging(settings.log_level, settings.log_format)
    if not settings.gitlab_token:
        logger.warning("GITLAB_PERSONAL_ACCESS_TOKEN is not set; requests are unauthenticated")
    server = GitLabMCPServer(settings)
    asyncio.run(server.run())


if __name__ == "__main__":
    main()
