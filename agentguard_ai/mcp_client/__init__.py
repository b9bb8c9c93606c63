"""In-process gateway for hosted MCP servers."""

from .gateway import McpGateway, McpServerConfig, McpServerHandle

__all__ = ["McpGateway", "McpServerConfig", "McpServerHandle"]
