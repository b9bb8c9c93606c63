"""Tools, tool builders and capability snapshot derivation."""

from .base import Tool, ToolContext, ToolExecutor
from .builtin import MCP_TOOL_PARAMETERS, HostedMcpServer, function_tool, hosted_mcp_tool
from .snapshot import derive_agent_capability_snapshot, summarize_tool

__all__ = [
    "Tool",
    "ToolContext",
    "ToolExecutor",
    "MCP_TOOL_PARAMETERS",
    "HostedMcpServer",
    "function_tool",
    "hosted_mcp_tool",
    "derive_agent_capability_snapshot",
    "summarize_tool",
]
