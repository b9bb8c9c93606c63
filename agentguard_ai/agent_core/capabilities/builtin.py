from __future__ import annotations

import inspect
from typing import Any, Awaitable, Dict, List, Mapping, Optional, Protocol, Sequence, Union

from ..errors import AgentsError, McpExecutionError, McpUnreachableError, SkillSchemaError
from ..schemas.domain import ToolKind
from .base import Tool, ToolContext, ToolExecutor

MCP_TOOL_PARAMETERS: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "toolName": {"type": "string", "description": "Name of the remote MCP tool to call."},
        "args": {"type": "object", "description": "Arguments forwarded to the remote tool."},
    },
    "required": ["toolName"],
    "additionalProperties": False,
}


class HostedMcpServer(Protocol):
    """Anything that can forward a tool call to an MCP server."""

    url: str

    def call_tool(self, tool_name: str, args: Dict[str, Any]) -> Union[Any, Awaitable[Any]]: ...


def function_tool(
    name: str,
    description: str,
    fn: ToolExecutor,
    *,
    parameters: Optional[Dict[str, Any]] = None,
    metadata: Optional[Mapping[str, Any]] = None,
    kind: ToolKind = ToolKind.function,
) -> Tool:
    """
    Wrap a callable ``fn(args, ctx)`` as a tool.

    Raises:
        SkillSchemaError: If the name or description is blank.
    """
    if not isinstance(name, str) or not name.strip():
        raise SkillSchemaError("Tool name must be a non-empty string.")
    if not isinstance(description, str) or not description.strip():
        raise SkillSchemaError(f"Tool '{name}' description must be a non-empty string.")
    return Tool(
        name=name,
        description=description,
        execute=fn,
        kind=kind,
        parameters=parameters,
        metadata=dict(metadata or {}),
    )


def hosted_mcp_tool(
    server: HostedMcpServer,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    require_approval: bool = True,
    capabilities: Optional[Sequence[Mapping[str, Any]]] = None,
) -> Tool:
    """
    Expose a hosted MCP server as a single ``mcp`` tool.

    The tool takes ``{"toolName": ..., "args": {...}}`` and forwards the call
    to ``server.call_tool``. ``require_approval`` defaults to True so that
    under the ``balanced`` profile every call is routed to a human.

    Raises:
        McpUnreachableError: If the server has no URL.
    """
    url = getattr(server, "url", None)
    if not isinstance(url, str) or not url.strip():
        raise McpUnreachableError("Hosted MCP server requires a non-empty url.")
    server_id = getattr(server, "id", None) or "server"
    declared: List[Mapping[str, Any]] = list(
        capabilities if capabilities is not None else getattr(server, "capabilities", None) or []
    )

    async def _execute(args: Dict[str, Any], ctx: ToolContext) -> Any:
        tool_name = args.get("toolName") or args.get("tool_name")
        if not isinstance(tool_name, str) or not tool_name.strip():
            raise McpExecutionError(f"MCP tool '{server_id}' call requires toolName.")
        call_args = args.get("args") or {}
        if not isinstance(call_args, dict):
            raise McpExecutionError(f"MCP tool '{server_id}' args must be an object.")
        try:
            result = server.call_tool(tool_name, dict(call_args))
            if inspect.isawaitable(result):
                result = await result
        except AgentsError:
            raise
        except Exception as exc:
            raise McpExecutionError(
                f"MCP call '{tool_name}' on '{server_id}' failed: {exc}",
                details={"server_id": server_id, "tool_name": tool_name, "cause": repr(exc)},
            ) from exc
        return result

    return Tool(
        name=name or f"mcp.{server_id}",
        description=description or f"Hosted MCP server {server_id} at {url}",
        execute=_execute,
        kind=ToolKind.mcp,
        parameters=MCP_TOOL_PARAMETERS,
        metadata={
            "server_id": server_id,
            "server_url": url,
            "require_approval": require_approval,
            "capabilities": [dict(c) for c in declared],
        },
    )

