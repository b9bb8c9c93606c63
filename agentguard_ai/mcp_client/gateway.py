from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from ..agent_core.capabilities.base import Tool
from ..agent_core.capabilities.builtin import hosted_mcp_tool
from ..agent_core.errors import AgentsError, McpExecutionError, McpSchemaError, McpUnreachableError
from ..agent_core.ids import create_id
from ..agent_core.schemas.domain import McpCapabilitySummary

logger = logging.getLogger(__name__)


@dataclass
class McpServerConfig:
    """
    Registration record for a hosted MCP server.

    ``call_tool`` forwards a call to the server; ``list_tools`` (optional)
    returns its capabilities as ``{name, description, risk_level}`` entries.
    """

    url: str
    call_tool: Callable[[str, Dict[str, Any]], Union[Any, Awaitable[Any]]]
    id: Optional[str] = None
    list_tools: Optional[Callable[[], Union[Any, Awaitable[Any]]]] = None
    capabilities: List[Dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class McpServerHandle:
    server_id: str
    capabilities: List[McpCapabilitySummary]


def _capability_fields(item: Any) -> Any:
    if not isinstance(item, dict):
        return item
    return {k: item.get(k) for k in ("name", "description", "risk_level")}


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class McpGateway:
    """
    In-process registry of hosted MCP servers.

    Responsibilities:
    - register (with best-effort capability introspection)
    - introspect
    - call
    - as_tool (expose a registered server as an ``mcp`` tool)
    """

    def __init__(self) -> None:
        self._servers: Dict[str, McpServerConfig] = {}

    async def register(self, config: McpServerConfig) -> McpServerHandle:
        if not isinstance(config.url, str) or not config.url.strip():
            raise McpUnreachableError("MCP server url is required.")
        server_id = config.id or create_id("mcp")
        config.id = server_id
        self._servers[server_id] = config

        try:
            capabilities = await self.introspect(server_id)
        except (McpSchemaError, McpUnreachableError) as e:
            logger.warning("McpGateway.register: introspection failed for %s: %s", server_id, e)
            capabilities = []
        config.capabilities = [c.model_dump() for c in capabilities]
        logger.debug("McpGateway.register: id=%s capabilities=%d", server_id, len(capabilities))
        return McpServerHandle(server_id=server_id, capabilities=capabilities)

    def _get(self, server_id: str) -> McpServerConfig:
        server = self._servers.get(server_id)
        if server is None:
            raise McpUnreachableError(f"MCP server is not registered: {server_id}", details={"server_id": server_id})
        return server

    async def introspect(self, server_id: str) -> List[McpCapabilitySummary]:
        server = self._get(server_id)
        if server.list_tools is None:
            return []
        try:
            raw = await _maybe_await(server.list_tools())
        except Exception as e:
            raise McpUnreachableError(f"MCP tools/list failed for {server_id}: {e}", details={"server_id": server_id}) from e
        if not isinstance(raw, list):
            raise McpSchemaError("MCP tools/list must return an array.", details={"server_id": server_id})
        try:
            return [McpCapabilitySummary.model_validate(_capability_fields(item)) for item in raw]
        except ValidationError as e:
            raise McpSchemaError(
                f"MCP tools/list returned an invalid capability: {e}",
                details={"server_id": server_id},
            ) from e

    async def call(self, server_id: str, tool_name: str, args: Dict[str, Any]) -> Any:
        server = self._get(server_id)
        if not tool_name:
            raise McpExecutionError("toolName is required.", details={"server_id": server_id})
        logger.debug("McpGateway.call: server=%s tool=%s", server_id, tool_name)
        try:
            return await _maybe_await(server.call_tool(tool_name, args))
        except AgentsError:
            raise
        except Exception as e:
            raise McpExecutionError(
                f"MCP call '{tool_name}' on '{server_id}' failed: {e}",
                details={"server_id": server_id, "tool_name": tool_name, "cause": repr(e)},
            ) from e

    def as_tool(self, server_id: str, *, require_approval: bool = True, name: Optional[str] = None) -> Tool:
        server = self._get(server_id)
        return hosted_mcp_tool(server, name=name, require_approval=require_approval)
