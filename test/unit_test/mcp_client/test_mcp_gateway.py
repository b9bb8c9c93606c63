from __future__ import annotations

from typing import Any, Dict, List

import pytest

from agentguard_ai.agent_core.agent import Agent
from agentguard_ai.agent_core.capabilities.base import ToolContext
from agentguard_ai.agent_core.capabilities.snapshot import derive_agent_capability_snapshot
from agentguard_ai.agent_core.errors import McpExecutionError, McpSchemaError, McpUnreachableError
from agentguard_ai.agent_core.schemas.domain import ToolKind
from agentguard_ai.mcp_client.gateway import McpGateway, McpServerConfig


class _Server:
    def __init__(self, tools: Any = None, fail_listing: bool = False) -> None:
        self.tools = tools if tools is not None else []
        self.fail_listing = fail_listing
        self.calls: List[tuple[str, Dict[str, Any]]] = []

    async def list_tools(self) -> Any:
        if self.fail_listing:
            raise ConnectionError("refused")
        return self.tools

    def call_tool(self, name: str, args: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append((name, args))
        return {"called": name}


def _config(server: _Server, server_id: str | None = "files") -> McpServerConfig:
    return McpServerConfig(url="http://mock/mcp", call_tool=server.call_tool, id=server_id, list_tools=server.list_tools)


@pytest.mark.asyncio
async def test_register_introspects_capabilities() -> None:
    server = _Server([{"name": "read", "description": "Read a file", "risk_level": 2, "inputSchema": {}}])
    gateway = McpGateway()
    handle = await gateway.register(_config(server))

    assert handle.server_id == "files"
    assert [(c.name, c.risk_level) for c in handle.capabilities] == [("read", 2)]


@pytest.mark.asyncio
async def test_register_assigns_id_and_tolerates_listing_failure() -> None:
    gateway = McpGateway()
    handle = await gateway.register(_config(_Server(fail_listing=True), server_id=None))
    assert handle.server_id.startswith("mcp_")
    assert handle.capabilities == []


@pytest.mark.asyncio
async def test_register_requires_url() -> None:
    server = _Server()
    with pytest.raises(McpUnreachableError):
        await McpGateway().register(McpServerConfig(url="", call_tool=server.call_tool))


@pytest.mark.asyncio
async def test_introspect_errors() -> None:
    gateway = McpGateway()
    with pytest.raises(McpUnreachableError):
        await gateway.introspect("nope")

    await gateway.register(_config(_Server({"not": "a list"}), server_id="bad"))
    with pytest.raises(McpSchemaError):
        await gateway.introspect("bad")

    await gateway.register(_config(_Server([{"name": "x", "description": "y", "risk_level": 8}]), server_id="risky"))
    with pytest.raises(McpSchemaError):
        await gateway.introspect("risky")

    await gateway.register(_config(_Server(fail_listing=True), server_id="down"))
    with pytest.raises(McpUnreachableError):
        await gateway.introspect("down")


@pytest.mark.asyncio
async def test_call_forwards_to_server() -> None:
    server = _Server()
    gateway = McpGateway()
    await gateway.register(_config(server))
    assert await gateway.call("files", "read", {"path": "a"}) == {"called": "read"}
    assert server.calls == [("read", {"path": "a"})]
    with pytest.raises(McpExecutionError):
        await gateway.call("files", "", {})


@pytest.mark.asyncio
async def test_call_wraps_server_failures() -> None:
    async def _call_tool(name: str, args: Dict[str, Any]) -> Any:
        raise TimeoutError("server went away")

    gateway = McpGateway()
    await gateway.register(McpServerConfig(url="http://mock/mcp", call_tool=_call_tool, id="flaky"))

    with pytest.raises(McpExecutionError) as exc_info:
        await gateway.call("flaky", "read", {"path": "a"})
    assert exc_info.value.details["server_id"] == "flaky"
    assert exc_info.value.details["tool_name"] == "read"
    assert isinstance(exc_info.value.__cause__, TimeoutError)


@pytest.mark.asyncio
async def test_call_passes_through_agent_errors() -> None:
    def _call_tool(name: str, args: Dict[str, Any]) -> Any:
        raise McpSchemaError("bad payload")

    gateway = McpGateway()
    await gateway.register(McpServerConfig(url="http://mock/mcp", call_tool=_call_tool, id="strict"))

    with pytest.raises(McpSchemaError):
        await gateway.call("strict", "read", {})


@pytest.mark.asyncio
async def test_as_tool_exposes_registered_capabilities() -> None:
    server = _Server([{"name": "write", "description": "Write a file", "risk_level": 4}])
    gateway = McpGateway()
    await gateway.register(_config(server))
    tool = gateway.as_tool("files")

    assert tool.name == "mcp.files"
    assert tool.kind == ToolKind.mcp
    assert tool.metadata["require_approval"] is True

    agent = Agent(name="a", instructions="i", tools=[tool])
    snap = derive_agent_capability_snapshot(agent)
    assert [(c.name, c.risk_level) for c in snap.mcp_capabilities] == [("write", 4)]

    ctx = ToolContext(run_id="run_1", agent=agent, input_text="x")
    assert await tool.invoke({"toolName": "write", "args": {"path": "b"}}, ctx) == {"called": "write"}
    assert server.calls == [("write", {"path": "b"})]
