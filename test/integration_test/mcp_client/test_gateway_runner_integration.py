from __future__ import annotations

from typing import Any, Dict, List

import pytest

from agentguard_ai.agent_core.agent import Agent
from agentguard_ai.agent_core.errors import McpExecutionError
from agentguard_ai.agent_core.factory import create_runner
from agentguard_ai.agent_core.safety.evaluator import SafetyAgent
from agentguard_ai.mcp_client.gateway import McpGateway, McpServerConfig


class _FileServer:
    def __init__(self) -> None:
        self.calls: List[tuple[str, Dict[str, Any]]] = []

    def list_tools(self) -> List[Dict[str, Any]]:
        return [
            {"name": "read_file", "description": "Read a file", "risk_level": 1},
            {"name": "delete_file", "description": "Delete a file", "risk_level": 5},
        ]

    async def call_tool(self, name: str, args: Dict[str, Any]) -> Any:
        if name == "explode":
            raise OSError("disk on fire")
        self.calls.append((name, args))
        return {"ok": True, "tool": name}


async def _registered_gateway() -> tuple[McpGateway, _FileServer]:
    server = _FileServer()
    gateway = McpGateway()
    await gateway.register(
        McpServerConfig(url="http://mock/files", call_tool=server.call_tool, id="files", list_tools=server.list_tools)
    )
    return gateway, server


@pytest.mark.asyncio
async def test_evaluator_sees_introspected_capabilities() -> None:
    gateway, server = await _registered_gateway()
    seen: List[Any] = []

    def _judge(agent, request, profile):
        seen.append(request)
        highest = max(c.risk_level for c in request.target_tool.mcp_capabilities)
        return {"decision": "allow", "reason": "scoped", "risk_level": highest}

    agent = Agent(name="ops", instructions="Manage files.", tools=[gateway.as_tool("files", require_approval=False)])
    runner = create_runner(safety_agent=SafetyAgent(_judge))

    paused = await runner.run(
        agent,
        "delete tmp",
        {"extensions": {"toolCalls": [{"toolName": "mcp.files", "args": {"toolName": "delete_file", "args": {"path": "/tmp/x"}}}]}},
    )

    snapshot = seen[0].capability_snapshot
    assert [c.name for c in snapshot.mcp_capabilities] == ["read_file", "delete_file"]
    assert paused.extensions.interrupted is True
    assert paused.interruptions[0].risk_level == 5  # type: ignore[index]

    result = await runner.approve_and_resume(paused.run_id, paused.interruptions[0].approval_id)  # type: ignore[index]
    assert result.tool_calls[0].output == {"ok": True, "tool": "delete_file"}
    assert server.calls == [("delete_file", {"path": "/tmp/x"})]


@pytest.mark.asyncio
async def test_remote_failure_aborts_run() -> None:
    gateway, _ = await _registered_gateway()
    agent = Agent(name="ops", instructions="Manage files.", tools=[gateway.as_tool("files")])
    runner = create_runner()
    options = {"extensions": {"policyProfile": "fast", "toolCalls": [{"toolName": "mcp.files", "args": {"toolName": "explode"}}]}}

    with pytest.raises(McpExecutionError) as exc:
        await runner.run(agent, "boom", options)
    assert exc.value.details["tool_name"] == "explode"
