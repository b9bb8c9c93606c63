from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import httpx
import pytest

from agentguard_ai.agent_core.agent import Agent
from agentguard_ai.agent_core.capabilities.base import Tool, ToolContext
from agentguard_ai.agent_core.capabilities.builtin import function_tool, hosted_mcp_tool
from agentguard_ai.agent_core.providers.base import ModelGenerateRequest
from agentguard_ai.agent_core.schemas.domain import ModelGenerateResult


@pytest.fixture(autouse=True)
def _global_offline_http_guard(monkeypatch: pytest.MonkeyPatch):
    allowed_prefixes: Iterable[str] = (
        "http://mock",
        "https://mock",
        "http://localhost",
        "http://127.0.0.1",
        "http://0.0.0.0",
    )

    orig_sync = httpx._client.Client.request
    orig_async = httpx._client.AsyncClient.request

    def _is_allowed(url_str: str) -> bool:
        return any(url_str.startswith(p) for p in allowed_prefixes)

    def offline_sync(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return orig_sync(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard: {url_str}")

    async def offline_async(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return await orig_async(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard (async): {url_str}")

    monkeypatch.setattr(httpx._client.Client, "request", offline_sync, raising=True)
    monkeypatch.setattr(httpx._client.AsyncClient, "request", offline_async, raising=True)
    yield


class RecordingTool:
    """Executor that records every invocation."""

    def __init__(self, output: Any = None) -> None:
        self.output = output
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, args: Dict[str, Any], ctx: ToolContext) -> Any:
        self.calls.append(dict(args))
        return self.output if self.output is not None else {"echo": dict(args)}


class FakeMcpServer:
    def __init__(self, url: str = "http://mock/mcp", id: Optional[str] = "files") -> None:
        self.url = url
        self.id = id
        self.calls: List[tuple[str, Dict[str, Any]]] = []

    async def call_tool(self, tool_name: str, args: Dict[str, Any]) -> Any:
        self.calls.append((tool_name, dict(args)))
        return {"tool": tool_name, "ok": True}


class ScriptedModel:
    """Model returning a fixed sequence of generate results."""

    def __init__(self, results: List[Any]) -> None:
        self._results = list(results)
        self.requests: List[ModelGenerateRequest] = []

    async def generate(self, request: ModelGenerateRequest) -> Any:
        self.requests.append(request)
        if not self._results:
            return ModelGenerateResult(output_text="done")
        return self._results.pop(0)


def make_function_tool(name: str = "echo", executor: Optional[RecordingTool] = None) -> Tool:
    return function_tool(name, f"{name} tool", executor or RecordingTool())


@pytest.fixture
def echo_executor() -> RecordingTool:
    return RecordingTool()


@pytest.fixture
def echo_tool(echo_executor: RecordingTool) -> Tool:
    return make_function_tool("echo", echo_executor)


@pytest.fixture
def mcp_server() -> FakeMcpServer:
    return FakeMcpServer()


@pytest.fixture
def mcp_tool(mcp_server: FakeMcpServer) -> Tool:
    return hosted_mcp_tool(mcp_server)


@pytest.fixture
def agent(echo_tool: Tool, mcp_tool: Tool) -> Agent:
    return Agent(name="assistant", instructions="Help the user.", tools=[echo_tool, mcp_tool])


@pytest.fixture
def scripted_model():
    """Factory for ``ScriptedModel`` instances."""
    return ScriptedModel


@pytest.fixture
def recording_tool():
    """Factory for ``(tool, executor)`` pairs of recording function tools."""

    def _make(name: str = "echo", output: Any = None) -> tuple[Tool, RecordingTool]:
        executor = RecordingTool(output)
        return make_function_tool(name, executor), executor

    return _make
