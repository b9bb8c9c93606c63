from __future__ import annotations

"""Tool data model and execution context.

A tool is the concrete execution unit an agent exposes to the runner. Tools
never authorize themselves: the runner asks the safety gate before every
invocation and only then calls ``Tool.invoke``.

Kinds
-----

- ``function``: plain in-process callable.
- ``skill``: a capability document surfaced as a tool. Metadata carries
  ``skill_id`` (or ``skillId``), ``skill_overview``, ``skill_constraints`` and
  ``skill_tags``.
- ``mcp``: a hosted MCP server. Metadata carries ``server_id``,
  ``server_url``, ``require_approval`` and ``capabilities``.
- ``introspection``: read-only self-description tools; authorized as
  ``function``.
"""

import inspect
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Mapping, Optional, Union

from ..schemas.domain import ToolKind

if TYPE_CHECKING:
    from ..agent import Agent


@dataclass(frozen=True)
class ToolContext:
    """Execution context passed to tool implementations.

    Attributes
    ----------
    run_id:
        Identifier of the run invoking the tool.
    agent:
        The agent whose catalog contains the tool.
    input_text:
        The flattened run input.
    """

    run_id: str
    agent: "Agent"
    input_text: str


ToolExecutor = Callable[[Dict[str, Any], ToolContext], Union[Any, Awaitable[Any]]]


@dataclass(frozen=True)
class Tool:
    """A named, described, executable capability of an agent."""

    name: str
    description: str
    execute: ToolExecutor
    kind: ToolKind = ToolKind.function
    parameters: Optional[Dict[str, Any]] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    async def invoke(self, args: Dict[str, Any], ctx: ToolContext) -> Any:
        """Run the tool; synchronous and asynchronous executors are both accepted."""
        result = self.execute(args, ctx)
        if inspect.isawaitable(result):
            result = await result
        return result
