from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence

from .capabilities.base import Tool
from .errors import RunnerConfigError
from .guardrails import AgentGuardrails

if TYPE_CHECKING:
    from .providers.base import Model


@dataclass(frozen=True)
class Agent:
    """Immutable description of an agent: instructions, tools, optional model.

    The runner never mutates an agent; ``tools`` is normalized to a tuple and
    tool names must be unique.
    """

    name: str
    instructions: str
    tools: Sequence[Tool] = ()
    model: Optional["Model"] = None
    guardrails: Optional[AgentGuardrails] = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise RunnerConfigError("Agent name must be a non-empty string.")
        if not isinstance(self.instructions, str) or not self.instructions.strip():
            raise RunnerConfigError(f"Agent '{self.name}' instructions must be a non-empty string.")
        if not isinstance(self.tools, (list, tuple)):
            raise RunnerConfigError(f"Agent '{self.name}' tools must be a list.")
        seen: set[str] = set()
        for t in self.tools:
            if t.name in seen:
                raise RunnerConfigError(
                    f"Agent '{self.name}' declares tool '{t.name}' more than once.",
                    details={"tool_name": t.name},
                )
            seen.add(t.name)
        object.__setattr__(self, "tools", tuple(self.tools))

    def get_tool(self, name: str) -> Optional[Tool]:
        for t in self.tools:
            if t.name == name:
                return t
        return None
