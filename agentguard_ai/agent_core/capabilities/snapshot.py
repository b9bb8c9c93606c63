from __future__ import annotations

"""Capability snapshot derivation.

``derive_agent_capability_snapshot`` turns an agent's tool list into the
structured description the safety gate hands to evaluators: tool names, skill
ids, MCP capability summaries and a per-tool catalog.

The snapshot is recomputed on every authorization check and never cached, so
it always reflects the agent as it is at that moment. Metadata is read
defensively: malformed optional entries are skipped, only a missing agent, a
non-list tool collection or a nameless tool is an error.
"""

import math
from typing import TYPE_CHECKING, Any, List, Mapping, Optional

from ..errors import CapabilityResolveError
from ..schemas.domain import (
    AgentCapabilitySnapshot,
    McpCapabilitySummary,
    SkillCapabilitySummary,
    ToolCapabilitySummary,
    ToolKind,
)
from .base import Tool

if TYPE_CHECKING:
    from ..agent import Agent

DEFAULT_MCP_RISK_LEVEL = 3


def _read_str(meta: Mapping[str, Any], key: str) -> Optional[str]:
    v = meta.get(key)
    return v if isinstance(v, str) and v.strip() else None


def _read_str_list(meta: Mapping[str, Any], key: str) -> List[str]:
    v = meta.get(key)
    if not isinstance(v, (list, tuple)):
        return []
    return [x for x in v if isinstance(x, str)]


def _clamp_risk(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    return max(1, min(5, math.floor(value)))


def resolve_skill_id(tool: Tool) -> Optional[str]:
    return _read_str(tool.metadata, "skill_id") or _read_str(tool.metadata, "skillId")


def resolve_mcp_capabilities(tool: Tool) -> List[McpCapabilitySummary]:
    """Declared capabilities of an MCP tool, or one synthetic capability at risk 3."""
    out: List[McpCapabilitySummary] = []
    raw = tool.metadata.get("capabilities")
    if isinstance(raw, (list, tuple)):
        for item in raw:
            if not isinstance(item, Mapping):
                continue
            name = _read_str(item, "name")
            description = _read_str(item, "description")
            risk = _clamp_risk(item.get("risk_level"))
            if name is None or description is None or risk is None:
                continue
            out.append(McpCapabilitySummary(name=name, description=description, risk_level=risk))
    if not out:
        out.append(
            McpCapabilitySummary(name=tool.name, description=tool.description, risk_level=DEFAULT_MCP_RISK_LEVEL)
        )
    return out


def summarize_tool(tool: Tool) -> ToolCapabilitySummary:
    summary = ToolCapabilitySummary(
        name=tool.name,
        kind=tool.kind,
        description=tool.description,
        parameters_schema=dict(tool.parameters) if tool.parameters is not None else None,
    )
    if tool.kind == ToolKind.skill:
        skill_id = resolve_skill_id(tool)
        if skill_id is not None:
            summary.skill = SkillCapabilitySummary(
                skill_id=skill_id,
                overview=_read_str(tool.metadata, "skill_overview"),
                constraints=_read_str_list(tool.metadata, "skill_constraints"),
                tags=_read_str_list(tool.metadata, "skill_tags"),
            )
    elif tool.kind == ToolKind.mcp:
        summary.mcp_capabilities = resolve_mcp_capabilities(tool)
    return summary


def derive_agent_capability_snapshot(agent: "Agent") -> AgentCapabilitySnapshot:
    """Derive the capability snapshot for ``agent``.

    Raises:
        CapabilityResolveError: agent missing, tools not a list, or a tool without a name.
    """
    if agent is None:
        raise CapabilityResolveError("Agent is required to derive capabilities.")
    tools = getattr(agent, "tools", None)
    if not isinstance(tools, (list, tuple)):
        raise CapabilityResolveError(f"Agent '{getattr(agent, 'name', '?')}' tools must be a list.")

    tool_names: List[str] = []
    skill_ids: List[str] = []
    mcp_capabilities: List[McpCapabilitySummary] = []
    catalog: List[ToolCapabilitySummary] = []

    for tool in tools:
        name = getattr(tool, "name", None)
        if not isinstance(name, str) or not name.strip():
            raise CapabilityResolveError(f"Agent '{agent.name}' has a tool without a name.")
        tool_names.append(name)
        entry = summarize_tool(tool)
        catalog.append(entry)
        if entry.skill is not None and entry.skill.skill_id not in skill_ids:
            skill_ids.append(entry.skill.skill_id)
        if entry.mcp_capabilities:
            mcp_capabilities.extend(entry.mcp_capabilities)

    return AgentCapabilitySnapshot(
        agent_name=agent.name,
        tool_names=tool_names,
        skill_ids=skill_ids,
        mcp_capabilities=mcp_capabilities,
        tool_catalog=catalog,
    )
