from __future__ import annotations

from enum import Enum

from pydantic import Field, field_validator

from ..schemas.base import BaseSchema
from ..schemas.domain import ToolKind

ALL_TOOL_SCOPES: frozenset[ToolKind] = frozenset({ToolKind.function, ToolKind.skill, ToolKind.mcp})


class ApprovalMode(str, Enum):
    """
    How an evaluator ``allow`` is treated by the gate.

    Attributes:
        always: Every allowed call still needs a human.
        risk_based: Only risky calls (risk >= 4, or MCP tools flagged ``require_approval``) need a human.
        never: Allowed calls execute immediately.
    """
    always = "always"
    risk_based = "risk_based"
    never = "never"


class PolicyProfile(BaseSchema):
    """
    A named policy profile selected per run.

    ``allowed_tool_scopes`` restricts which tool kinds the gate lets through;
    a call whose kind is outside the scopes is denied.
    """
    name: str = Field(min_length=1)
    approval_mode: ApprovalMode
    allowed_tool_scopes: set[ToolKind] = Field(default_factory=lambda: set(ALL_TOOL_SCOPES))

    @field_validator("allowed_tool_scopes")
    @classmethod
    def _known_scopes(cls, v: set[ToolKind]) -> set[ToolKind]:
        unknown = v - ALL_TOOL_SCOPES
        if unknown:
            raise ValueError(f"unsupported tool scopes: {sorted(s.value for s in unknown)}")
        return v

    def allows_kind(self, kind: ToolKind) -> bool:
        return kind in self.allowed_tool_scopes
