from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import ConfigDict, Field, StrictInt, field_validator

from .base import BaseSchema


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ToolKind(str, Enum):
    function = "function"
    mcp = "mcp"
    skill = "skill"
    introspection = "introspection"


class GateDecisionKind(str, Enum):
    allow = "allow"
    deny = "deny"
    needs_human = "needs_human"


class ApprovalStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    denied = "denied"


class HumanDecision(str, Enum):
    approve = "approve"
    deny = "deny"


class ResumeTokenStatus(str, Enum):
    active = "active"
    used = "used"
    revoked = "revoked"


class GuardrailStage(str, Enum):
    input = "input"
    tool = "tool"
    output = "output"


class ContinuationMode(str, Enum):
    manual = "manual"
    model = "model"


# --- capability snapshot ------------------------------------------------------


class McpCapabilitySummary(BaseSchema):
    name: str
    description: str
    risk_level: int = Field(ge=1, le=5)


class SkillCapabilitySummary(BaseSchema):
    skill_id: str
    overview: Optional[str] = None
    constraints: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)


class ToolCapabilitySummary(BaseSchema):
    name: str
    kind: ToolKind
    description: str
    parameters_schema: Optional[Dict[str, Any]] = None
    skill: Optional[SkillCapabilitySummary] = None
    mcp_capabilities: Optional[List[McpCapabilitySummary]] = None


class AgentCapabilitySnapshot(BaseSchema):
    agent_name: str
    tool_names: List[str] = Field(default_factory=list)
    skill_ids: List[str] = Field(default_factory=list)
    mcp_capabilities: List[McpCapabilitySummary] = Field(default_factory=list)
    tool_catalog: List[ToolCapabilitySummary] = Field(default_factory=list)


# --- gate ---------------------------------------------------------------------


class ToolCallRequest(BaseSchema):
    """A single tool invocation submitted to the safety gate.

    The gate fills ``capability_snapshot``, ``tool_catalog`` and
    ``target_tool`` before handing the request to the evaluator.
    """

    tool_name: str
    tool_kind: ToolKind
    args: Dict[str, Any] = Field(default_factory=dict)
    user_intent: Optional[str] = None
    capability_snapshot: Optional[AgentCapabilitySnapshot] = None
    tool_catalog: List[ToolCapabilitySummary] = Field(default_factory=list)
    target_tool: Optional[ToolCapabilitySummary] = None

    @field_validator("tool_kind")
    @classmethod
    def _normalize_introspection(cls, v: ToolKind) -> ToolKind:
        # introspection tools are authorized as plain functions
        return ToolKind.function if v == ToolKind.introspection else v


class SafetyAgentDecision(BaseSchema):
    """Contract every safety evaluator result must satisfy."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    decision: GateDecisionKind
    reason: str
    risk_level: StrictInt = Field(ge=1, le=5)
    policy_ref: str

    @field_validator("reason", "policy_ref")
    @classmethod
    def _non_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must be a non-empty string")
        return v


class GateDecision(BaseSchema):
    decision: GateDecisionKind
    risk_level: int = Field(ge=1, le=5)
    reason: str = Field(min_length=1)
    policy_ref: Optional[str] = None
    approval_id: Optional[str] = None


# --- approval -----------------------------------------------------------------


class HumanApprovalRequest(BaseSchema):
    approval_id: str
    run_id: str
    required_action: str = "human_review"
    prompt: str
    status: ApprovalStatus = ApprovalStatus.pending
    risk_level: Optional[int] = None
    reason: Optional[str] = None
    comment: Optional[str] = None
    created_at: datetime = Field(default_factory=_utc_now)
    decided_at: Optional[datetime] = None


class ResumeToken(BaseSchema):
    token: str
    run_id: str
    approval_id: str
    expires_at: datetime
    status: ResumeTokenStatus = ResumeTokenStatus.active


class ResumeGrant(BaseSchema):
    """What a successfully consumed resume token unlocks."""

    decision: HumanDecision
    approval_id: str


# --- run surface --------------------------------------------------------------


class RequestedToolCall(BaseSchema):
    tool_name: str = Field(alias="toolName", min_length=1)
    args: Dict[str, Any] = Field(default_factory=dict)
    user_intent: Optional[str] = Field(default=None, alias="userIntent")


class ToolCallResult(BaseSchema):
    tool_name: str
    tool_kind: ToolKind
    args: Dict[str, Any] = Field(default_factory=dict)
    output: Any = None


class InputItem(BaseSchema):
    role: Literal["user", "assistant", "system"]
    content: str


class UsageStats(BaseSchema):
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


class AgentExtensionsOptions(BaseSchema):
    policy_profile: Optional[str] = Field(default=None, alias="policyProfile")
    require_human_approval: bool = Field(default=False, alias="requireHumanApproval")
    tool_calls: List[RequestedToolCall] = Field(default_factory=list, alias="toolCalls")
    max_turns: Optional[int] = Field(default=None, ge=1, alias="maxTurns")


class RunOptions(BaseSchema):
    stream: bool = False
    extensions: AgentExtensionsOptions = Field(default_factory=AgentExtensionsOptions)


class RunExtensions(BaseSchema):
    policy_profile: str
    interrupted: bool


class RunResult(BaseSchema):
    run_id: str
    output_text: str
    messages: List[InputItem] = Field(default_factory=list)
    tool_calls: List[ToolCallResult] = Field(default_factory=list)
    usage: UsageStats = Field(default_factory=UsageStats)
    interruptions: Optional[List[HumanApprovalRequest]] = None
    extensions: RunExtensions


class ModelGenerateResult(BaseSchema):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    output_text: Optional[str] = Field(default=None, alias="outputText")
    tool_calls: List[RequestedToolCall] = Field(default_factory=list, alias="toolCalls")
    raw: Any = None

    @field_validator("tool_calls", mode="before")
    @classmethod
    def _none_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v
