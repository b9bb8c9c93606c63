"""Pydantic schemas shared across the agent core."""

from .base import BaseSchema
from .domain import (
    AgentCapabilitySnapshot,
    AgentExtensionsOptions,
    ApprovalStatus,
    ContinuationMode,
    GateDecision,
    GateDecisionKind,
    GuardrailStage,
    HumanApprovalRequest,
    HumanDecision,
    InputItem,
    McpCapabilitySummary,
    ModelGenerateResult,
    RequestedToolCall,
    ResumeGrant,
    ResumeToken,
    ResumeTokenStatus,
    RunExtensions,
    RunOptions,
    RunResult,
    SafetyAgentDecision,
    SkillCapabilitySummary,
    ToolCallRequest,
    ToolCallResult,
    ToolCapabilitySummary,
    ToolKind,
    UsageStats,
)

__all__ = [
    "BaseSchema",
    "AgentCapabilitySnapshot",
    "AgentExtensionsOptions",
    "ApprovalStatus",
    "ContinuationMode",
    "GateDecision",
    "GateDecisionKind",
    "GuardrailStage",
    "HumanApprovalRequest",
    "HumanDecision",
    "InputItem",
    "McpCapabilitySummary",
    "ModelGenerateResult",
    "RequestedToolCall",
    "ResumeGrant",
    "ResumeToken",
    "ResumeTokenStatus",
    "RunExtensions",
    "RunOptions",
    "RunResult",
    "SafetyAgentDecision",
    "SkillCapabilitySummary",
    "ToolCallRequest",
    "ToolCallResult",
    "ToolCapabilitySummary",
    "ToolKind",
    "UsageStats",
]
