"""Error taxonomy for the agent core.

Every failure surfaced by the runner, gate, approval controller and their
collaborators is an ``AgentsError`` carrying a stable machine-readable
``code``. The ``category`` is derived mechanically from the code and is meant
for routing and telemetry only; callers that need to branch on a specific
failure should catch the concrete subclass.
"""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional

ErrorCategory = Literal[
    "provider",
    "safety",
    "approval",
    "skills",
    "mcp",
    "policy",
    "runner",
    "unknown",
]

_CATEGORY_MARKERS: tuple[tuple[tuple[str, ...], ErrorCategory], ...] = (
    (("PROVIDER",), "provider"),
    (("GATE", "GUARDRAIL", "CAPABILITY"), "safety"),
    (("APPROVAL", "RESUME"), "approval"),
    (("SKILL",), "skills"),
    (("MCP",), "mcp"),
    (("POLICY",), "policy"),
    (("RUNNER", "RUN"), "runner"),
)


def infer_error_category(code: str) -> ErrorCategory:
    """Return the category for an error code; first matching marker wins."""
    for markers, category in _CATEGORY_MARKERS:
        if any(m in code for m in markers):
            return category
    return "unknown"


class AgentsError(Exception):
    """Base class for all agent core errors."""

    code: str = "AGENTS-E-UNKNOWN"
    default_message: str = "Agent core error."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        if code is not None:
            self.code = code
        self.message = message or self.default_message
        self.details: Dict[str, Any] = dict(details or {})
        super().__init__(self.message)

    @property
    def category(self) -> ErrorCategory:
        return infer_error_category(self.code)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "category": self.category,
            "message": self.message,
            "details": dict(self.details),
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


# --- runner -----------------------------------------------------------------


class RunnerConfigError(AgentsError):
    code = "AGENTS-E-RUNNER-CONFIG"
    default_message = "Invalid runner or agent configuration."


class RunnerError(AgentsError):
    code = "AGENTS-E-RUNNER"
    default_message = "Run failed."


class ToolNotFoundError(AgentsError):
    """A requested tool is not in the agent catalog. Shares the skill lookup code."""

    code = "AGENTS-E-SKILL-NOT-FOUND"

    def __init__(self, tool_name: str, agent_name: str) -> None:
        super().__init__(
            f"Tool '{tool_name}' is not registered on agent '{agent_name}'.",
            details={"tool_name": tool_name, "agent_name": agent_name},
        )


# --- safety -----------------------------------------------------------------


class GuardrailDeniedError(AgentsError):
    code = "AGENTS-E-GUARDRAIL-DENIED"

    def __init__(self, stage: str, reason: Optional[str] = None) -> None:
        self.stage = stage
        super().__init__(
            reason or f"Guardrail denied at {stage} stage.",
            details={"stage": stage},
        )


class GateDeniedError(AgentsError):
    code = "AGENTS-E-GATE-DENIED"
    default_message = "Safety gate denied the tool call."


class GateEvaluationError(AgentsError):
    code = "AGENTS-E-GATE-EVAL"
    default_message = "Safety evaluation failed."


class CapabilityResolveError(AgentsError):
    code = "AGENTS-E-AGENT-CAPABILITY-RESOLVE"
    default_message = "Unable to resolve agent capabilities."


# --- approval ---------------------------------------------------------------


class ApprovalNotFoundError(AgentsError):
    code = "AGENTS-E-APPROVAL-NOT-FOUND"

    def __init__(self, approval_id: str) -> None:
        super().__init__(f"Approval request not found: {approval_id}", details={"approval_id": approval_id})


class ApprovalInvalidError(AgentsError):
    code = "AGENTS-E-APPROVAL-INVALID"
    default_message = "Invalid approval request."


class ResumeTokenError(AgentsError):
    """Resume token rejected.

    ``reason`` is one of ``not_found``, ``run_mismatch``,
    ``approval_mismatch``, ``inactive`` or ``expired``.
    """

    code = "AGENTS-E-RESUME-TOKEN"

    def __init__(self, reason: str, message: str) -> None:
        self.reason = reason
        super().__init__(message, details={"reason": reason})


# --- policy -----------------------------------------------------------------


class PolicyInvalidError(AgentsError):
    code = "AGENTS-E-POLICY-INVALID"
    default_message = "Invalid policy profile."


# --- skills -----------------------------------------------------------------


class SkillNotFoundError(AgentsError):
    code = "AGENTS-E-SKILL-NOT-FOUND"

    def __init__(self, skill_id: str) -> None:
        super().__init__(f"Skill not found: {skill_id}", details={"skill_id": skill_id})


class SkillSchemaError(AgentsError):
    code = "AGENTS-E-SKILL-SCHEMA"
    default_message = "Invalid skill or tool definition."


class SkillNotLoadedError(AgentsError):
    code = "AGENTS-E-SKILL-NOT-LOADED"
    default_message = "Skills are not loaded."


# --- mcp --------------------------------------------------------------------


class McpUnreachableError(AgentsError):
    code = "AGENTS-E-MCP-UNREACHABLE"
    default_message = "MCP server is unreachable."


class McpExecutionError(AgentsError):
    code = "AGENTS-E-MCP-EXEC"
    default_message = "MCP tool execution failed."


class McpSchemaError(AgentsError):
    code = "AGENTS-E-MCP-SCHEMA"
    default_message = "MCP server returned an invalid schema."


# --- provider ---------------------------------------------------------------


class ProviderConfigError(AgentsError):
    code = "AGENTS-E-PROVIDER-CONFIG"
    default_message = "Invalid model provider configuration."


class ProviderRuntimeError(AgentsError):
    code = "AGENTS-E-PROVIDER-RUNTIME"
    default_message = "Model provider request failed."
