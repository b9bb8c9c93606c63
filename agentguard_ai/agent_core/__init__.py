"""Agent run orchestration and tool-call authorization.

Design overview
---------------

Every tool call requested during a run goes through the same pipeline:

1. tool-stage guardrails,
2. lookup of the tool on the agent,
3. the ``SafetyGate`` (safety agent verdict plus policy profile annotation),
4. either execution (``allow``), a fatal ``GateDeniedError`` (``deny``) or a
   suspension awaiting human approval (``needs_human``).

A suspended run is resumed with a single-use resume token minted by the
``ApprovalController`` once a human decides.

Typical usage
-------------

Most applications should use ``create_runner`` to wire the defaults, or the
module-level helpers in ``agent_core.service`` backed by one shared runner.
"""

from .agent import Agent
from .approval import ApprovalController
from .capabilities import Tool, ToolContext, derive_agent_capability_snapshot, function_tool, hosted_mcp_tool
from .errors import AgentsError
from .factory import build_deps, create_runner
from .guardrails import (
    AgentGuardrails,
    GuardrailCheckInput,
    GuardrailResult,
    StaticGuardrailRule,
    create_guardrails_template,
)
from .policy import InMemoryPolicyStore, PolicyProfile
from .runtime import AgentRunner, RunnerDeps
from .safety import ModelSafetyAgent, SafetyAgent, SafetyGate
from .schemas.domain import (
    GateDecision,
    GateDecisionKind,
    HumanApprovalRequest,
    HumanDecision,
    ResumeToken,
    RunOptions,
    RunResult,
    ToolKind,
)

__all__ = [
    "Agent",
    "AgentGuardrails",
    "AgentRunner",
    "AgentsError",
    "ApprovalController",
    "GateDecision",
    "GateDecisionKind",
    "GuardrailCheckInput",
    "GuardrailResult",
    "HumanApprovalRequest",
    "HumanDecision",
    "InMemoryPolicyStore",
    "ModelSafetyAgent",
    "PolicyProfile",
    "ResumeToken",
    "RunOptions",
    "RunResult",
    "RunnerDeps",
    "SafetyAgent",
    "SafetyGate",
    "StaticGuardrailRule",
    "Tool",
    "ToolContext",
    "ToolKind",
    "build_deps",
    "create_guardrails_template",
    "create_runner",
    "derive_agent_capability_snapshot",
    "function_tool",
    "hosted_mcp_tool",
]
