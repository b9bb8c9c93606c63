from __future__ import annotations

"""Safety gate.

``SafetyGate`` is the single authorization point for tool calls. For each
request it:

1. resolves the named policy profile (unknown names fail immediately),
2. derives a fresh capability snapshot of the agent and locates the target
   tool's catalog entry (a missing entry is tolerated),
3. asks the safety agent for a decision,
4. fails closed: evaluator exceptions and contract violations become
   ``GateEvaluationError``,
5. annotates a validated ``allow`` with the profile's approval mode.

Policy annotation
-----------------

Only ``allow`` is ever changed; ``deny`` and ``needs_human`` from the
evaluator are never downgraded.

- tool kind outside ``allowed_tool_scopes``: ``deny``
- ``always``: ``needs_human`` at risk ``max(2, r)``
- ``risk_based``: ``needs_human`` when the target is an MCP tool flagged
  ``require_approval`` or when ``r >= 4``
- ``never``: unchanged
"""

import logging
from typing import TYPE_CHECKING, Optional, Protocol

from ..capabilities.snapshot import derive_agent_capability_snapshot
from ..errors import GateEvaluationError
from ..policy.models import ApprovalMode, PolicyProfile
from ..policy.store import InMemoryPolicyStore, PolicyStore
from ..schemas.domain import GateDecision, GateDecisionKind, SafetyAgentDecision, ToolCallRequest, ToolKind
from .evaluator import SafetyAgent, validate_safety_decision

if TYPE_CHECKING:
    from ..agent import Agent

logger = logging.getLogger(__name__)

HIGH_RISK_THRESHOLD = 4


class SafetyEvaluatorAgent(Protocol):
    async def evaluate(
        self, agent: "Agent", request: ToolCallRequest, policy_profile: PolicyProfile
    ) -> SafetyAgentDecision: ...


class SafetyGate:
    """Authorize tool calls through a policy profile and a safety agent."""

    def __init__(
        self,
        *,
        safety_agent: Optional[SafetyEvaluatorAgent] = None,
        policy_store: Optional[PolicyStore] = None,
    ) -> None:
        self.safety_agent: SafetyEvaluatorAgent = safety_agent or SafetyAgent()
        self.policy_store: PolicyStore = policy_store or InMemoryPolicyStore()

    async def evaluate(self, agent: "Agent", request: ToolCallRequest, policy_profile: str) -> GateDecision:
        profile = self.policy_store.get_profile(policy_profile)
        snapshot = derive_agent_capability_snapshot(agent)
        target = next((t for t in snapshot.tool_catalog if t.name == request.tool_name), None)
        enriched = request.model_copy(
            update={
                "capability_snapshot": snapshot,
                "tool_catalog": snapshot.tool_catalog,
                "target_tool": target,
            }
        )

        try:
            raw = await self.safety_agent.evaluate(agent, enriched, profile)
        except GateEvaluationError:
            raise
        except Exception as exc:
            logger.warning("safety agent failed for tool=%s: %s", request.tool_name, exc)
            raise GateEvaluationError(
                f"Safety evaluation failed: {exc}",
                details={"tool_name": request.tool_name, "cause": repr(exc)},
            ) from exc
        verdict = validate_safety_decision(raw, default_policy_ref=profile.name)

        decision = self._apply_policy(agent, enriched, profile, verdict)
        logger.debug(
            "gate decision tool=%s profile=%s decision=%s risk=%d",
            request.tool_name,
            profile.name,
            decision.decision.value,
            decision.risk_level,
        )
        return decision

    def _apply_policy(
        self, agent: "Agent", request: ToolCallRequest, profile: PolicyProfile, verdict: SafetyAgentDecision
    ) -> GateDecision:
        decision = GateDecision(
            decision=verdict.decision,
            risk_level=verdict.risk_level,
            reason=verdict.reason,
            policy_ref=verdict.policy_ref,
        )
        if verdict.decision != GateDecisionKind.allow:
            return decision

        if not profile.allows_kind(request.tool_kind):
            return decision.model_copy(
                update={
                    "decision": GateDecisionKind.deny,
                    "reason": f"Tool kind '{request.tool_kind.value}' is not allowed by policy '{profile.name}'.",
                }
            )

        if profile.approval_mode == ApprovalMode.always:
            return decision.model_copy(
                update={
                    "decision": GateDecisionKind.needs_human,
                    "risk_level": max(2, verdict.risk_level),
                    "reason": f"Policy '{profile.name}' requires human approval for every tool call.",
                }
            )

        if profile.approval_mode == ApprovalMode.risk_based:
            if self._mcp_requires_approval(agent, request):
                return decision.model_copy(
                    update={
                        "decision": GateDecisionKind.needs_human,
                        "reason": f"MCP tool '{request.tool_name}' requires human approval.",
                    }
                )
            if verdict.risk_level >= HIGH_RISK_THRESHOLD:
                return decision.model_copy(
                    update={
                        "decision": GateDecisionKind.needs_human,
                        "reason": f"Risk level {verdict.risk_level} requires human approval under '{profile.name}'.",
                    }
                )
        return decision

    @staticmethod
    def _mcp_requires_approval(agent: "Agent", request: ToolCallRequest) -> bool:
        if request.tool_kind != ToolKind.mcp:
            return False
        tool = next((t for t in agent.tools if t.name == request.tool_name), None)
        return tool is not None and tool.metadata.get("require_approval") is True
