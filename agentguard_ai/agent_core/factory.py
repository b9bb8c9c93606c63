from __future__ import annotations

"""Convenience factories for wiring the agent core.

``create_runner`` builds a fully wired ``AgentRunner`` (gate, approval
controller, suspended-run store) from a handful of optional pieces. The
intent is to keep application wiring and tests concise, while still allowing
deployments to inject their own policy store, safety agent or stores.
"""

from typing import Optional

from .approval.controller import ApprovalController, Clock
from .policy.store import InMemoryPolicyStore, PolicyStore
from .runtime.engine import AgentRunner
from .runtime.models import RunnerDeps
from .runtime.store import InMemorySuspendedRunStore, SuspendedRunStore
from .safety.evaluator import SafetyAgent
from .safety.gate import SafetyEvaluatorAgent, SafetyGate


def build_deps(
    *,
    safety_agent: Optional[SafetyEvaluatorAgent] = None,
    policy_store: Optional[PolicyStore] = None,
    resume_token_ttl_seconds: Optional[float] = None,
    suspended_runs: Optional[SuspendedRunStore] = None,
    clock: Optional[Clock] = None,
) -> RunnerDeps:
    """Construct the ``RunnerDeps`` bundle; missing pieces get in-memory defaults."""
    gate = SafetyGate(
        safety_agent=safety_agent or SafetyAgent.allow_all(),
        policy_store=policy_store or InMemoryPolicyStore(),
    )
    return RunnerDeps(
        gate=gate,
        approvals=ApprovalController(resume_token_ttl_seconds, clock=clock),
        suspended_runs=suspended_runs or InMemorySuspendedRunStore(),
    )


def create_runner(
    *,
    safety_agent: Optional[SafetyEvaluatorAgent] = None,
    policy_store: Optional[PolicyStore] = None,
    resume_token_ttl_seconds: Optional[float] = None,
    suspended_runs: Optional[SuspendedRunStore] = None,
    clock: Optional[Clock] = None,
    default_policy_profile: Optional[str] = None,
    default_max_turns: Optional[int] = None,
) -> AgentRunner:
    """Construct an ``AgentRunner``. Without a safety agent every call is judged allow at risk 1."""
    deps = build_deps(
        safety_agent=safety_agent,
        policy_store=policy_store,
        resume_token_ttl_seconds=resume_token_ttl_seconds,
        suspended_runs=suspended_runs,
        clock=clock,
    )
    return AgentRunner(
        deps=deps,
        default_policy_profile=default_policy_profile,
        default_max_turns=default_max_turns,
    )
