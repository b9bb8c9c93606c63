from __future__ import annotations

"""Runtime dependency bundle, suspended-run snapshot and LangGraph state types.

The runner is designed to be dependency-injected.

- ``RunnerDeps`` collects the gate, the approval controller and the
  suspended-run store.
- ``SuspendedRunState`` is everything needed to continue a run that paused
  for human approval.
- ``_GraphState`` is the mutable state passed between LangGraph nodes while a
  batch of tool calls is processed.
"""

from dataclasses import dataclass, field
from typing import List, NotRequired, Optional, Required, TypedDict

from ..agent import Agent
from ..approval.controller import ApprovalController
from ..safety.gate import SafetyGate
from ..schemas.domain import (
    ContinuationMode,
    GateDecision,
    HumanApprovalRequest,
    RequestedToolCall,
    ToolCallResult,
)
from .store import SuspendedRunStore


@dataclass(frozen=True)
class RunnerDeps:
    """Dependency bundle for ``AgentRunner``.

    Typically built by ``create_runner``; tests construct it directly to share
    a controller or store between runners.
    """

    gate: SafetyGate
    approvals: ApprovalController
    suspended_runs: SuspendedRunStore


@dataclass(frozen=True)
class RunContext:
    """Per-run values that stay fixed across suspension and resume."""

    run_id: str
    agent: Agent
    input_text: str
    policy_profile: str
    require_human_approval: bool
    stream: bool = False


@dataclass(frozen=True)
class SuspendedRunState:
    """Snapshot of a run paused for approval.

    ``pending_calls[0]`` is the call that triggered the suspension; the rest
    are the unprocessed calls of the same batch, verbatim. ``executed_calls``
    holds every call executed before the suspension, in order.
    """

    run_id: str
    agent: Agent
    input_text: str
    policy_profile: str
    pending_calls: List[RequestedToolCall]
    executed_calls: List[ToolCallResult]
    continuation: ContinuationMode
    remaining_model_turns: int
    require_human_approval: bool
    approval_id: str
    gate_decision: GateDecision
    stream: bool = False

    @property
    def context(self) -> RunContext:
        return RunContext(
            run_id=self.run_id,
            agent=self.agent,
            input_text=self.input_text,
            policy_profile=self.policy_profile,
            require_human_approval=self.require_human_approval,
            stream=self.stream,
        )


@dataclass
class BatchOutcome:
    executed_calls: List[ToolCallResult] = field(default_factory=list)
    approval: Optional[HumanApprovalRequest] = None


class _GraphState(TypedDict, total=False):
    """Mutable LangGraph state for one batch of tool calls.

    Required keys:

    - ``ctx``: the run context.
    - ``calls``: the batch being processed.
    - ``idx``: index of the next call.
    - ``executed``: calls executed so far in the run (not only this batch).
    - ``continuation`` / ``remaining_model_turns``: saved into the snapshot on suspension.

    Optional keys:

    - ``approval`` / ``decision``: set when the current call needs a human.
    - ``_finished``: set once every call in the batch has executed.
    """

    ctx: Required[RunContext]
    calls: Required[List[RequestedToolCall]]
    idx: Required[int]
    executed: Required[List[ToolCallResult]]
    continuation: Required[ContinuationMode]
    remaining_model_turns: Required[int]

    approval: NotRequired[HumanApprovalRequest]
    decision: NotRequired[GateDecision]
    _finished: NotRequired[bool]
