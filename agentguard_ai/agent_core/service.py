from __future__ import annotations

"""Module-level run API backed by one shared default runner.

Applications that need a single runner per process can call these functions
directly instead of wiring ``create_runner`` themselves. The default runner
uses the allow-all safety agent, so approval is governed solely by policy
profiles.
"""

from typing import Any, List, Mapping, Optional, Sequence, Union

from .agent import Agent
from .factory import create_runner
from .runtime.engine import AgentRunner
from .schemas.domain import HumanApprovalRequest, HumanDecision, InputItem, ResumeToken, RunOptions, RunResult

_default_runner: Optional[AgentRunner] = None


def get_default_runner() -> AgentRunner:
    global _default_runner
    if _default_runner is None:
        _default_runner = create_runner()
    return _default_runner


def set_default_runner(runner: Optional[AgentRunner]) -> None:
    """Replace (or with None, reset) the shared runner."""
    global _default_runner
    _default_runner = runner


async def run(
    agent: Agent,
    input: Union[str, Sequence[Union[InputItem, Mapping[str, Any]]]],
    options: Optional[Union[RunOptions, Mapping[str, Any]]] = None,
) -> RunResult:
    return await get_default_runner().run(agent, input, options)


async def get_pending_approvals(run_id: Optional[str] = None) -> List[HumanApprovalRequest]:
    return await get_default_runner().get_pending_approvals(run_id)


async def submit_approval(
    approval_id: str, decision: Union[HumanDecision, str], comment: Optional[str] = None
) -> ResumeToken:
    return await get_default_runner().submit_approval(approval_id, decision, comment)


async def resume_run(run_id: str, token: str) -> RunResult:
    return await get_default_runner().resume_run(run_id, token)


async def approve_and_resume(
    run_id: str,
    approval_id: str,
    decision: Union[HumanDecision, str] = HumanDecision.approve,
    comment: Optional[str] = None,
) -> RunResult:
    return await get_default_runner().approve_and_resume(run_id, approval_id, decision, comment)
