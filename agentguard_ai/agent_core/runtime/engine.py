from __future__ import annotations

"""LangGraph runtime engine.

``AgentRunner`` runs an agent against an input while every tool call goes
through the safety gate.

Execution model
---------------

- ``run`` flattens the input, runs input guardrails, then either processes the
  explicitly requested tool calls (``manual`` continuation), drives the
  model loop (``model`` continuation, bounded by ``max_turns``) or completes
  immediately.
- A batch of tool calls is processed by a LangGraph state machine over a
  mutable ``_GraphState``; each iteration of the ``execute`` node handles
  exactly one call at index ``idx``.

Per-call processing
-------------------

1. Tool-stage guardrails.
2. Tool lookup on the agent.
3. Safety gate evaluation (plus the ``require_human_approval`` upgrade).
4. ``deny`` aborts the run; ``needs_human`` creates an approval request and
   routes to ``pause_for_approval``; ``allow`` executes the tool.

Pause/resume
------------

When a call needs a human, the runner stores a ``SuspendedRunState`` holding
the triggering call, the rest of the batch and everything executed so far,
and returns an interrupted ``RunResult``. ``resume_run`` consumes a resume
token: on approve the triggering call executes without a second gate check,
the rest of the batch is processed (and may pause again) and the model loop
continues if it was the model that planned the batch; on deny the suspended
state is discarded.
"""

import inspect
import logging
import math
from dataclasses import replace
from typing import Any, List, Mapping, Optional, Sequence, Union

from langgraph.graph import END, StateGraph
from pydantic import ValidationError

from ...core.config import settings
from ..agent import Agent
from ..capabilities.base import Tool, ToolContext
from ..errors import GateDeniedError, RunnerConfigError, RunnerError, ToolNotFoundError
from ..guardrails import GuardrailCheckInput, run_guardrails
from ..ids import create_id
from ..providers.base import ModelGenerateRequest, coerce_generate_result
from ..schemas.domain import (
    ApprovalStatus,
    ContinuationMode,
    GateDecision,
    GateDecisionKind,
    GuardrailStage,
    HumanApprovalRequest,
    HumanDecision,
    InputItem,
    RequestedToolCall,
    ResumeToken,
    RunExtensions,
    RunOptions,
    RunResult,
    ToolCallRequest,
    ToolCallResult,
    UsageStats,
)
from .models import BatchOutcome, RunContext, RunnerDeps, SuspendedRunState, _GraphState

logger = logging.getLogger(__name__)

PAUSED_OUTPUT_TEXT = "Execution paused. Human approval is required."
PAUSED_MESSAGE = "Execution paused for approval."
FORCED_APPROVAL_REASON = "require_human_approval option is enabled."


def flatten_input(value: Union[str, Sequence[Union[InputItem, Mapping[str, Any]]]]) -> str:
    """Join structured input items as ``role:content`` lines."""
    if isinstance(value, str):
        return value
    try:
        items = [InputItem.model_validate(v) if not isinstance(v, InputItem) else v for v in value]
    except ValidationError as exc:
        raise RunnerConfigError(f"Invalid run input: {exc}") from exc
    return "\n".join(f"{i.role}:{i.content}" for i in items)


def estimate_usage(input_text: str, output_text: str) -> UsageStats:
    input_tokens = max(1, math.ceil(len(input_text) / 4))
    output_tokens = max(1, math.ceil(len(output_text) / 4))
    return UsageStats(input_tokens=input_tokens, output_tokens=output_tokens, total_tokens=input_tokens + output_tokens)


def default_output_text(input_text: str, tool_calls: Sequence[ToolCallResult]) -> str:
    if not tool_calls:
        return input_text
    return f"Executed {len(tool_calls)} tool call(s)."


class AgentRunner:
    """Run agents with gate-mediated tool calls and human approval pauses.

    A runner is long-lived and shared: run state is keyed by run id, so
    concurrent runs do not interfere. Callers must not drive two steps of the
    same run concurrently.
    """

    def __init__(
        self,
        *,
        deps: RunnerDeps,
        default_policy_profile: Optional[str] = None,
        default_max_turns: Optional[int] = None,
    ) -> None:
        """
        Initialize the AgentRunner.

        Args:
            deps: Gate, approval controller and suspended-run store.
            default_policy_profile: Profile used when a run names none.
            default_max_turns: Model-loop turn budget when a run sets none.
        """
        self._deps = deps
        self._default_policy_profile = default_policy_profile or settings.default_policy_profile
        self._default_max_turns = default_max_turns or settings.max_turns
        self._graph = self._build_graph()

    @property
    def deps(self) -> RunnerDeps:
        return self._deps

    def _build_graph(self):
        """Build and compile the per-batch LangGraph state machine."""
        g: StateGraph = StateGraph(_GraphState)
        g.add_node("start", self._node_start)
        g.add_node("execute", self._node_execute_next)
        g.add_node("pause_for_approval", self._node_pause_for_approval)
        g.add_node("finish", self._node_finish)

        g.set_entry_point("start")
        g.add_edge("start", "execute")

        g.add_conditional_edges(
            "execute",
            self._route_after_execute,
            {
                "pause": "pause_for_approval",
                "finish": "finish",
                "continue": "execute",
            },
        )
        g.add_edge("pause_for_approval", END)
        g.add_edge("finish", END)
        return g.compile()

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------

    async def run(
        self,
        agent: Agent,
        input: Union[str, Sequence[Union[InputItem, Mapping[str, Any]]]],
        options: Optional[Union[RunOptions, Mapping[str, Any]]] = None,
    ) -> RunResult:
        """Start a new run.

        Raises:
            GuardrailDeniedError: an input or tool guardrail denied.
            GateDeniedError: the gate denied a tool call.
            GateEvaluationError: the safety evaluator failed or misbehaved.
            PolicyInvalidError: unknown policy profile.
            ToolNotFoundError: a requested tool is not on the agent.
            RunnerError: the model loop exhausted its turn budget.
        """
        opts = self._parse_options(options)
        ext = opts.extensions
        run_id = create_id("run")
        input_text = flatten_input(input)
        ctx = RunContext(
            run_id=run_id,
            agent=agent,
            input_text=input_text,
            policy_profile=ext.policy_profile or self._default_policy_profile,
            require_human_approval=ext.require_human_approval,
            stream=opts.stream,
        )
        logger.info("run started run=%s agent=%s profile=%s", run_id, agent.name, ctx.policy_profile)

        await run_guardrails(
            agent.guardrails,
            GuardrailStage.input,
            GuardrailCheckInput(run_id=run_id, agent=agent, stage=GuardrailStage.input, input_text=input_text),
        )

        if ext.tool_calls:
            outcome = await self._process_calls(
                ctx,
                list(ext.tool_calls),
                [],
                continuation=ContinuationMode.manual,
                remaining_model_turns=0,
            )
            if outcome.approval is not None:
                return self._interrupted_result(ctx, outcome)
            return await self._complete_run(ctx, outcome.executed_calls)

        if agent.model is not None:
            return await self._execute_model_loop(ctx, [], ext.max_turns or self._default_max_turns)

        return await self._complete_run(ctx, [])

    async def get_pending_approvals(self, run_id: Optional[str] = None) -> List[HumanApprovalRequest]:
        return await self._deps.approvals.get_pending_approvals(run_id)

    async def submit_approval(
        self,
        approval_id: str,
        decision: Union[HumanDecision, str],
        comment: Optional[str] = None,
    ) -> ResumeToken:
        return await self._deps.approvals.submit_approval(approval_id, decision, comment)

    async def approve_and_resume(
        self,
        run_id: str,
        approval_id: str,
        decision: Union[HumanDecision, str] = HumanDecision.approve,
        comment: Optional[str] = None,
    ) -> RunResult:
        token = await self.submit_approval(approval_id, decision, comment)
        return await self.resume_run(run_id, token.token)

    async def get_suspended_run(self, run_id: str) -> Optional[SuspendedRunState]:
        return await self._deps.suspended_runs.get(run_id)

    async def renew_approval(self, run_id: str) -> HumanApprovalRequest:
        """Issue a fresh approval for a suspended run whose approval was already decided.

        Used when a resume token expired before it was consumed. Tokens still
        active for the previous approval are revoked, so only the new approval
        can continue the run. A still pending approval is returned unchanged.

        Raises:
            RunnerError: If the run is not suspended.
        """
        state = await self._deps.suspended_runs.get(run_id)
        if state is None:
            raise RunnerError(f"No suspended run found: {run_id}", details={"run_id": run_id})
        current = await self._deps.approvals.get_approval(state.approval_id)
        if current is not None and current.status == ApprovalStatus.pending:
            return current

        self._deps.approvals.revoke_resume_tokens(state.approval_id)
        decision = state.gate_decision.model_copy(update={"approval_id": None})
        approval = await self._deps.approvals.create_approval_request(run_id, decision, decision.reason)
        await self._deps.suspended_runs.save(_replace_approval(state, approval.approval_id))
        logger.info("approval renewed run=%s approval=%s", run_id, approval.approval_id)
        return approval

    async def resume_run(self, run_id: str, token: str) -> RunResult:
        """Continue a suspended run with a resume token.

        Raises:
            RunnerError: No suspended run for ``run_id``.
            ResumeTokenError: Token unknown, for another run or a superseded
                approval, already used or expired.
            GateDeniedError: The human denied the approval.
        """
        state = await self._deps.suspended_runs.get(run_id)
        if state is None:
            raise RunnerError(f"No suspended run found: {run_id}", details={"run_id": run_id})

        grant = self._deps.approvals.consume_resume_token(run_id, token, state.approval_id)
        if grant.decision == HumanDecision.deny:
            await self._deps.suspended_runs.delete(run_id)
            logger.info("run denied on resume run=%s approval=%s", run_id, grant.approval_id)
            raise GateDeniedError("Human denied approval.", details={"approval_id": grant.approval_id})

        logger.info("run resumed run=%s approval=%s", run_id, grant.approval_id)
        ctx = state.context
        executed = list(state.executed_calls)
        approved, remaining = state.pending_calls[0], list(state.pending_calls[1:])

        await run_guardrails(
            ctx.agent.guardrails,
            GuardrailStage.tool,
            GuardrailCheckInput(
                run_id=run_id,
                agent=ctx.agent,
                stage=GuardrailStage.tool,
                input_text=ctx.input_text,
                tool_call=approved,
            ),
        )
        executed.append(await self._execute_tool(ctx, self._find_tool(ctx.agent, approved.tool_name), approved))

        outcome = await self._process_calls(
            ctx,
            remaining,
            executed,
            continuation=state.continuation,
            remaining_model_turns=state.remaining_model_turns,
        )
        if outcome.approval is not None:
            return self._interrupted_result(ctx, outcome)

        await self._deps.suspended_runs.delete(run_id)
        if state.continuation == ContinuationMode.model and state.remaining_model_turns > 0:
            return await self._execute_model_loop(ctx, outcome.executed_calls, state.remaining_model_turns)
        return await self._complete_run(ctx, outcome.executed_calls)

    # ------------------------------------------------------------------
    # batch state machine
    # ------------------------------------------------------------------

    async def _process_calls(
        self,
        ctx: RunContext,
        calls: List[RequestedToolCall],
        executed: List[ToolCallResult],
        *,
        continuation: ContinuationMode,
        remaining_model_turns: int,
    ) -> BatchOutcome:
        if not calls:
            return BatchOutcome(executed_calls=list(executed))
        state: _GraphState = {
            "ctx": ctx,
            "calls": calls,
            "idx": 0,
            "executed": list(executed),
            "continuation": continuation,
            "remaining_model_turns": remaining_model_turns,
        }
        final = await self._graph.ainvoke(state, config={"recursion_limit": len(calls) + 10})
        return BatchOutcome(executed_calls=list(final["executed"]), approval=final.get("approval"))

    async def _node_start(self, state: _GraphState) -> _GraphState:
        """Graph entry node. Currently a no-op."""
        return state

    async def _node_execute_next(self, state: _GraphState) -> _GraphState:
        """Authorize and (if allowed) execute the call at ``idx``."""
        calls = state["calls"]
        idx = state["idx"]
        if idx >= len(calls):
            state["_finished"] = True
            return state

        ctx = state["ctx"]
        call = calls[idx]
        tool, decision = await self._authorize(ctx, call)
        if decision.decision == GateDecisionKind.deny:
            logger.info("gate denied run=%s tool=%s reason=%s", ctx.run_id, call.tool_name, decision.reason)
            raise GateDeniedError(decision.reason, details={"tool_name": call.tool_name, "risk_level": decision.risk_level})

        if decision.decision == GateDecisionKind.needs_human:
            approval = await self._deps.approvals.create_approval_request(ctx.run_id, decision, decision.reason)
            state["approval"] = approval
            state["decision"] = decision.model_copy(update={"approval_id": approval.approval_id})
            return state

        state["executed"] = [*state["executed"], await self._execute_tool(ctx, tool, call)]
        state["idx"] = idx + 1
        if state["idx"] >= len(calls):
            state["_finished"] = True
        return state

    async def _node_pause_for_approval(self, state: _GraphState) -> _GraphState:
        """Persist the suspended run so it can be resumed with a token."""
        ctx = state["ctx"]
        approval = state["approval"]
        await self._deps.suspended_runs.save(
            SuspendedRunState(
                run_id=ctx.run_id,
                agent=ctx.agent,
                input_text=ctx.input_text,
                policy_profile=ctx.policy_profile,
                pending_calls=list(state["calls"][state["idx"] :]),
                executed_calls=list(state["executed"]),
                continuation=state["continuation"],
                remaining_model_turns=state["remaining_model_turns"],
                require_human_approval=ctx.require_human_approval,
                approval_id=approval.approval_id,
                gate_decision=state["decision"],
                stream=ctx.stream,
            )
        )
        logger.info("run suspended run=%s approval=%s", ctx.run_id, approval.approval_id)
        return state

    async def _node_finish(self, state: _GraphState) -> _GraphState:
        return state

    def _route_after_execute(self, state: _GraphState) -> str:
        if state.get("approval") is not None:
            return "pause"
        if state.get("_finished"):
            return "finish"
        return "continue"

    # ------------------------------------------------------------------
    # per-call helpers
    # ------------------------------------------------------------------

    async def _authorize(self, ctx: RunContext, call: RequestedToolCall) -> tuple[Tool, GateDecision]:
        await run_guardrails(
            ctx.agent.guardrails,
            GuardrailStage.tool,
            GuardrailCheckInput(
                run_id=ctx.run_id,
                agent=ctx.agent,
                stage=GuardrailStage.tool,
                input_text=ctx.input_text,
                tool_call=call,
            ),
        )
        tool = self._find_tool(ctx.agent, call.tool_name)
        request = ToolCallRequest(
            tool_name=tool.name,
            tool_kind=tool.kind,
            args=dict(call.args),
            user_intent=call.user_intent if call.user_intent is not None else ctx.input_text,
        )
        decision = await self._deps.gate.evaluate(ctx.agent, request, ctx.policy_profile)
        if ctx.require_human_approval and decision.decision == GateDecisionKind.allow:
            decision = GateDecision(
                decision=GateDecisionKind.needs_human,
                reason=FORCED_APPROVAL_REASON,
                risk_level=max(2, decision.risk_level),
                policy_ref=decision.policy_ref,
            )
        return tool, decision

    @staticmethod
    def _find_tool(agent: Agent, name: str) -> Tool:
        tool = agent.get_tool(name)
        if tool is None:
            raise ToolNotFoundError(name, agent.name)
        return tool

    @staticmethod
    async def _execute_tool(ctx: RunContext, tool: Tool, call: RequestedToolCall) -> ToolCallResult:
        args = dict(call.args)
        output = await tool.invoke(args, ToolContext(run_id=ctx.run_id, agent=ctx.agent, input_text=ctx.input_text))
        logger.debug("tool executed run=%s tool=%s", ctx.run_id, tool.name)
        return ToolCallResult(tool_name=tool.name, tool_kind=tool.kind, args=args, output=output)

    # ------------------------------------------------------------------
    # model loop and completion
    # ------------------------------------------------------------------

    async def _generate(self, ctx: RunContext, executed: List[ToolCallResult]):
        model = ctx.agent.model
        if model is None:
            raise RunnerError("Agent model is required in the model execution loop.")
        raw = model.generate(
            ModelGenerateRequest(agent=ctx.agent, input_text=ctx.input_text, tool_calls=list(executed), stream=ctx.stream)
        )
        if inspect.isawaitable(raw):
            raw = await raw
        return coerce_generate_result(raw)

    async def _execute_model_loop(self, ctx: RunContext, executed: List[ToolCallResult], turns: int) -> RunResult:
        executed = list(executed)
        for turn in range(turns):
            result = await self._generate(ctx, executed)
            if not result.tool_calls:
                output = (
                    result.output_text if result.output_text is not None else default_output_text(ctx.input_text, executed)
                )
                return await self._complete_run(ctx, executed, output)

            logger.debug("model planned %d call(s) run=%s turn=%d", len(result.tool_calls), ctx.run_id, turn + 1)
            outcome = await self._process_calls(
                ctx,
                list(result.tool_calls),
                executed,
                continuation=ContinuationMode.model,
                remaining_model_turns=turns - (turn + 1),
            )
            if outcome.approval is not None:
                return self._interrupted_result(ctx, outcome)
            executed = outcome.executed_calls

        raise RunnerError(
            "Model tool loop exceeded max_turns without reaching final output.",
            details={"run_id": ctx.run_id, "max_turns": turns},
        )

    async def _complete_run(
        self, ctx: RunContext, executed: List[ToolCallResult], output_override: Optional[str] = None
    ) -> RunResult:
        if output_override is not None:
            output = output_override
        elif ctx.agent.model is not None:
            result = await self._generate(ctx, executed)
            output = result.output_text if result.output_text is not None else default_output_text(ctx.input_text, executed)
        else:
            output = default_output_text(ctx.input_text, executed)

        await run_guardrails(
            ctx.agent.guardrails,
            GuardrailStage.output,
            GuardrailCheckInput(
                run_id=ctx.run_id,
                agent=ctx.agent,
                stage=GuardrailStage.output,
                input_text=ctx.input_text,
                final_output_text=output,
            ),
        )
        logger.info("run completed run=%s tool_calls=%d", ctx.run_id, len(executed))
        return RunResult(
            run_id=ctx.run_id,
            output_text=output,
            messages=[InputItem(role="assistant", content=output)],
            tool_calls=list(executed),
            usage=estimate_usage(ctx.input_text, output),
            extensions=RunExtensions(policy_profile=ctx.policy_profile, interrupted=False),
        )

    @staticmethod
    def _interrupted_result(ctx: RunContext, outcome: BatchOutcome) -> RunResult:
        return RunResult(
            run_id=ctx.run_id,
            output_text=PAUSED_OUTPUT_TEXT,
            messages=[InputItem(role="assistant", content=PAUSED_MESSAGE)],
            tool_calls=list(outcome.executed_calls),
            usage=estimate_usage(ctx.input_text, PAUSED_MESSAGE),
            interruptions=[outcome.approval] if outcome.approval is not None else [],
            extensions=RunExtensions(policy_profile=ctx.policy_profile, interrupted=True),
        )

    @staticmethod
    def _parse_options(options: Optional[Union[RunOptions, Mapping[str, Any]]]) -> RunOptions:
        if options is None:
            return RunOptions()
        if isinstance(options, RunOptions):
            return options
        try:
            return RunOptions.model_validate(dict(options))
        except ValidationError as exc:
            raise RunnerConfigError(
                f"Invalid run options: {exc}",
                details={"errors": exc.errors(include_url=False, include_context=False)},
            ) from exc


def _replace_approval(state: SuspendedRunState, approval_id: str) -> SuspendedRunState:
    return replace(
        state,
        approval_id=approval_id,
        gate_decision=state.gate_decision.model_copy(update={"approval_id": approval_id}),
    )
