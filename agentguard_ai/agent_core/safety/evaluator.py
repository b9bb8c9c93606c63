from __future__ import annotations

"""Safety evaluator strategy.

The safety gate delegates the actual judgment of a tool call to a
``SafetyAgent``. A ``SafetyAgent`` wraps a plain callable
``evaluator(agent, request, policy_profile)`` that may be synchronous
or asynchronous and returns either a ``SafetyAgentDecision`` or a mapping with
the same keys.

Fail-closed contract
--------------------

Whatever the evaluator does, the caller only ever sees one of two outcomes:

- a validated ``SafetyAgentDecision``, or
- ``GateEvaluationError``.

Exceptions raised by the evaluator and results that violate the decision
contract (unknown decision, risk level outside 1..5 or not an integer, blank
reason, blank policy reference) are both converted.
"""

import inspect
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Optional, Union

from pydantic import BaseModel, ValidationError

from ..errors import GateEvaluationError
from ..policy.models import PolicyProfile
from ..schemas.domain import GateDecisionKind, SafetyAgentDecision, ToolCallRequest

if TYPE_CHECKING:
    from ..agent import Agent

logger = logging.getLogger(__name__)

SafetyEvaluatorResult = Union[SafetyAgentDecision, Mapping[str, Any]]
SafetyEvaluator = Callable[
    ["Agent", ToolCallRequest, PolicyProfile],
    Union[SafetyEvaluatorResult, Awaitable[SafetyEvaluatorResult]],
]


def validate_safety_decision(raw: Any, *, default_policy_ref: str) -> SafetyAgentDecision:
    """Validate an evaluator result against the decision contract.

    A missing ``policy_ref`` is filled with ``default_policy_ref`` (the
    profile name) before validation.

    Raises:
        GateEvaluationError: If the result does not satisfy the contract.
    """
    if isinstance(raw, BaseModel):
        payload = raw.model_dump()
    elif isinstance(raw, Mapping):
        payload = dict(raw)
    else:
        raise GateEvaluationError(
            f"Safety evaluator returned unsupported result type: {type(raw).__name__}",
        )
    if payload.get("policy_ref") is None:
        payload["policy_ref"] = default_policy_ref
    try:
        return SafetyAgentDecision.model_validate(payload)
    except ValidationError as exc:
        logger.warning("safety decision rejected: %s", exc.errors())
        raise GateEvaluationError(
            "Safety evaluator returned an invalid decision.",
            details={"errors": exc.errors(include_url=False, include_context=False)},
        ) from exc


def _allow_all(agent: "Agent", request: ToolCallRequest, policy_profile: PolicyProfile) -> SafetyAgentDecision:
    return SafetyAgentDecision(
        decision=GateDecisionKind.allow,
        reason="default-allow",
        risk_level=1,
        policy_ref=policy_profile.name,
    )


class SafetyAgent:
    """Evaluate tool call requests with a pluggable evaluator.

    Without an evaluator every call is allowed at risk 1; approval is then
    governed solely by the policy profile.
    """

    def __init__(self, evaluator: Optional[SafetyEvaluator] = None) -> None:
        self._evaluator: SafetyEvaluator = evaluator or _allow_all

    @classmethod
    def allow_all(cls) -> "SafetyAgent":
        return cls()

    async def evaluate(
        self, agent: "Agent", request: ToolCallRequest, policy_profile: PolicyProfile
    ) -> SafetyAgentDecision:
        try:
            raw = self._evaluator(agent, request, policy_profile)
            if inspect.isawaitable(raw):
                raw = await raw
        except GateEvaluationError:
            raise
        except Exception as exc:
            logger.warning("safety evaluator failed for tool=%s: %s", request.tool_name, exc)
            raise GateEvaluationError(
                f"Safety evaluator failed: {exc}",
                details={"tool_name": request.tool_name, "cause": repr(exc)},
            ) from exc
        return validate_safety_decision(raw, default_policy_ref=policy_profile.name)
