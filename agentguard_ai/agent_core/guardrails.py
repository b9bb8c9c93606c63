"""Staged guardrail checks.

Guardrails are ordered predicate lists attached to an agent for three stages:

- ``input``: once per ``run`` before anything else,
- ``tool``: before every tool call is authorized (and before an approved call
  is executed on resume),
- ``output``: once on the final output text.

Within a stage handlers run in order and the first denial aborts the run with
``GuardrailDeniedError``. Handlers may be sync or async and may return a
``GuardrailResult``, a mapping with ``allow``/``reason`` keys, or a bool.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Optional, Sequence, Union

from .errors import GuardrailDeniedError
from .schemas.domain import GuardrailStage, RequestedToolCall

if TYPE_CHECKING:
    from .agent import Agent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GuardrailResult:
    allow: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class GuardrailCheckInput:
    """What a guardrail handler sees."""

    run_id: str
    agent: "Agent"
    stage: GuardrailStage
    input_text: str
    tool_call: Optional[RequestedToolCall] = None
    final_output_text: Optional[str] = None


GuardrailHandler = Callable[
    [GuardrailCheckInput],
    Union[GuardrailResult, Mapping[str, Any], bool, Awaitable[Union[GuardrailResult, Mapping[str, Any], bool]]],
]


@dataclass(frozen=True)
class AgentGuardrails:
    input: Sequence[GuardrailHandler] = ()
    tool: Sequence[GuardrailHandler] = ()
    output: Sequence[GuardrailHandler] = ()

    def for_stage(self, stage: GuardrailStage) -> Sequence[GuardrailHandler]:
        return getattr(self, stage.value)


def _coerce_result(raw: Any) -> GuardrailResult:
    if isinstance(raw, GuardrailResult):
        return raw
    if isinstance(raw, bool):
        return GuardrailResult(allow=raw)
    if isinstance(raw, Mapping):
        reason = raw.get("reason")
        return GuardrailResult(allow=bool(raw.get("allow")), reason=str(reason) if reason else None)
    raise TypeError(f"guardrail handler returned unsupported value: {type(raw).__name__}")


async def run_guardrails(
    guardrails: Optional[AgentGuardrails],
    stage: GuardrailStage,
    check: GuardrailCheckInput,
) -> None:
    """Run every handler registered for ``stage``; raise on the first denial."""
    if guardrails is None:
        return
    for handler in guardrails.for_stage(stage):
        raw = handler(check)
        if inspect.isawaitable(raw):
            raw = await raw
        result = _coerce_result(raw)
        if not result.allow:
            logger.info("guardrail denied run=%s stage=%s reason=%s", check.run_id, stage.value, result.reason)
            raise GuardrailDeniedError(stage.value, result.reason)


@dataclass(frozen=True)
class StaticGuardrailRule:
    """Deny when ``deny_when`` matches the checked text."""

    deny_when: Callable[[str], bool]
    reason: Optional[str] = None


def _rule_handler(rule: StaticGuardrailRule, *, use_output: bool) -> GuardrailHandler:
    def _handler(check: GuardrailCheckInput) -> GuardrailResult:
        text = (check.final_output_text or "") if use_output else check.input_text
        if rule.deny_when(text):
            return GuardrailResult(allow=False, reason=rule.reason)
        return GuardrailResult(allow=True)

    return _handler


def create_guardrails_template(
    input_rules: Sequence[StaticGuardrailRule] = (),
    output_rules: Sequence[StaticGuardrailRule] = (),
    tool_rules: Sequence[StaticGuardrailRule] = (),
) -> AgentGuardrails:
    """Build ``AgentGuardrails`` from static text rules.

    Input and tool rules inspect the run input text; output rules inspect the
    final output text.
    """
    return AgentGuardrails(
        input=tuple(_rule_handler(r, use_output=False) for r in input_rules),
        tool=tuple(_rule_handler(r, use_output=False) for r in tool_rules),
        output=tuple(_rule_handler(r, use_output=True) for r in output_rules),
    )
