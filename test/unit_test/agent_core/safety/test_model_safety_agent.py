from __future__ import annotations

import json

import pytest

from agentguard_ai.agent_core.errors import GateEvaluationError, ProviderRuntimeError
from agentguard_ai.agent_core.policy.store import InMemoryPolicyStore
from agentguard_ai.agent_core.safety.gate import SafetyGate
from agentguard_ai.agent_core.safety.model_evaluator import JUDGE_INSTRUCTIONS, ModelSafetyAgent, extract_json_object
from agentguard_ai.agent_core.schemas.domain import GateDecisionKind, ModelGenerateResult, ToolCallRequest, ToolKind


def _req() -> ToolCallRequest:
    return ToolCallRequest(tool_name="echo", tool_kind=ToolKind.function, args={"q": 1}, user_intent="secret plan")


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ('{"decision": "allow"}', {"decision": "allow"}),
        ('```json\n{"decision": "deny"}\n```', {"decision": "deny"}),
        ('Verdict: {"decision": "needs_human", "risk_level": 3} done', {"decision": "needs_human", "risk_level": 3}),
    ],
)
def test_extract_json_object(text: str, expected) -> None:
    assert extract_json_object(text) == expected


@pytest.mark.parametrize("text", ["", "no json here", "{not json}", "[1, 2]"])
def test_extract_json_object_rejects_garbage(text: str) -> None:
    with pytest.raises(ValueError):
        extract_json_object(text)


@pytest.mark.asyncio
async def test_prompt_contents_and_verdict(agent, scripted_model) -> None:
    verdict = {"decision": "allow", "reason": "harmless echo", "risk_level": 1, "policy_ref": "rubric-1"}
    model = scripted_model([ModelGenerateResult(output_text=json.dumps(verdict))])
    judge = ModelSafetyAgent(model, rubric=["No network access.", "  "])
    gate = SafetyGate(safety_agent=judge)

    decision = await gate.evaluate(agent, _req(), "fast")

    assert decision.decision == GateDecisionKind.allow
    assert decision.policy_ref == "rubric-1"
    sent = model.requests[0]
    assert sent.agent.instructions == JUDGE_INSTRUCTIONS
    assert sent.agent.tools == ()
    prompt = json.loads(sent.input_text)
    assert prompt["rubric"] == ["No network access."]
    assert prompt["agent"] == {"name": "assistant", "instructions": "Help the user."}
    assert prompt["policy_profile"] == "fast"
    assert prompt["request"]["tool_name"] == "echo"
    assert "user_intent" not in prompt["request"]
    assert prompt["capability_snapshot"]["tool_names"] == ["echo", "mcp.files"]
    assert [t["name"] for t in prompt["tool_catalog"]] == ["echo", "mcp.files"]
    assert prompt["target_tool"]["name"] == "echo"
    assert "secret plan" not in sent.input_text


def test_prompt_includes_user_intent_when_enabled(agent, scripted_model) -> None:
    judge = ModelSafetyAgent(scripted_model([]), include_user_intent=True)
    profile = InMemoryPolicyStore().get_profile("balanced")
    prompt = json.loads(judge.build_prompt(agent, _req(), profile))
    assert prompt["request"]["user_intent"] == "secret plan"
    assert prompt["capability_snapshot"] is None
    assert prompt["target_tool"] is None


@pytest.mark.asyncio
async def test_missing_policy_ref_defaults_to_profile(agent, scripted_model) -> None:
    model = scripted_model([{"outputText": '{"decision": "deny", "reason": "nope", "risk_level": 5}'}])
    profile = InMemoryPolicyStore().get_profile("strict")
    decision = await ModelSafetyAgent(model).evaluate(agent, _req(), profile)
    assert decision.decision == GateDecisionKind.deny
    assert decision.policy_ref == "strict"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "output",
    [
        None,
        "I think it is fine.",
        '{"decision": "allow", "reason": "ok", "risk_level": 7}',
    ],
)
async def test_bad_judgments_fail_closed(agent, scripted_model, output) -> None:
    model = scripted_model([ModelGenerateResult(output_text=output)])
    profile = InMemoryPolicyStore().get_profile("fast")
    with pytest.raises(GateEvaluationError):
        await ModelSafetyAgent(model).evaluate(agent, _req(), profile)


class _FailingModel:
    def __init__(self, exc: Exception) -> None:
        self.exc = exc

    async def generate(self, request):
        raise self.exc


@pytest.mark.asyncio
@pytest.mark.parametrize("exc", [ProviderRuntimeError("503"), TimeoutError("slow")])
async def test_model_failures_become_gate_evaluation_errors(agent, exc: Exception) -> None:
    profile = InMemoryPolicyStore().get_profile("fast")
    with pytest.raises(GateEvaluationError) as info:
        await ModelSafetyAgent(_FailingModel(exc)).evaluate(agent, _req(), profile)
    assert info.value.__cause__ is exc


class _SyncModel:
    def __init__(self, text: str) -> None:
        self.text = text
        self.requests = []

    def generate(self, request):
        self.requests.append(request)
        return ModelGenerateResult(output_text=self.text)


@pytest.mark.asyncio
async def test_sync_models_are_supported(agent) -> None:
    model = _SyncModel('{"decision": "needs_human", "reason": "writes files", "risk_level": 3}')
    profile = InMemoryPolicyStore().get_profile("fast")

    decision = await ModelSafetyAgent(model).evaluate(agent, _req(), profile)

    assert decision.decision == GateDecisionKind.needs_human
    assert decision.risk_level == 3
    assert len(model.requests) == 1
