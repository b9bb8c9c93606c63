from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from agentguard_ai.agent_core.approval.controller import ApprovalController
from agentguard_ai.agent_core.errors import ApprovalInvalidError, ApprovalNotFoundError, ResumeTokenError
from agentguard_ai.agent_core.schemas.domain import (
    ApprovalStatus,
    GateDecision,
    GateDecisionKind,
    HumanDecision,
    ResumeTokenStatus,
)
from agentguard_ai.core.config import settings


class _Clock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def clock() -> _Clock:
    return _Clock()


@pytest.fixture
def controller(clock: _Clock) -> ApprovalController:
    return ApprovalController(60, clock=clock)


def _needs_human(risk: int = 4, approval_id=None) -> GateDecision:
    return GateDecision(
        decision=GateDecisionKind.needs_human,
        risk_level=risk,
        reason="needs a human",
        approval_id=approval_id,
    )


@pytest.mark.asyncio
async def test_create_and_list_pending(controller: ApprovalController, clock: _Clock) -> None:
    a1 = await controller.create_approval_request("run_1", _needs_human(), "Approve echo?")
    a2 = await controller.create_approval_request("run_2", _needs_human(2), "Approve mcp?")

    assert a1.status == ApprovalStatus.pending
    assert a1.required_action == "human_review"
    assert a1.prompt == "Approve echo?"
    assert a1.risk_level == 4
    assert a1.reason == "needs a human"
    assert a1.created_at == clock.now
    assert a1.approval_id != a2.approval_id

    assert {a.approval_id for a in await controller.get_pending_approvals()} == {a1.approval_id, a2.approval_id}
    assert [a.approval_id for a in await controller.get_pending_approvals("run_2")] == [a2.approval_id]


@pytest.mark.asyncio
async def test_create_uses_decision_approval_id(controller: ApprovalController) -> None:
    a = await controller.create_approval_request("run_1", _needs_human(approval_id="approval_fixed"), "p")
    assert a.approval_id == "approval_fixed"
    with pytest.raises(ApprovalInvalidError):
        await controller.create_approval_request("run_1", _needs_human(approval_id="approval_fixed"), "p")


@pytest.mark.asyncio
async def test_create_rejects_invalid_input(controller: ApprovalController) -> None:
    with pytest.raises(ApprovalInvalidError):
        await controller.create_approval_request("", _needs_human(), "p")
    allow = GateDecision(decision=GateDecisionKind.allow, risk_level=1, reason="fine")
    with pytest.raises(ApprovalInvalidError):
        await controller.create_approval_request("run_1", allow, "p")
    assert await controller.get_pending_approvals() == []


@pytest.mark.asyncio
async def test_returned_records_are_copies(controller: ApprovalController) -> None:
    a = await controller.create_approval_request("run_1", _needs_human(), "p")
    a.status = ApprovalStatus.approved
    (listed,) = await controller.get_pending_approvals()
    listed.prompt = "tampered"
    stored = await controller.get_approval(a.approval_id)
    assert stored is not None
    assert stored.status == ApprovalStatus.pending
    assert stored.prompt == "p"


@pytest.mark.asyncio
async def test_submit_approval_mints_token(controller: ApprovalController, clock: _Clock) -> None:
    a = await controller.create_approval_request("run_1", _needs_human(), "p")
    token = await controller.submit_approval(a.approval_id, "approve", "looks good")

    assert token.run_id == "run_1"
    assert token.approval_id == a.approval_id
    assert token.status == ResumeTokenStatus.active
    assert token.expires_at == clock.now + timedelta(seconds=60)

    stored = await controller.get_approval(a.approval_id)
    assert stored is not None
    assert stored.status == ApprovalStatus.approved
    assert stored.comment == "looks good"
    assert stored.decided_at == clock.now
    assert await controller.get_pending_approvals() == []


@pytest.mark.asyncio
async def test_submit_deny_still_mints_token(controller: ApprovalController) -> None:
    a = await controller.create_approval_request("run_1", _needs_human(), "p")
    token = await controller.submit_approval(a.approval_id, HumanDecision.deny)
    assert (await controller.get_approval(a.approval_id)).status == ApprovalStatus.denied  # type: ignore[union-attr]

    grant = controller.consume_resume_token("run_1", token.token)
    assert grant.decision == HumanDecision.deny
    assert grant.approval_id == a.approval_id


@pytest.mark.asyncio
async def test_submit_checks_existence_before_decision(controller: ApprovalController) -> None:
    with pytest.raises(ApprovalNotFoundError):
        await controller.submit_approval("approval_missing", "maybe")


@pytest.mark.asyncio
async def test_submit_rejects_unknown_decision_without_mutation(controller: ApprovalController) -> None:
    a = await controller.create_approval_request("run_1", _needs_human(), "p")
    with pytest.raises(ApprovalInvalidError):
        await controller.submit_approval(a.approval_id, "maybe")
    assert (await controller.get_approval(a.approval_id)).status == ApprovalStatus.pending  # type: ignore[union-attr]


@pytest.mark.asyncio
async def test_double_submit_is_rejected(controller: ApprovalController) -> None:
    a = await controller.create_approval_request("run_1", _needs_human(), "p")
    await controller.submit_approval(a.approval_id, "approve")
    with pytest.raises(ApprovalInvalidError) as exc:
        await controller.submit_approval(a.approval_id, "deny")
    assert exc.value.details["status"] == "approved"
    assert (await controller.get_approval(a.approval_id)).status == ApprovalStatus.approved  # type: ignore[union-attr]


@pytest.mark.asyncio
async def test_token_is_single_use(controller: ApprovalController) -> None:
    a = await controller.create_approval_request("run_1", _needs_human(), "p")
    token = await controller.submit_approval(a.approval_id, "approve")

    assert controller.consume_resume_token("run_1", token.token).decision == HumanDecision.approve
    with pytest.raises(ResumeTokenError) as exc:
        controller.consume_resume_token("run_1", token.token)
    assert exc.value.reason == "inactive"


@pytest.mark.asyncio
async def test_token_checks_run_order(controller: ApprovalController, clock: _Clock) -> None:
    with pytest.raises(ResumeTokenError) as exc:
        controller.consume_resume_token("run_1", "resume_missing")
    assert exc.value.reason == "not_found"

    a = await controller.create_approval_request("run_1", _needs_human(), "p")
    token = await controller.submit_approval(a.approval_id, "approve")

    clock.advance(3600)
    with pytest.raises(ResumeTokenError) as exc:
        controller.consume_resume_token("run_other", token.token)
    assert exc.value.reason == "run_mismatch"

    with pytest.raises(ResumeTokenError) as exc:
        controller.consume_resume_token("run_1", token.token)
    assert exc.value.reason == "expired"


@pytest.mark.asyncio
async def test_token_expires_exactly_at_ttl(controller: ApprovalController, clock: _Clock) -> None:
    a = await controller.create_approval_request("run_1", _needs_human(), "p")
    token = await controller.submit_approval(a.approval_id, "approve")

    clock.advance(60)
    with pytest.raises(ResumeTokenError) as exc:
        controller.consume_resume_token("run_1", token.token)
    assert exc.value.reason == "expired"


@pytest.mark.asyncio
async def test_rejected_token_stays_usable_by_owner(controller: ApprovalController, clock: _Clock) -> None:
    a = await controller.create_approval_request("run_1", _needs_human(), "p")
    token = await controller.submit_approval(a.approval_id, "approve")

    with pytest.raises(ResumeTokenError):
        controller.consume_resume_token("run_2", token.token)
    clock.advance(59)
    assert controller.consume_resume_token("run_1", token.token).approval_id == a.approval_id


def test_ttl_must_be_positive() -> None:
    with pytest.raises(ApprovalInvalidError):
        ApprovalController(0)


def test_ttl_defaults_to_settings() -> None:
    assert ApprovalController().ttl_seconds == float(settings.resume_token_ttl_seconds)


@pytest.mark.asyncio
async def test_token_bound_to_expected_approval(controller: ApprovalController) -> None:
    old = await controller.create_approval_request("run_1", _needs_human(), "p")
    current = await controller.create_approval_request("run_1", _needs_human(), "p")
    token = await controller.submit_approval(old.approval_id, "approve")

    with pytest.raises(ResumeTokenError) as exc:
        controller.consume_resume_token("run_1", token.token, current.approval_id)
    assert exc.value.reason == "approval_mismatch"

    grant = controller.consume_resume_token("run_1", token.token, old.approval_id)
    assert grant.approval_id == old.approval_id


@pytest.mark.asyncio
async def test_revoke_resume_tokens(controller: ApprovalController) -> None:
    a = await controller.create_approval_request("run_1", _needs_human(), "p")
    b = await controller.create_approval_request("run_1", _needs_human(), "p")
    token_a = await controller.submit_approval(a.approval_id, "approve")
    token_b = await controller.submit_approval(b.approval_id, "approve")

    assert controller.revoke_resume_tokens(a.approval_id) == 1
    assert controller.revoke_resume_tokens(a.approval_id) == 0
    with pytest.raises(ResumeTokenError) as exc:
        controller.consume_resume_token("run_1", token_a.token)
    assert exc.value.reason == "inactive"
    assert controller.consume_resume_token("run_1", token_b.token).approval_id == b.approval_id
