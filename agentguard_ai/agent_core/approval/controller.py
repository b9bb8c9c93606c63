from __future__ import annotations

"""Human approval requests and single-use resume tokens.

Lifecycle
---------

- ``create_approval_request`` registers a ``pending`` request for a gate
  decision of ``needs_human``.
- ``submit_approval`` moves a pending request to ``approved`` or ``denied``
  exactly once and mints an ``active`` resume token bound to the run. A token
  is minted for a denial too: the denial is delivered through the resume path.
- ``consume_resume_token`` checks, in order, that the token exists, belongs
  to the run (and, when given, to the expected approval), is still active
  and has not expired, then marks it ``used``. A rejected token leaves every
  record untouched.
- ``revoke_resume_tokens`` marks every active token of an approval
  ``revoked``; a run rebound to a new approval calls it for the old one.

Expiry is implicit: a token is expired when ``now >= expires_at``; nothing
sweeps stale tokens.

All state transitions happen without an intervening ``await``, so two
concurrent submissions for the same approval cannot both succeed on a single
event loop.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Union

from ...core.config import settings
from ..errors import ApprovalInvalidError, ApprovalNotFoundError, ResumeTokenError
from ..ids import create_id
from ..schemas.domain import (
    ApprovalStatus,
    GateDecision,
    GateDecisionKind,
    HumanApprovalRequest,
    HumanDecision,
    ResumeGrant,
    ResumeToken,
    ResumeTokenStatus,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _TokenRecord:
    token: ResumeToken
    decision: HumanDecision


class ApprovalController:
    """In-memory approval and resume token bookkeeping."""

    def __init__(self, ttl_seconds: Optional[float] = None, *, clock: Optional[Clock] = None) -> None:
        self.ttl_seconds = float(ttl_seconds if ttl_seconds is not None else settings.resume_token_ttl_seconds)
        if self.ttl_seconds <= 0:
            raise ApprovalInvalidError("Resume token ttl must be positive.")
        self._clock: Clock = clock or _utc_now
        self._approvals: Dict[str, HumanApprovalRequest] = {}
        self._tokens: Dict[str, _TokenRecord] = {}

    async def create_approval_request(
        self, run_id: str, gate_decision: GateDecision, prompt: str
    ) -> HumanApprovalRequest:
        if not run_id:
            raise ApprovalInvalidError("run_id is required.")
        if gate_decision.decision != GateDecisionKind.needs_human:
            raise ApprovalInvalidError("create_approval_request requires decision=needs_human.")
        approval_id = gate_decision.approval_id or create_id("approval")
        if approval_id in self._approvals:
            raise ApprovalInvalidError(f"Approval already exists: {approval_id}", details={"approval_id": approval_id})

        approval = HumanApprovalRequest(
            approval_id=approval_id,
            run_id=run_id,
            prompt=prompt,
            risk_level=gate_decision.risk_level,
            reason=gate_decision.reason,
            created_at=self._clock(),
        )
        self._approvals[approval_id] = approval
        logger.info("approval requested run=%s approval=%s risk=%d", run_id, approval_id, gate_decision.risk_level)
        return approval.model_copy()

    async def get_pending_approvals(self, run_id: Optional[str] = None) -> List[HumanApprovalRequest]:
        return [
            a.model_copy()
            for a in self._approvals.values()
            if a.status == ApprovalStatus.pending and (run_id is None or a.run_id == run_id)
        ]

    async def get_approval(self, approval_id: str) -> Optional[HumanApprovalRequest]:
        approval = self._approvals.get(approval_id)
        return approval.model_copy() if approval is not None else None

    async def submit_approval(
        self,
        approval_id: str,
        decision: Union[HumanDecision, str],
        comment: Optional[str] = None,
    ) -> ResumeToken:
        approval = self._approvals.get(approval_id)
        if approval is None:
            raise ApprovalNotFoundError(approval_id)
        try:
            human_decision = HumanDecision(decision)
        except ValueError as exc:
            raise ApprovalInvalidError(
                f"Unsupported approval decision: {decision!r}", details={"approval_id": approval_id}
            ) from exc
        if approval.status != ApprovalStatus.pending:
            raise ApprovalInvalidError(
                f"Approval is not pending: {approval_id}",
                details={"approval_id": approval_id, "status": approval.status.value},
            )

        now = self._clock()
        approval.status = ApprovalStatus.approved if human_decision == HumanDecision.approve else ApprovalStatus.denied
        approval.comment = comment
        approval.decided_at = now

        token = ResumeToken(
            token=create_id("resume"),
            run_id=approval.run_id,
            approval_id=approval_id,
            expires_at=now + timedelta(seconds=self.ttl_seconds),
        )
        self._tokens[token.token] = _TokenRecord(token=token, decision=human_decision)
        logger.info("approval %s run=%s approval=%s", approval.status.value, approval.run_id, approval_id)
        return token.model_copy()

    def consume_resume_token(self, run_id: str, token: str, approval_id: Optional[str] = None) -> ResumeGrant:
        record = self._tokens.get(token)
        if record is None:
            raise ResumeTokenError("not_found", "Resume token is not found.")
        if record.token.run_id != run_id:
            raise ResumeTokenError("run_mismatch", "Resume token belongs to a different run.")
        if approval_id is not None and record.token.approval_id != approval_id:
            raise ResumeTokenError("approval_mismatch", "Resume token belongs to a superseded approval.")
        if record.token.status != ResumeTokenStatus.active:
            raise ResumeTokenError("inactive", "Resume token is not active.")
        if self._clock() >= record.token.expires_at:
            raise ResumeTokenError("expired", "Resume token has expired.")

        record.token.status = ResumeTokenStatus.used
        return ResumeGrant(decision=record.decision, approval_id=record.token.approval_id)

    def revoke_resume_tokens(self, approval_id: str) -> int:
        revoked = 0
        for record in self._tokens.values():
            if record.token.approval_id == approval_id and record.token.status == ResumeTokenStatus.active:
                record.token.status = ResumeTokenStatus.revoked
                revoked += 1
        if revoked:
            logger.info("resume tokens revoked approval=%s count=%d", approval_id, revoked)
        return revoked
