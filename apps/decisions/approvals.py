"""
Approval gate.

Holds decisions that require human sign-off. Only the gate applies the
``approved`` / ``rejected`` / ``expired`` transitions.
"""

import logging
from datetime import datetime, timedelta

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.audit.models import AuditActor
from apps.audit.services import AuditLogger
from apps.decisions.models import (
    ActionProposal,
    ActionProposalStatus,
    ApprovalChoice,
    Decision,
    DecisionStatus,
    HumanApproval,
    InvalidTransition,
)

logger = logging.getLogger(__name__)


class AlreadyResolved(InvalidTransition):
    """The proposal was approved, rejected or expired before this call."""


class ApprovalGate:
    def __init__(self, dispatcher=None, timeout_hours: float | None = None):
        self._dispatcher = dispatcher
        self.timeout_hours = (
            timeout_hours
            if timeout_hours is not None
            else getattr(settings, "APPROVAL_TIMEOUT_HOURS", 24)
        )

    @property
    def dispatcher(self):
        if self._dispatcher is None:
            from apps.actions.services import ActionDispatcher

            self._dispatcher = ActionDispatcher()
        return self._dispatcher

    def pending(self):
        return (
            ActionProposal.objects.filter(status=ActionProposalStatus.PENDING_APPROVAL)
            .select_related("decision__risk_assessment__observation")
            .order_by("created_at")
        )

    def request(self, decision: Decision) -> None:
        AuditLogger.record(
            decision.proposal,
            "approval_requested",
            detail={"decision_id": decision.pk, "action_kind": decision.action_kind},
        )
        logger.info(f"Decision {decision.pk} ({decision.action_kind}) is awaiting approval")

    def approve(self, proposal: ActionProposal, decided_by: str, comment: str = ""):
        """
        Approve and dispatch. Returns the dispatcher's ActionResult.

        Raises:
            AlreadyResolved: the decision is no longer awaiting approval.
        """
        self._resolve(proposal, ApprovalChoice.APPROVE, decided_by, comment)
        return self.dispatcher.dispatch(proposal.decision)

    def reject(self, proposal: ActionProposal, decided_by: str, comment: str = "") -> HumanApproval:
        """
        Reject; terminal, nothing is dispatched.

        Raises:
            AlreadyResolved: the decision is no longer awaiting approval.
        """
        return self._resolve(proposal, ApprovalChoice.REJECT, decided_by, comment)

    def _resolve(
        self, proposal: ActionProposal, choice: str, decided_by: str, comment: str
    ) -> HumanApproval:
        if not decided_by:
            raise ValueError("decided_by is required")

        decision = proposal.decision
        target = DecisionStatus.APPROVED if choice == ApprovalChoice.APPROVE else DecisionStatus.REJECTED
        try:
            with transaction.atomic():
                decision.transition_to(
                    target,
                    actor=AuditActor.HUMAN,
                    actor_name=decided_by,
                    detail={"proposal_id": proposal.pk, "comment": comment},
                )
                approval = HumanApproval.objects.create(
                    proposal=proposal, decided_by=decided_by, decision=choice, comment=comment
                )
                proposal.set_status(
                    ActionProposalStatus.APPROVED
                    if choice == ApprovalChoice.APPROVE
                    else ActionProposalStatus.REJECTED
                )
        except (InvalidTransition, IntegrityError) as e:
            decision.refresh_from_db(fields=["status"])
            raise AlreadyResolved(
                f"Proposal {proposal.pk} is not awaiting approval (decision {decision.pk} "
                f"is {decision.status})"
            ) from e

        AuditLogger.record(
            proposal,
            proposal.status,
            actor=AuditActor.HUMAN,
            actor_name=decided_by,
            detail={"approval_id": approval.pk},
        )
        logger.info(f"Proposal {proposal.pk} {choice}d by {decided_by}")
        return approval

    def expire_stale(self, now: datetime | None = None) -> list[Decision]:
        """
        Expire decisions pending longer than the approval timeout.

        Returns the expired decisions so they can be surfaced for manual review.
        """
        now = now or timezone.now()
        cutoff = now - timedelta(hours=self.timeout_hours)
        stale = Decision.objects.filter(
            status=DecisionStatus.PROPOSED,
            requires_approval=True,
            created_at__lt=cutoff,
        ).select_related("proposal")

        expired = []
        for decision in stale:
            try:
                decision.transition_to(
                    DecisionStatus.EXPIRED,
                    detail={"timeout_hours": self.timeout_hours, "needs_review": True},
                )
            except InvalidTransition:
                # Resolved by a human since the query ran.
                continue
            decision.proposal.set_status(ActionProposalStatus.EXPIRED)
            AuditLogger.record(decision.proposal, ActionProposalStatus.EXPIRED)
            expired.append(decision)

        if expired:
            logger.warning(
                f"Expired {len(expired)} decision(s) pending approval for more than "
                f"{self.timeout_hours}h; surfaced for manual review"
            )
        return expired
