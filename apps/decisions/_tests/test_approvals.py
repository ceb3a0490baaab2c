"""Tests for the approval gate."""

from datetime import timedelta
from io import StringIO
from unittest.mock import MagicMock

import pytest
from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone

from apps.actions.drivers.base import ActionResult
from apps.audit.models import AuditActor, AuditLogEntry
from apps.decisions._tests.factories import make_decision
from apps.decisions.approvals import AlreadyResolved, ApprovalGate
from apps.decisions.models import (
    ActionProposalStatus,
    ApprovalChoice,
    Decision,
    DecisionStatus,
    HumanApproval,
)
from apps.decisions.tasks import expire_approvals_task


class ApprovalGateTests(TestCase):
    def setUp(self):
        self.dispatcher = MagicMock()
        self.dispatcher.dispatch.return_value = ActionResult(
            success=True, tool="local", reference_id="INC-1"
        )
        self.gate = ApprovalGate(dispatcher=self.dispatcher, timeout_hours=24)

    def test_pending_lists_only_awaiting_proposals(self):
        waiting = make_decision(requires_approval=True)
        make_decision(requires_approval=False)
        assert [p.pk for p in self.gate.pending()] == [waiting.proposal.pk]

    def test_request_is_audited(self):
        decision = make_decision(requires_approval=True)
        self.gate.request(decision)
        assert AuditLogEntry.objects.for_entity("actionproposal", decision.proposal.pk).filter(
            transition="approval_requested"
        ).exists()

    def test_approve_records_human_and_dispatches(self):
        decision = make_decision(requires_approval=True)
        proposal = decision.proposal

        result = self.gate.approve(proposal, "ana", "looks right")

        assert result.reference_id == "INC-1"
        self.dispatcher.dispatch.assert_called_once()
        decision.refresh_from_db()
        assert decision.status == DecisionStatus.APPROVED
        approval = HumanApproval.objects.get(proposal=proposal)
        assert approval.decision == ApprovalChoice.APPROVE
        assert approval.decided_by == "ana"
        entry = AuditLogEntry.objects.for_entity("decision", decision.pk).get(
            transition=DecisionStatus.APPROVED
        )
        assert entry.actor == AuditActor.HUMAN
        assert entry.actor_name == "ana"

    def test_reject_is_terminal_and_does_not_dispatch(self):
        decision = make_decision(requires_approval=True)

        self.gate.reject(decision.proposal, "ana")

        self.dispatcher.dispatch.assert_not_called()
        decision.refresh_from_db()
        assert decision.status == DecisionStatus.REJECTED
        assert decision.proposal.status == ActionProposalStatus.REJECTED

    def test_second_resolution_raises_already_resolved(self):
        decision = make_decision(requires_approval=True)
        self.gate.reject(decision.proposal, "ana")

        with pytest.raises(AlreadyResolved):
            self.gate.approve(Decision.objects.get(pk=decision.pk).proposal, "bo")
        self.dispatcher.dispatch.assert_not_called()
        assert HumanApproval.objects.count() == 1

    def test_auto_decision_cannot_be_approved(self):
        decision = make_decision(requires_approval=False)
        with pytest.raises(AlreadyResolved):
            self.gate.approve(decision.proposal, "ana")

    def test_decided_by_required(self):
        decision = make_decision(requires_approval=True)
        with pytest.raises(ValueError):
            self.gate.approve(decision.proposal, "")

    def test_expire_stale(self):
        old = make_decision(requires_approval=True)
        fresh = make_decision(requires_approval=True)
        Decision.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(hours=30))

        expired = self.gate.expire_stale()

        assert [d.pk for d in expired] == [old.pk]
        old.refresh_from_db()
        fresh.refresh_from_db()
        assert old.status == DecisionStatus.EXPIRED
        assert old.proposal.status == ActionProposalStatus.EXPIRED
        assert fresh.status == DecisionStatus.PROPOSED
        entry = AuditLogEntry.objects.for_entity("decision", old.pk).get(
            transition=DecisionStatus.EXPIRED
        )
        assert entry.detail["needs_review"] is True

    def test_expired_decision_cannot_be_approved(self):
        decision = make_decision(requires_approval=True)
        self.gate.expire_stale(now=timezone.now() + timedelta(hours=25))
        with pytest.raises(AlreadyResolved):
            self.gate.approve(Decision.objects.get(pk=decision.pk).proposal, "ana")


class ExpireApprovalsEntryPointTests(TestCase):
    def setUp(self):
        self.decision = make_decision(requires_approval=True)
        Decision.objects.filter(pk=self.decision.pk).update(
            created_at=timezone.now() - timedelta(days=2)
        )

    def test_task(self):
        assert expire_approvals_task() == {"expired": 1, "decision_ids": [self.decision.pk]}

    def test_command(self):
        out = StringIO()
        call_command("expire_approvals", stdout=out)
        assert f"Decision {self.decision.pk}" in out.getvalue()

    def test_command_hours_override(self):
        out = StringIO()
        call_command("expire_approvals", "--hours", "100", "--json", stdout=out)
        assert '"expired": 0' in out.getvalue()
