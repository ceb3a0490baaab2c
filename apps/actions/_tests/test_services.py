"""Tests for ActionDispatcher."""

import time
from unittest.mock import patch

from django.test import TestCase, override_settings

from apps.actions.drivers.base import ActionResult
from apps.actions.drivers.local import LocalActionDriver
from apps.actions.models import ActionChannel
from apps.actions.services import ActionDispatcher, ChannelSelector
from apps.audit.models import AuditLogEntry
from apps.decisions._tests.factories import make_decision
from apps.decisions.models import (
    ActionKind,
    ActionProposalStatus,
    Decision,
    DecisionStatus,
)


class ChannelSelectorTests(TestCase):
    def test_falls_back_to_local(self):
        resolved = ChannelSelector.resolve(ActionKind.CREATE_INCIDENT)
        assert resolved.driver.name == "local"

    def test_no_fallback_returns_none(self):
        assert ChannelSelector.resolve(ActionKind.CREATE_INCIDENT, local_fallback=False) is None

    def test_lowest_priority_active_channel_wins(self):
        ActionChannel.objects.create(
            name="backup", action_kind=ActionKind.CREATE_TICKET, driver="email", priority=50
        )
        ActionChannel.objects.create(
            name="primary",
            action_kind=ActionKind.CREATE_TICKET,
            driver="ticket",
            priority=10,
            config={"endpoint": "https://t.example.com"},
        )
        ActionChannel.objects.create(
            name="off",
            action_kind=ActionKind.CREATE_TICKET,
            driver="local",
            priority=1,
            is_active=False,
        )
        resolved = ChannelSelector.resolve(ActionKind.CREATE_TICKET)
        assert resolved.label == "primary"
        assert resolved.config == {"endpoint": "https://t.example.com"}

    def test_unknown_driver_is_skipped(self):
        ActionChannel.objects.create(
            name="fax", action_kind=ActionKind.CREATE_INCIDENT, driver="fax", priority=1
        )
        resolved = ChannelSelector.resolve(ActionKind.CREATE_INCIDENT, local_fallback=False)
        assert resolved is None


class DispatchTests(TestCase):
    def test_auto_dispatch_succeeds_with_reference(self):
        decision = make_decision()

        result = ActionDispatcher().dispatch(decision)

        assert result.success is True
        assert result.tool == "local"
        assert result.reference_id.startswith("INC-")
        decision.refresh_from_db()
        assert decision.status == DecisionStatus.DISPATCHED
        proposal = decision.proposal
        assert proposal.status == ActionProposalStatus.EXECUTED
        assert proposal.reference_id == result.reference_id
        assert proposal.executed_at is not None

    def test_dispatch_twice_calls_tool_once(self):
        decision = make_decision()
        dispatcher = ActionDispatcher()

        with patch.object(
            LocalActionDriver, "_execute", wraps=LocalActionDriver()._execute
        ) as spy:
            first = dispatcher.dispatch(decision)
            second = dispatcher.dispatch(Decision.objects.get(pk=decision.pk))

        assert spy.call_count == 1
        assert first.reference_id == second.reference_id
        assert (
            AuditLogEntry.objects.for_entity("decision", decision.pk)
            .filter(transition=DecisionStatus.DISPATCHED)
            .count()
            == 1
        )

    def test_unapproved_decision_is_not_dispatched(self):
        decision = make_decision(requires_approval=True)

        with patch.object(LocalActionDriver, "_execute") as mock_exec:
            result = ActionDispatcher().dispatch(decision)

        mock_exec.assert_not_called()
        assert result.success is False
        decision.refresh_from_db()
        assert decision.status == DecisionStatus.PROPOSED
        assert decision.proposal.result is None

    def test_approved_decision_is_dispatched(self):
        decision = make_decision(requires_approval=True, status=DecisionStatus.APPROVED)
        result = ActionDispatcher().dispatch(decision)
        assert result.success is True

    def test_no_action_succeeds_without_tool(self):
        decision = make_decision(action_kind=ActionKind.NO_ACTION)

        result = ActionDispatcher().dispatch(decision)

        assert result.success is True
        assert result.tool == "none"
        assert result.reference_id == ""

    def test_tool_failure_fails_decision_and_proposal(self):
        decision = make_decision(action_kind=ActionKind.CREATE_TICKET)

        with patch.object(
            LocalActionDriver,
            "_execute",
            return_value=ActionResult.failure("local", "tracker down"),
        ):
            result = ActionDispatcher().dispatch(decision)

        assert result.success is False
        decision.refresh_from_db()
        assert decision.status == DecisionStatus.FAILED
        assert decision.proposal.status == ActionProposalStatus.FAILED
        assert decision.proposal.error_message == "tracker down"
        transitions = list(
            AuditLogEntry.objects.for_entity("decision", decision.pk).values_list(
                "transition", flat=True
            )
        )
        assert transitions[-2:] == [DecisionStatus.DISPATCHED, DecisionStatus.FAILED]

    def test_failed_decision_is_not_retried(self):
        decision = make_decision()
        with patch.object(
            LocalActionDriver, "_execute", return_value=ActionResult.failure("local", "nope")
        ):
            ActionDispatcher().dispatch(decision)

        with patch.object(LocalActionDriver, "_execute") as mock_exec:
            result = ActionDispatcher().dispatch(Decision.objects.get(pk=decision.pk))

        mock_exec.assert_not_called()
        assert result.success is False
        assert result.error == "nope"

    @override_settings(ACTIONS_LOCAL_FALLBACK=False)
    def test_no_channel_without_fallback_is_capability_unavailable(self):
        decision = make_decision()

        result = ActionDispatcher().dispatch(decision)

        assert result.success is False
        assert "No active action channel" in result.error
        decision.refresh_from_db()
        assert decision.status == DecisionStatus.FAILED

    def test_driver_timeout_is_failure(self):
        decision = make_decision()

        def slow(*args, **kwargs):
            time.sleep(0.5)
            return ActionResult(success=True, tool="local", reference_id="late")

        with patch.object(LocalActionDriver, "_execute", side_effect=slow):
            result = ActionDispatcher(timeout_s=0.05).dispatch(decision)

        assert result.success is False
        assert "exceeded" in result.error

    def test_unexpected_driver_exception_is_failure(self):
        decision = make_decision()
        with patch.object(LocalActionDriver, "_execute", side_effect=RuntimeError("bug")):
            result = ActionDispatcher().dispatch(decision)
        assert result.success is False
        assert result.error == "RuntimeError: bug"

    def test_configured_channel_is_used(self):
        ActionChannel.objects.create(
            name="oncall",
            action_kind=ActionKind.CREATE_INCIDENT,
            driver="pagerduty",
            config={"integration_key": "k" * 32},
        )
        decision = make_decision()

        with patch(
            "apps.actions.drivers.pagerduty.PagerDutyActionDriver._execute",
            return_value=ActionResult(success=True, tool="pagerduty", reference_id="decision-1"),
        ) as mock_exec:
            result = ActionDispatcher().dispatch(decision)

        mock_exec.assert_called_once()
        request = mock_exec.call_args[0][0]
        assert request.title.startswith("[P1]")
        assert result.metadata["channel"] == "oncall"
