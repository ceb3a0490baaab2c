"""Action dispatch.

``ActionDispatcher.dispatch`` executes a decision's proposal at most once:

1. A proposal that already holds a terminal result short-circuits and the
   stored result is returned.
2. Otherwise the decision is moved to ``dispatched`` with a compare-and-set;
   only the caller that wins the move calls the downstream tool.
3. The tool's result is written on the proposal. A failed result also moves
   the decision to ``failed``. Failures are never retried automatically.

Channel selection:
- The first active ActionChannel for the action kind (by priority, then name)
  whose driver is registered.
- Otherwise the built-in ``local`` driver when ``ACTIONS_LOCAL_FALLBACK`` is on.
- Otherwise the dispatch fails as capability-unavailable.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from django.conf import settings

from apps.actions.drivers import (
    DRIVER_REGISTRY,
    ActionRequest,
    ActionResult,
    BaseActionDriver,
    get_driver,
)
from apps.actions.models import ActionChannel
from apps.actions.templating import render_action
from apps.audit.models import AuditActor
from apps.audit.services import AuditLogger
from apps.decisions.models import (
    ActionKind,
    ActionProposal,
    Decision,
    DecisionStatus,
    InvalidTransition,
)
from apps.intelligence.services import call_with_timeout

logger = logging.getLogger(__name__)

NO_ACTION_TOOL = "none"


@dataclass
class ResolvedChannel:
    driver: BaseActionDriver
    config: dict[str, Any] = field(default_factory=dict)
    label: str = ""


class ChannelSelector:
    """Resolve which driver and config serve an action kind."""

    @staticmethod
    def resolve(action_kind: str, local_fallback: bool = True) -> ResolvedChannel | None:
        channels = ActionChannel.objects.filter(action_kind=action_kind, is_active=True).order_by(
            "priority", "name"
        )
        for channel in channels:
            if channel.driver not in DRIVER_REGISTRY:
                logger.warning(
                    f"ActionChannel {channel.name} uses unknown driver {channel.driver}; skipping"
                )
                continue
            return ResolvedChannel(
                driver=get_driver(channel.driver),
                config=channel.config or {},
                label=channel.name,
            )

        if local_fallback:
            return ResolvedChannel(driver=get_driver("local"), label="local")
        return None


class ActionDispatcher:
    """Executes approved or auto-dispatched decisions against downstream tools."""

    def __init__(self, timeout_s: float | None = None, local_fallback: bool | None = None):
        self.timeout_s = timeout_s or getattr(settings, "ACTION_TIMEOUT_SECONDS", 30)
        self.local_fallback = (
            local_fallback
            if local_fallback is not None
            else getattr(settings, "ACTIONS_LOCAL_FALLBACK", True)
        )

    def dispatch(self, decision: Decision) -> ActionResult:
        """
        Dispatch ``decision`` once. Returns an ActionResult in every case.

        A second call for the same decision returns the first call's result
        without touching the downstream tool.
        """
        proposal = ActionProposal.objects.get(decision_id=decision.pk)
        if proposal.has_terminal_result:
            logger.info(f"Decision {decision.pk} already dispatched; returning stored result")
            return ActionResult.from_dict(proposal.result)

        try:
            decision.transition_to(
                DecisionStatus.DISPATCHED,
                detail={"proposal_id": proposal.pk, "action_kind": decision.action_kind},
            )
        except InvalidTransition as e:
            proposal.refresh_from_db()
            if proposal.has_terminal_result:
                return ActionResult.from_dict(proposal.result)
            logger.warning(f"Not dispatching decision {decision.pk}: {e}")
            return ActionResult.failure(
                NO_ACTION_TOOL, str(e), decision_id=decision.pk, status=decision.status
            )

        if decision.action_kind == ActionKind.NO_ACTION:
            result = ActionResult(success=True, tool=NO_ACTION_TOOL)
        else:
            result = self._execute(decision, proposal)

        self._record(decision, proposal, result)
        return result

    def _execute(self, decision: Decision, proposal: ActionProposal) -> ActionResult:
        resolved = ChannelSelector.resolve(decision.action_kind, self.local_fallback)
        if resolved is None:
            return ActionResult.failure(
                NO_ACTION_TOOL,
                f"No active action channel for {decision.action_kind}",
                decision_id=decision.pk,
            )

        context = dict(proposal.payload or {})
        context["decision_id"] = decision.pk
        try:
            title, body = render_action(decision.action_kind, context, resolved.config)
        except ValueError as e:
            return ActionResult.failure(resolved.driver.name, f"Template error: {e}")

        request = ActionRequest(
            decision_id=decision.pk,
            action_kind=decision.action_kind,
            title=title,
            body=body,
            severity=context.get("severity", "p4"),
            score=float(context.get("score", 0.0)),
            context=context,
        )
        logger.info(
            f"Dispatching decision {decision.pk} ({decision.action_kind}) "
            f"via {resolved.label} [{resolved.driver.name}]"
        )
        try:
            result = call_with_timeout(
                resolved.driver.execute, self.timeout_s, request, resolved.config
            )
        except TimeoutError as e:
            return ActionResult.failure(resolved.driver.name, str(e), channel=resolved.label)
        except Exception as e:
            logger.exception(f"Unexpected driver failure for decision {decision.pk}")
            return ActionResult.failure(
                resolved.driver.name, f"{type(e).__name__}: {e}", channel=resolved.label
            )

        result.metadata.setdefault("channel", resolved.label)
        return result

    def _record(self, decision: Decision, proposal: ActionProposal, result: ActionResult):
        proposal.record_result(result.to_dict())
        AuditLogger.record(
            proposal,
            proposal.status,
            actor=AuditActor.TOOL,
            actor_name=result.tool,
            detail={
                "decision_id": decision.pk,
                "reference_id": result.reference_id,
                "error": result.error,
            },
        )

        if result.success:
            logger.info(
                f"Decision {decision.pk} dispatched via {result.tool} "
                f"(reference {result.reference_id or '-'})"
            )
            return

        logger.warning(f"Dispatch failed for decision {decision.pk} via {result.tool}: {result.error}")
        decision.transition_to(
            DecisionStatus.FAILED,
            actor=AuditActor.TOOL,
            actor_name=result.tool,
            detail={"proposal_id": proposal.pk, "error": result.error},
        )
