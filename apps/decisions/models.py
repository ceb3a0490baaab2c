"""
Risk assessments, decisions and the approval state machine.

Decision.status is the state machine owner. Every transition is a conditional
update on the current status so two callers racing on the same decision
cannot both win.
"""

from django.db import models
from django.db.models import Q
from django.utils import timezone

from apps.audit.models import AuditActor
from apps.audit.services import AuditLogger


class InvalidTransition(Exception):
    """Raised when a decision is not in a state that allows the requested move."""


class Severity(models.TextChoices):
    P1 = "p1", "P1 - Critical"
    P2 = "p2", "P2 - High"
    P3 = "p3", "P3 - Medium"
    P4 = "p4", "P4 - Low"


class ActionKind(models.TextChoices):
    CREATE_INCIDENT = "create_incident", "Create incident"
    CREATE_TICKET = "create_ticket", "Create engineering ticket"
    REQUEST_DOC_UPDATE = "request_doc_update", "Request documentation update"
    DRAFT_RESPONSE = "draft_response", "Draft merchant response"
    NO_ACTION = "no_action", "No action"


class DecisionStatus(models.TextChoices):
    PROPOSED = "proposed", "Proposed"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"
    DISPATCHED = "dispatched", "Dispatched"
    FAILED = "failed", "Failed"
    EXPIRED = "expired", "Expired"


ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    DecisionStatus.PROPOSED: {
        DecisionStatus.APPROVED,
        DecisionStatus.REJECTED,
        DecisionStatus.EXPIRED,
        DecisionStatus.DISPATCHED,
    },
    DecisionStatus.APPROVED: {DecisionStatus.DISPATCHED},
    DecisionStatus.DISPATCHED: {DecisionStatus.FAILED},
    DecisionStatus.REJECTED: set(),
    DecisionStatus.EXPIRED: set(),
    DecisionStatus.FAILED: set(),
}

# Targets that only make sense for decisions waiting on a human.
APPROVAL_ONLY_TARGETS = {DecisionStatus.APPROVED, DecisionStatus.REJECTED, DecisionStatus.EXPIRED}


class RiskAssessment(models.Model):
    """
    Deterministic score and severity for one observation at one point in time.

    Assessments are append-only so the risk trend of an observation stays
    auditable.
    """

    observation = models.ForeignKey(
        "events.Observation",
        on_delete=models.PROTECT,
        related_name="risk_assessments",
    )
    pipeline_run_id = models.CharField(max_length=64, blank=True, default="", db_index=True)
    score = models.FloatField()
    severity = models.CharField(max_length=2, choices=Severity.choices, db_index=True)
    affected_merchants = models.JSONField(default=list, blank=True)
    evidence = models.JSONField(
        default=list,
        blank=True,
        help_text="Sample RawEvent ids backing this assessment.",
    )
    factors = models.JSONField(default=dict, blank=True, help_text="Score breakdown.")
    event_count = models.PositiveIntegerField(default=0)
    max_confidence = models.FloatField(default=0.0)
    hypotheses_available = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [models.Index(fields=["observation", "created_at"])]

    def __str__(self):
        return f"Risk {self.score:.2f} ({self.severity}) for observation {self.observation_id}"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValueError("Risk assessments are append-only")
        super().save(*args, **kwargs)


class Decision(models.Model):
    """The chosen action and approval requirement for one risk assessment."""

    risk_assessment = models.ForeignKey(
        RiskAssessment,
        on_delete=models.PROTECT,
        related_name="decisions",
    )
    action_kind = models.CharField(max_length=30, choices=ActionKind.choices)
    requires_approval = models.BooleanField(default=False)
    status = models.CharField(
        max_length=20,
        choices=DecisionStatus.choices,
        default=DecisionStatus.PROPOSED,
        db_index=True,
    )
    reason = models.TextField(blank=True, default="", help_text="Which policy rule applied.")
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [models.Index(fields=["status", "requires_approval"])]

    def __str__(self):
        return f"Decision {self.pk} {self.action_kind} [{self.status}]"

    @property
    def observation(self):
        return self.risk_assessment.observation

    @property
    def is_awaiting_approval(self) -> bool:
        return self.requires_approval and self.status == DecisionStatus.PROPOSED

    def can_transition(self, new_status: str) -> bool:
        if new_status not in ALLOWED_TRANSITIONS.get(self.status, set()):
            return False
        if new_status in APPROVAL_ONLY_TARGETS and not self.requires_approval:
            return False
        if (
            new_status == DecisionStatus.DISPATCHED
            and self.status == DecisionStatus.PROPOSED
            and self.requires_approval
        ):
            return False
        return True

    def transition_to(
        self,
        new_status: str,
        *,
        actor: str = AuditActor.SYSTEM,
        actor_name: str = "",
        detail: dict | None = None,
    ) -> None:
        """
        Move to ``new_status`` with a compare-and-set on the current status.

        Raises:
            InvalidTransition: the stored row is not in a state that allows
                the move (including losing a race to another caller).
        """
        sources = [s for s, targets in ALLOWED_TRANSITIONS.items() if new_status in targets]
        rows = Decision.objects.filter(pk=self.pk, status__in=sources)
        if new_status in APPROVAL_ONLY_TARGETS:
            rows = rows.filter(requires_approval=True)
        if new_status == DecisionStatus.DISPATCHED:
            rows = rows.filter(
                Q(status=DecisionStatus.APPROVED)
                | Q(status=DecisionStatus.PROPOSED, requires_approval=False)
            )

        previous = Decision.objects.filter(pk=self.pk).values_list("status", flat=True).first()
        now = timezone.now()
        updated = rows.filter(status=previous).update(status=new_status, updated_at=now)
        if updated != 1:
            current = Decision.objects.filter(pk=self.pk).values_list("status", flat=True).first()
            if current is not None:
                self.status = current
            raise InvalidTransition(
                f"Decision {self.pk}: cannot move from {current} to {new_status}"
            )

        self.status = new_status
        self.updated_at = now
        AuditLogger.record(
            self,
            new_status,
            actor=actor,
            actor_name=actor_name,
            detail={"from": previous, **(detail or {})},
        )


class ActionProposalStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PENDING_APPROVAL = "pending_approval", "Pending approval"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"
    EXECUTED = "executed", "Executed"
    FAILED = "failed", "Failed"
    EXPIRED = "expired", "Expired"


class ActionProposal(models.Model):
    """
    The dispatchable unit of a decision.

    ``payload`` is the rendering context captured at decision time; ``result``
    is written once, by the dispatcher.
    """

    decision = models.OneToOneField(Decision, on_delete=models.CASCADE, related_name="proposal")
    action_type = models.CharField(max_length=30, choices=ActionKind.choices, db_index=True)
    status = models.CharField(
        max_length=20,
        choices=ActionProposalStatus.choices,
        default=ActionProposalStatus.PENDING,
        db_index=True,
    )
    payload = models.JSONField(default=dict, blank=True)
    result = models.JSONField(null=True, blank=True)
    tool = models.CharField(max_length=50, blank=True, default="")
    reference_id = models.CharField(max_length=255, blank=True, default="")
    error_message = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    executed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"Proposal {self.pk} {self.action_type} [{self.status}]"

    @property
    def has_terminal_result(self) -> bool:
        return self.result is not None and self.status in (
            ActionProposalStatus.EXECUTED,
            ActionProposalStatus.FAILED,
        )

    def set_status(self, status: str):
        self.status = status
        self.save(update_fields=["status", "updated_at"])

    def record_result(self, result: dict):
        self.result = result
        self.tool = result.get("tool") or ""
        self.reference_id = result.get("reference_id") or ""
        self.error_message = result.get("error") or ""
        self.status = (
            ActionProposalStatus.EXECUTED if result.get("success") else ActionProposalStatus.FAILED
        )
        self.executed_at = timezone.now()
        self.save()


class ApprovalChoice(models.TextChoices):
    APPROVE = "approve", "Approve"
    REJECT = "reject", "Reject"


class HumanApproval(models.Model):
    """A human's resolution of one proposal awaiting approval."""

    proposal = models.OneToOneField(
        ActionProposal, on_delete=models.CASCADE, related_name="approval"
    )
    decided_by = models.CharField(max_length=255)
    decision = models.CharField(max_length=10, choices=ApprovalChoice.choices)
    comment = models.TextField(blank=True, default="")
    decided_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-decided_at"]

    def __str__(self):
        return f"{self.decision} by {self.decided_by} on proposal {self.proposal_id}"
