"""Admin configuration for risk assessments, decisions and approvals."""

from django.contrib import admin
from django_object_actions import DjangoObjectActions
from django_object_actions import action as object_action

from apps.decisions.approvals import AlreadyResolved, ApprovalGate
from apps.decisions.models import (
    ActionProposal,
    ActionProposalStatus,
    Decision,
    HumanApproval,
    RiskAssessment,
)
from config.admin import prettify_json


class ReadOnlyAdminMixin:
    """Rows are written by the pipeline only."""

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(RiskAssessment)
class RiskAssessmentAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ["id", "observation", "score", "severity", "event_count", "created_at"]
    list_filter = ["severity", "hypotheses_available"]
    search_fields = ["observation__fingerprint", "pipeline_run_id"]
    readonly_fields = [
        "observation",
        "pipeline_run_id",
        "score",
        "severity",
        "event_count",
        "max_confidence",
        "hypotheses_available",
        "pretty_factors",
        "affected_merchants",
        "evidence",
        "created_at",
    ]
    exclude = ["factors"]

    def has_change_permission(self, request, obj=None):
        return False

    @admin.display(description="Factors")
    def pretty_factors(self, obj):
        return prettify_json(obj.factors)


class ActionProposalInline(admin.StackedInline):
    model = ActionProposal
    extra = 0
    can_delete = False
    readonly_fields = ["action_type", "status", "tool", "reference_id", "error_message", "executed_at"]
    exclude = ["payload", "result"]


@admin.register(Decision)
class DecisionAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ["id", "action_kind", "status", "requires_approval", "risk_assessment", "created_at"]
    list_filter = ["status", "action_kind", "requires_approval"]
    search_fields = ["reason", "risk_assessment__observation__fingerprint"]
    readonly_fields = [
        "risk_assessment",
        "action_kind",
        "requires_approval",
        "status",
        "reason",
        "created_at",
        "updated_at",
    ]
    inlines = [ActionProposalInline]


@admin.register(ActionProposal)
class ActionProposalAdmin(ReadOnlyAdminMixin, DjangoObjectActions, admin.ModelAdmin):
    list_display = ["id", "action_type", "status", "tool", "reference_id", "created_at"]
    list_filter = ["status", "action_type", "tool"]
    search_fields = ["reference_id", "error_message"]
    readonly_fields = [
        "decision",
        "action_type",
        "status",
        "tool",
        "reference_id",
        "error_message",
        "pretty_payload",
        "pretty_result",
        "created_at",
        "executed_at",
    ]
    exclude = ["payload", "result"]
    change_actions = ["approve", "reject"]

    def get_change_actions(self, request, object_id, form_url):
        actions = super().get_change_actions(request, object_id, form_url)
        proposal = self.get_object(request, object_id)
        if proposal is None or proposal.status != ActionProposalStatus.PENDING_APPROVAL:
            return []
        return actions

    @admin.display(description="Payload")
    def pretty_payload(self, obj):
        return prettify_json(obj.payload)

    @admin.display(description="Result")
    def pretty_result(self, obj):
        return prettify_json(obj.result)

    @object_action(label="Approve", description="Approve and dispatch this action")
    def approve(self, request, obj):
        try:
            result = ApprovalGate().approve(obj, request.user.get_username())
        except AlreadyResolved as e:
            self.message_user(request, str(e), level="error")
            return
        if result.success:
            self.message_user(request, f"Approved; dispatched via {result.tool} ({result.reference_id}).")
        else:
            self.message_user(request, f"Approved but dispatch failed: {result.error}", level="error")

    @object_action(label="Reject", description="Reject this action; nothing is dispatched")
    def reject(self, request, obj):
        try:
            ApprovalGate().reject(obj, request.user.get_username())
        except AlreadyResolved as e:
            self.message_user(request, str(e), level="error")
            return
        self.message_user(request, f"Proposal {obj.pk} rejected.")


@admin.register(HumanApproval)
class HumanApprovalAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ["proposal", "decision", "decided_by", "decided_at"]
    list_filter = ["decision"]
    search_fields = ["decided_by", "comment"]
    readonly_fields = ["proposal", "decision", "decided_by", "comment", "decided_at"]
