"""
Approval API.

GET  /api/decisions/pending/           proposals awaiting a human
GET  /api/decisions/proposals/<id>/    proposal detail
POST /api/decisions/proposals/<id>/    {"decision": "approve"|"reject", "decided_by": "...", "comment": "..."}
"""

import json
import logging

from django.http import JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from apps.decisions.approvals import AlreadyResolved, ApprovalGate
from apps.decisions.models import ActionProposal, ApprovalChoice

logger = logging.getLogger(__name__)


def serialize_proposal(proposal: ActionProposal) -> dict:
    decision = proposal.decision
    assessment = decision.risk_assessment
    approval = getattr(proposal, "approval", None)
    return {
        "id": proposal.pk,
        "status": proposal.status,
        "actionType": proposal.action_type,
        "decision": {
            "id": decision.pk,
            "status": decision.status,
            "requiresApproval": decision.requires_approval,
            "reason": decision.reason,
        },
        "riskAssessment": {
            "id": assessment.pk,
            "score": assessment.score,
            "severity": assessment.severity,
            "observationId": assessment.observation_id,
        },
        "payload": proposal.payload,
        "result": proposal.result,
        "referenceId": proposal.reference_id,
        "approval": (
            {
                "decision": approval.decision,
                "decidedBy": approval.decided_by,
                "comment": approval.comment,
                "decidedAt": approval.decided_at.isoformat(),
            }
            if approval
            else None
        ),
        "createdAt": proposal.created_at.isoformat(),
    }


class PendingApprovalsView(View):
    def get(self, request):
        proposals = ApprovalGate().pending()
        return JsonResponse(
            {
                "count": proposals.count(),
                "results": [serialize_proposal(p) for p in proposals],
            }
        )


@method_decorator(csrf_exempt, name="dispatch")
class ProposalView(View):
    def _get_proposal(self, proposal_id):
        return ActionProposal.objects.select_related(
            "decision__risk_assessment"
        ).filter(pk=proposal_id).first()

    def get(self, request, proposal_id):
        proposal = self._get_proposal(proposal_id)
        if proposal is None:
            return JsonResponse(
                {"status": "error", "message": f"Proposal {proposal_id} not found"}, status=404
            )
        return JsonResponse(serialize_proposal(proposal))

    def post(self, request, proposal_id):
        try:
            body = json.loads(request.body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return JsonResponse({"status": "error", "message": "Invalid JSON body"}, status=400)
        if not isinstance(body, dict):
            return JsonResponse(
                {"status": "error", "message": "Request body must be a JSON object"}, status=400
            )

        choice = body.get("decision")
        decided_by = body.get("decided_by") or ""
        comment = body.get("comment") or ""
        if not isinstance(decided_by, str) or not isinstance(comment, str):
            return JsonResponse(
                {"status": "error", "message": "decided_by and comment must be strings"},
                status=400,
            )
        decided_by = decided_by.strip()
        if choice not in ApprovalChoice.values:
            return JsonResponse(
                {
                    "status": "error",
                    "message": f"decision must be one of {list(ApprovalChoice.values)}",
                },
                status=400,
            )
        if not decided_by:
            return JsonResponse({"status": "error", "message": "decided_by is required"}, status=400)

        proposal = self._get_proposal(proposal_id)
        if proposal is None:
            return JsonResponse(
                {"status": "error", "message": f"Proposal {proposal_id} not found"}, status=404
            )

        gate = ApprovalGate()
        try:
            if choice == ApprovalChoice.APPROVE:
                result = gate.approve(proposal, decided_by, comment)
            else:
                gate.reject(proposal, decided_by, comment)
                result = None
        except AlreadyResolved as e:
            return JsonResponse({"status": "error", "message": str(e)}, status=409)

        proposal.refresh_from_db()
        proposal.decision.refresh_from_db()
        response = {"status": "success", "proposal": serialize_proposal(proposal)}
        if result is not None:
            response["actionResult"] = result.to_dict()
        return JsonResponse(response)
