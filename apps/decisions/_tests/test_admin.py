import pytest

from apps.decisions._tests.factories import make_decision
from apps.decisions.models import ActionProposalStatus, DecisionStatus, HumanApproval


@pytest.mark.django_db
class TestActionProposalObjectActions:
    def test_approve_button_dispatches(self, admin_client):
        decision = make_decision(requires_approval=True)
        proposal = decision.proposal

        response = admin_client.post(
            f"/admin/decisions/actionproposal/{proposal.pk}/actions/approve/"
        )

        assert response.status_code == 302
        proposal.refresh_from_db()
        decision.refresh_from_db()
        assert proposal.status == ActionProposalStatus.EXECUTED
        assert decision.status == DecisionStatus.DISPATCHED
        assert HumanApproval.objects.get(proposal=proposal).decided_by == "admin"

    def test_reject_button(self, admin_client):
        decision = make_decision(requires_approval=True)

        response = admin_client.post(
            f"/admin/decisions/actionproposal/{decision.proposal.pk}/actions/reject/"
        )

        assert response.status_code == 302
        decision.refresh_from_db()
        decision.proposal.refresh_from_db()
        assert decision.status == DecisionStatus.REJECTED
        assert decision.proposal.status == ActionProposalStatus.REJECTED

    def test_buttons_hidden_once_resolved(self, admin_client):
        decision = make_decision(requires_approval=False)

        response = admin_client.get(
            f"/admin/decisions/actionproposal/{decision.proposal.pk}/change/"
        )

        assert response.status_code == 200
        assert "actions/approve/" not in response.content.decode()

    @pytest.mark.parametrize(
        "url",
        [
            "/admin/decisions/riskassessment/",
            "/admin/decisions/decision/",
            "/admin/decisions/actionproposal/",
            "/admin/decisions/humanapproval/",
        ],
    )
    def test_changelists_load(self, admin_client, url):
        make_decision(requires_approval=True)
        assert admin_client.get(url).status_code == 200
