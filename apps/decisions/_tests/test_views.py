"""Tests for the approval API."""

import json
from unittest.mock import patch

from django.test import TestCase
from django.urls import reverse

from apps.actions.drivers.base import ActionResult
from apps.decisions._tests.factories import make_decision
from apps.decisions.models import DecisionStatus


class PendingApprovalsViewTests(TestCase):
    def test_lists_pending(self):
        decision = make_decision(requires_approval=True)
        make_decision(requires_approval=False)

        response = self.client.get(reverse("decisions:pending"))

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 1
        assert data["results"][0]["decision"]["id"] == decision.pk
        assert data["results"][0]["riskAssessment"]["severity"] == "p1"


class ProposalViewTests(TestCase):
    def setUp(self):
        self.decision = make_decision(requires_approval=True)
        self.url = reverse("decisions:proposal", args=[self.decision.proposal.pk])

    def _post(self, body, url=None):
        return self.client.post(url or self.url, json.dumps(body), content_type="application/json")

    def test_get_detail(self):
        response = self.client.get(self.url)
        assert response.status_code == 200
        assert response.json()["status"] == "pending_approval"
        assert response.json()["approval"] is None

    def test_get_unknown_is_404(self):
        response = self.client.get(reverse("decisions:proposal", args=[999999]))
        assert response.status_code == 404

    @patch(
        "apps.actions.services.ActionDispatcher.dispatch",
        return_value=ActionResult(success=True, tool="local", reference_id="INC-9"),
    )
    def test_approve(self, mock_dispatch):
        response = self._post({"decision": "approve", "decided_by": "ana"})

        assert response.status_code == 200
        data = response.json()
        assert data["actionResult"]["reference_id"] == "INC-9"
        assert data["proposal"]["approval"]["decidedBy"] == "ana"
        mock_dispatch.assert_called_once()

    def test_reject(self):
        response = self._post({"decision": "reject", "decided_by": "ana", "comment": "noise"})

        assert response.status_code == 200
        self.decision.refresh_from_db()
        assert self.decision.status == DecisionStatus.REJECTED
        assert "actionResult" not in response.json()

    def test_invalid_decision_value(self):
        response = self._post({"decision": "maybe", "decided_by": "ana"})
        assert response.status_code == 400

    def test_missing_decided_by(self):
        response = self._post({"decision": "approve"})
        assert response.status_code == 400

    def test_non_string_decided_by_is_400(self):
        response = self._post({"decision": "approve", "decided_by": 42})

        assert response.status_code == 400
        assert response.json()["status"] == "error"
        self.decision.refresh_from_db()
        assert self.decision.status == DecisionStatus.PROPOSED

    def test_invalid_json(self):
        response = self.client.post(self.url, "{", content_type="application/json")
        assert response.status_code == 400

    def test_unknown_proposal_is_404(self):
        response = self._post(
            {"decision": "approve", "decided_by": "ana"},
            url=reverse("decisions:proposal", args=[999999]),
        )
        assert response.status_code == 404

    def test_already_resolved_is_409(self):
        self._post({"decision": "reject", "decided_by": "ana"})
        response = self._post({"decision": "approve", "decided_by": "bo"})
        assert response.status_code == 409
        assert response.json()["status"] == "error"
