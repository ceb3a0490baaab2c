"""Tests for the simulation API."""

import json

from django.test import TestCase, override_settings
from django.urls import reverse

from apps.events.models import RawEvent


@override_settings(SIMULATION_MAX_EVENTS=50, SIMULATION_MAX_MERCHANTS=10)
class SimulateViewTests(TestCase):
    def post(self, body):
        return self.client.post(
            reverse("simulation:simulate"), data=json.dumps(body), content_type="application/json"
        )

    def test_get_returns_limits(self):
        response = self.client.get(reverse("simulation:simulate"))

        assert response.status_code == 200
        data = response.json()
        assert data["limits"] == {"maxEvents": 50, "maxMerchants": 10}
        assert "checkout_failure" in data["errorTypes"]

    def test_post_caps_counts(self):
        response = self.post({"eventCount": 500, "merchantCount": 30, "autoTriggerAgent": False})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["eventsGenerated"] == 50
        assert data["merchantsAffected"] == 10
        assert RawEvent.objects.count() == 50

    def test_invalid_error_type(self):
        response = self.post({"errorTypes": ["volcano"]})

        assert response.status_code == 400
        assert response.json()["status"] == "error"

    def test_invalid_json(self):
        response = self.client.post(
            reverse("simulation:simulate"), data="{oops", content_type="application/json"
        )
        assert response.status_code == 400

    def test_delete_run(self):
        run_id = self.post({"eventCount": 3, "autoTriggerAgent": False}).json()["runId"]

        response = self.client.delete(reverse("simulation:run", args=[run_id]))

        assert response.status_code == 200
        assert response.json()["eventsDeleted"] == 3
        detail = self.client.get(reverse("simulation:run", args=[run_id])).json()
        assert detail["status"] == "cleaned"
        assert detail["eventsRemaining"] == 0

    def test_delete_unknown_run(self):
        response = self.client.delete(reverse("simulation:run", args=["sim_nope"]))
        assert response.status_code == 404
